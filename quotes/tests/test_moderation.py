from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.exceptions import ImproperlyConfigured
from django.test import TestCase, override_settings

from quotes.admin import QuoteRequestAdminForm
from quotes.exceptions import InvalidTransition, QuoteRequestNotFound, ValidationFailed
from quotes.models import QuoteRequest
from quotes.moderation import is_transition_allowed, moderate, set_status
from .test_models import quote_fields

User = get_user_model()


class TransitionGraphTests(TestCase):

    def test_allowed_edges(self):
        allowed = [
            ('pending', 'in_progress'), ('pending', 'quoted'), ('pending', 'cancelled'),
            ('in_progress', 'quoted'), ('in_progress', 'cancelled'),
            ('quoted', 'accepted'), ('quoted', 'rejected'), ('quoted', 'cancelled'),
        ]
        for current, requested in allowed:
            self.assertTrue(is_transition_allowed(current, requested), f"{current} -> {requested}")

    def test_forbidden_edges(self):
        forbidden = [
            ('pending', 'accepted'), ('in_progress', 'pending'), ('quoted', 'in_progress'),
            ('accepted', 'rejected'), ('rejected', 'quoted'), ('cancelled', 'pending'),
        ]
        for current, requested in forbidden:
            self.assertFalse(is_transition_allowed(current, requested), f"{current} -> {requested}")
            self.assertTrue(is_transition_allowed(current, requested, policy='permissive'))

    def test_same_status_is_always_allowed(self):
        for status in QuoteRequest.Status.values:
            self.assertTrue(is_transition_allowed(status, status))


@patch('quotes.moderation.send_status_change_notification')
class SetStatusTests(TestCase):
    """Status changes, audit timestamps and requester notification"""

    def setUp(self):
        self.quote = QuoteRequest.objects.create_request(**quote_fields())

    def test_quoting_sets_timestamps(self, task):
        result = set_status(self.quote.pk, 'quoted')

        self.assertTrue(result.status_changed)
        self.assertEqual(result.previous_status, 'pending')
        self.assertEqual(result.quote.status, 'quoted')
        self.assertIsNotNone(result.quote.quoted_at)
        self.assertIsNotNone(result.quote.responded_at)
        self.assertIsNone(result.quote.resolved_at)

    def test_timestamps_are_set_once(self, task):
        first = set_status(self.quote.pk, 'quoted').quote

        again = set_status(self.quote.pk, 'quoted')
        self.assertFalse(again.status_changed)
        self.assertEqual(again.quote.quoted_at, first.quoted_at)

        accepted = set_status(self.quote.pk, 'accepted').quote
        self.assertEqual(accepted.quoted_at, first.quoted_at)
        self.assertEqual(accepted.responded_at, first.responded_at)
        self.assertIsNotNone(accepted.resolved_at)

        stored = QuoteRequest.objects.get_by_id(self.quote.pk)
        self.assertEqual(stored.quoted_at, first.quoted_at)
        self.assertEqual(stored.resolved_at, accepted.resolved_at)

    def test_responded_at_kept_through_in_progress(self, task):
        in_progress = set_status(self.quote.pk, 'in_progress').quote
        self.assertIsNotNone(in_progress.responded_at)
        self.assertIsNone(in_progress.quoted_at)

        quoted = set_status(self.quote.pk, 'quoted').quote
        self.assertEqual(quoted.responded_at, in_progress.responded_at)
        self.assertIsNotNone(quoted.quoted_at)

    def test_cancel_resolves(self, task):
        quote = set_status(self.quote.pk, 'cancelled').quote
        self.assertIsNotNone(quote.resolved_at)
        self.assertIsNone(quote.quoted_at)
        self.assertTrue(quote.is_terminal)

    def test_strict_policy_rejects_illegal_edge(self, task):
        with self.assertRaises(InvalidTransition) as ctx:
            set_status(self.quote.pk, 'accepted')

        self.assertIn('status', ctx.exception.fields())
        stored = QuoteRequest.objects.get_by_id(self.quote.pk)
        self.assertEqual(stored.status, 'pending')
        self.assertIsNone(stored.responded_at)

    def test_terminal_states_have_no_exit(self, task):
        set_status(self.quote.pk, 'cancelled')
        for status in ('pending', 'in_progress', 'quoted', 'accepted', 'rejected'):
            with self.assertRaises(InvalidTransition):
                set_status(self.quote.pk, status)

    def test_permissive_policy(self, task):
        quote = set_status(self.quote.pk, 'accepted', policy='permissive').quote
        self.assertEqual(quote.status, 'accepted')
        self.assertIsNotNone(quote.resolved_at)
        self.assertIsNone(quote.quoted_at)

        reopened = set_status(self.quote.pk, 'pending', policy='permissive').quote
        self.assertEqual(reopened.resolved_at, quote.resolved_at)

    @override_settings(QUOTE_TRANSITION_POLICY='permissive')
    def test_policy_from_settings(self, task):
        self.assertEqual(set_status(self.quote.pk, 'rejected').quote.status, 'rejected')

    @override_settings(QUOTE_TRANSITION_POLICY='lenient')
    def test_unknown_policy(self, task):
        with self.assertRaises(ImproperlyConfigured):
            set_status(self.quote.pk, 'quoted')

    def test_unknown_status(self, task):
        with self.assertRaises(ValidationFailed) as ctx:
            set_status(self.quote.pk, 'archived')
        self.assertIn('status', ctx.exception.fields())

    def test_unknown_quote(self, task):
        with self.assertRaises(QuoteRequestNotFound):
            set_status('3f2b8a1e-0000-4000-8000-000000000000', 'quoted')

    def test_notes_and_assignee_written_with_status(self, task):
        admin = User.objects.create_user(email='admin@experiencetech-tchad.com', password='pass12345', role='admin')
        quote = set_status(self.quote.pk, 'in_progress', notes='Devis en préparation', assigned_to=admin).quote

        self.assertEqual(quote.notes, 'Devis en préparation')
        self.assertEqual(quote.assigned_to, admin)

    def test_requester_notified_after_commit(self, task):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            set_status(self.quote.pk, 'quoted')

        self.assertEqual(len(callbacks), 1)
        task.delay.assert_called_once_with(str(self.quote.pk), 'pending')

    def test_no_notification_without_change(self, task):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            set_status(self.quote.pk, 'pending', notes='Vu')

        self.assertEqual(callbacks, [])
        task.delay.assert_not_called()

    def test_enqueue_failure_is_swallowed(self, task):
        task.delay.side_effect = ConnectionError('broker unreachable')

        with self.captureOnCommitCallbacks(execute=True):
            result = set_status(self.quote.pk, 'in_progress')

        self.assertEqual(result.quote.status, 'in_progress')
        self.assertEqual(QuoteRequest.objects.get_by_id(self.quote.pk).status, 'in_progress')


@patch('quotes.moderation.send_status_change_notification')
class ModerateTests(TestCase):

    def setUp(self):
        self.admin = User.objects.create_user(email='admin@experiencetech-tchad.com', password='pass12345', role='admin')
        self.quote = QuoteRequest.objects.create_request(**quote_fields())

    def test_notes_only(self, task):
        result = moderate(self.quote.pk, {'notes': 'Client à rappeler'})

        self.assertFalse(result.status_changed)
        self.assertEqual(result.quote.notes, 'Client à rappeler')
        self.assertEqual(result.quote.status, 'pending')
        self.assertIsNone(result.quote.responded_at)

    def test_status_and_assignment(self, task):
        result = moderate(self.quote.pk, {'status': 'in_progress', 'assigned_to': self.admin})

        self.assertTrue(result.status_changed)
        self.assertEqual(result.quote.assigned_to, self.admin)

    def test_clearing_assignment(self, task):
        moderate(self.quote.pk, {'assigned_to': self.admin})
        result = moderate(self.quote.pk, {'status': 'in_progress', 'assigned_to': None})

        self.assertIsNone(result.quote.assigned_to)
        self.assertIsNone(QuoteRequest.objects.get_by_id(self.quote.pk).assigned_to)

    def test_invalid_transition_leaves_notes_untouched(self, task):
        with self.assertRaises(InvalidTransition):
            moderate(self.quote.pk, {'status': 'rejected', 'notes': 'Trop cher'})

        self.assertEqual(QuoteRequest.objects.get_by_id(self.quote.pk).notes, '')


class AdminFormTests(TestCase):
    """Edits made through the Django admin follow the API rules"""

    def setUp(self):
        self.quote = QuoteRequest.objects.create_request(**quote_fields())

    def form(self, **data):
        return QuoteRequestAdminForm(data={'status': 'pending', 'assigned_to': '', 'notes': '', **data}, instance=self.quote)

    def test_notes_are_sanitized(self):
        form = self.form(notes='<b>Rappeler</b> demain <script>x</script>')

        self.assertTrue(form.is_valid(), form.errors)
        self.assertNotIn('<', form.cleaned_data['notes'])
        self.assertTrue(form.cleaned_data['notes'].startswith('Rappeler demain'))

    def test_illegal_transition_rejected(self):
        form = self.form(status='accepted')

        self.assertFalse(form.is_valid())
        self.assertIn('status', form.errors)
