from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.test import TestCase

from quotes.exceptions import ValidationFailed
from quotes.models import QuoteRequest
from quotes.services import submit_quote_request

User = get_user_model()


def payload(**overrides):
    data = {
        'name': 'Amina Mahamat',
        'email': 'amina@example.td',
        'phone': '+23566000000',
        'requirements': 'Site vitrine avec formulaire de contact',
        'budget': '750000',
    }
    data.update(overrides)
    return data


@patch('quotes.services.send_new_quote_notification')
class SubmitQuoteRequestTests(TestCase):
    """Validation, sanitization, storage and notification of public submissions"""

    def test_valid_submission(self, task):
        with self.captureOnCommitCallbacks(execute=True):
            receipt = submit_quote_request('web-development', payload(), ip_address='41.202.10.1', user_agent='Mozilla/5.0')

        self.assertEqual(set(receipt), {'quoteId', 'serviceId', 'timestamp'})
        self.assertEqual(receipt['serviceId'], 'web-development')

        quote = QuoteRequest.objects.get()
        self.assertEqual(str(quote.pk), receipt['quoteId'])
        self.assertEqual(quote.status, QuoteRequest.Status.PENDING)
        self.assertEqual(quote.ip_address, '41.202.10.1')
        self.assertEqual(quote.user_agent, 'Mozilla/5.0')
        self.assertEqual(quote.service_name, 'web-development')
        self.assertIsNone(quote.user)
        task.delay.assert_called_once_with(str(quote.pk))

    def test_minimal_submission(self, task):
        submit_quote_request('mobile-app', {'name': 'Idriss', 'email': 'idriss@example.td'})

        quote = QuoteRequest.objects.get()
        self.assertEqual(quote.phone, '')
        self.assertEqual(quote.requirements, '')
        self.assertIsNone(quote.budget)

    def test_email_normalized(self, task):
        submit_quote_request('web-development', payload(email='  Foo@BAR.com '))
        self.assertEqual(QuoteRequest.objects.get().email, 'foo@bar.com')

    def test_free_text_sanitized(self, task):
        submit_quote_request('web-development', payload(
            name='<b>Amina</b> Mahamat',
            requirements='<script>alert(1)</script>Boutique <en ligne>',
            serviceName='<i>Développement Web</i>',
        ))

        quote = QuoteRequest.objects.get()
        self.assertEqual(quote.name, 'Amina Mahamat')
        self.assertNotIn('<', quote.requirements)
        self.assertNotIn('>', quote.requirements)
        self.assertEqual(quote.service_name, 'Développement Web')

    def test_each_invalid_field_is_reported(self, task):
        cases = {
            'name': {'name': ''},
            'email': {'email': 'amina.example.td'},
            'phone': {'phone': '0123'},
            'requirements': {'requirements': 'x' * 2001},
            'budget': {'budget': '-5'},
        }
        for field, override in cases.items():
            with self.subTest(field=field):
                with self.assertRaises(ValidationFailed) as ctx:
                    submit_quote_request('web-development', payload(**override))
                self.assertEqual(ctx.exception.fields(), {field})

        self.assertEqual(QuoteRequest.objects.count(), 0)
        task.delay.assert_not_called()

    def test_short_name_rejected(self, task):
        with self.assertRaises(ValidationFailed) as ctx:
            submit_quote_request('web-development', payload(name=' A '))
        self.assertIn('name', ctx.exception.fields())

    def test_missing_service_id(self, task):
        with self.assertRaises(ValidationFailed) as ctx:
            submit_quote_request('', payload())
        self.assertIn('serviceId', ctx.exception.fields())

    def test_all_errors_collected(self, task):
        with self.assertRaises(ValidationFailed) as ctx:
            submit_quote_request('web-development', {'email': 'nope', 'budget': 'abc'})

        self.assertEqual(ctx.exception.fields(), {'name', 'email', 'budget'})
        self.assertEqual(QuoteRequest.objects.count(), 0)

    def test_same_payload_twice_gives_two_records(self, task):
        first = submit_quote_request('web-development', payload())
        second = submit_quote_request('web-development', payload())

        self.assertNotEqual(first['quoteId'], second['quoteId'])
        self.assertEqual(QuoteRequest.objects.count(), 2)

    def test_authenticated_user_recorded(self, task):
        user = User.objects.create_user(email='client@example.td', password='pass12345')
        submit_quote_request('web-development', payload(), user=user)
        self.assertEqual(QuoteRequest.objects.get().user, user)

    def test_anonymous_user_not_recorded(self, task):
        submit_quote_request('web-development', payload(), user=AnonymousUser())
        self.assertIsNone(QuoteRequest.objects.get().user)

    def test_enqueue_failure_does_not_lose_the_record(self, task):
        task.delay.side_effect = ConnectionError('broker unreachable')

        with self.captureOnCommitCallbacks(execute=True):
            receipt = submit_quote_request('web-development', payload())

        self.assertTrue(QuoteRequest.objects.filter(pk=receipt['quoteId']).exists())
