import uuid
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core import mail
from django.test import override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase
from rest_framework_simplejwt.tokens import RefreshToken

from quotes.exceptions import NotificationDeliveryFailed
from quotes.models import QuoteRequest
from .test_intake import payload
from .test_models import quote_fields

User = get_user_model()


class QuoteIntakeAPITests(APITestCase):
    """POST /api/services/<service_id>/quote/"""

    def setUp(self):
        self.url = reverse('quote-request-create', kwargs={'service_id': 'web-development'})

    def test_submit_quote(self):
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(
                self.url, payload(), format='json',
                HTTP_X_FORWARDED_FOR='41.202.10.1, 10.0.0.1', HTTP_USER_AGENT='Mozilla/5.0',
            )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(set(response.data), {'quoteId', 'serviceId', 'timestamp'})
        self.assertEqual(response.data['serviceId'], 'web-development')

        quote = QuoteRequest.objects.get(pk=response.data['quoteId'])
        self.assertEqual(quote.ip_address, '41.202.10.1')
        self.assertEqual(quote.user_agent, 'Mozilla/5.0')

    def test_receipt_does_not_echo_requester_data(self):
        response = self.client.post(self.url, payload(), format='json')
        body = response.content.decode()
        self.assertNotIn('amina@example.td', body)
        self.assertNotIn('Amina', body)

    def test_validation_errors(self):
        response = self.client.post(self.url, {'name': 'A', 'email': 'nope'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('message', response.data)
        fields = {error['field'] for error in response.data['errors']}
        self.assertEqual(fields, {'name', 'email'})
        for error in response.data['errors']:
            self.assertTrue(error['message'])
        self.assertEqual(QuoteRequest.objects.count(), 0)

    def test_failing_notification_does_not_undo_creation(self):
        with patch(
            'quotes.tasks.NotificationDispatcher.notify_admin_of_new_quote',
            side_effect=NotificationDeliveryFailed('smtp down'),
        ) as notify:
            with self.captureOnCommitCallbacks(execute=True):
                response = self.client.post(self.url, payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(notify.called)
        self.assertTrue(QuoteRequest.objects.filter(pk=response.data['quoteId']).exists())

    @override_settings(
        EMAIL_HOST_USER='notifications@experiencetech-tchad.com',
        EMAIL_HOST_PASSWORD='app-password',
    )
    def test_admin_is_emailed_after_commit(self):
        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            response = self.client.post(self.url, payload(), format='json')
        self.assertEqual(len(mail.outbox), 0)

        for callback in callbacks:
            callback()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['admin@experiencetech-tchad.com'])

    def test_unparseable_forwarded_header_falls_back_to_peer(self):
        response = self.client.post(
            self.url, payload(), format='json',
            HTTP_X_FORWARDED_FOR='unknown', REMOTE_ADDR='10.0.0.2',
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(QuoteRequest.objects.get().ip_address, '10.0.0.2')

    def test_budget_is_rounded_to_centimes(self):
        response = self.client.post(self.url, payload(budget='1500.125'), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(QuoteRequest.objects.get().budget, Decimal('1500.13'))

    def test_large_budget_accepted(self):
        response = self.client.post(self.url, payload(budget=2500000000000), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(QuoteRequest.objects.get().budget, Decimal('2500000000000.00'))

    def test_authenticated_submission_links_account(self):
        user = User.objects.create_user(email='client@example.td', password='pass12345')
        token = RefreshToken.for_user(user).access_token
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

        response = self.client.post(self.url, payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(QuoteRequest.objects.get().user, user)


@patch('quotes.moderation.send_status_change_notification')
class QuoteModerationAPITests(APITestCase):
    """Admin endpoints under /api/admin/quote-requests/"""

    def setUp(self):
        self.admin = User.objects.create_user(email='admin@experiencetech-tchad.com', password='pass12345', role='admin')
        self.client_user = User.objects.create_user(email='client@example.td', password='pass12345')
        self.web = QuoteRequest.objects.create_request(**quote_fields())
        self.mobile = QuoteRequest.objects.create_request(**quote_fields(
            service_id='mobile-app', service_name='Application Mobile',
            name='Idriss Deby', email='idriss@example.td',
        ))
        self.list_url = reverse('quote-request-list')
        self.client.force_authenticate(user=self.admin)

    def detail_url(self, pk):
        return reverse('quote-request-detail', kwargs={'pk': pk})

    def test_anonymous_denied(self, task):
        self.client.force_authenticate(user=None)
        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_client_denied(self, task):
        self.client.force_authenticate(user=self.client_user)
        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_moderator_role_is_not_enough(self, task):
        moderator = User.objects.create_user(email='mod@experiencetech-tchad.com', password='pass12345', role='moderator')
        self.client.force_authenticate(user=moderator)
        response = self.client.patch(self.detail_url(self.web.pk), {'status': 'quoted'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list(self, task):
        response = self.client.get(self.list_url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['quoteRequests']), 2)
        self.assertEqual(response.data['pagination'], {'page': 1, 'limit': 20, 'total': 2, 'totalPages': 1})
        first = response.data['quoteRequests'][0]
        self.assertEqual(first['id'], str(self.mobile.pk))
        self.assertEqual(first['serviceId'], 'mobile-app')

    def test_list_filters(self, task):
        response = self.client.get(self.list_url, {'serviceId': 'web-development'})
        self.assertEqual([q['id'] for q in response.data['quoteRequests']], [str(self.web.pk)])

        response = self.client.get(self.list_url, {'search': 'idriss'})
        self.assertEqual([q['id'] for q in response.data['quoteRequests']], [str(self.mobile.pk)])

        response = self.client.get(self.list_url, {'status': 'quoted'})
        self.assertEqual(response.data['quoteRequests'], [])

    def test_list_pagination(self, task):
        response = self.client.get(self.list_url, {'limit': 1, 'page': 2})

        self.assertEqual(response.data['pagination'], {'page': 2, 'limit': 1, 'total': 2, 'totalPages': 2})
        self.assertEqual(response.data['quoteRequests'][0]['id'], str(self.web.pk))

    def test_list_page_past_the_end_is_empty(self, task):
        response = self.client.get(self.list_url, {'limit': 1, 'page': 5})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['quoteRequests'], [])
        self.assertEqual(response.data['pagination'], {'page': 5, 'limit': 1, 'total': 2, 'totalPages': 2})

    def test_list_limit_capped(self, task):
        response = self.client.get(self.list_url, {'limit': 500})
        self.assertEqual(response.data['pagination']['limit'], 100)

    def test_list_rejects_bad_filters(self, task):
        response = self.client.get(self.list_url, {'status': 'archived', 'dateFrom': 'yesterday'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        fields = {error['field'] for error in response.data['errors']}
        self.assertEqual(fields, {'status', 'dateFrom'})

    def test_retrieve(self, task):
        response = self.client.get(self.detail_url(self.web.pk))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['email'], 'amina@example.td')
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['statusDisplay'], 'En attente')

    def test_retrieve_unknown(self, task):
        for pk in (uuid.uuid4(), 'not-a-uuid'):
            response = self.client.get(self.detail_url(pk))
            self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
            self.assertIn('message', response.data)

    def test_update_status(self, task):
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.put(
                self.detail_url(self.web.pk),
                {'status': 'quoted', 'notes': 'Devis envoyé', 'assignedTo': self.admin.pk},
                format='json',
            )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'quoted')
        self.assertEqual(response.data['notes'], 'Devis envoyé')
        self.assertEqual(response.data['assignedTo'], self.admin.pk)
        self.assertIsNotNone(response.data['quotedAt'])
        self.assertIsNotNone(response.data['respondedAt'])
        self.assertIsNone(response.data['resolvedAt'])
        task.delay.assert_called_once_with(str(self.web.pk), 'pending')

    def test_update_rejects_illegal_transition(self, task):
        response = self.client.patch(self.detail_url(self.web.pk), {'status': 'accepted'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors'][0]['field'], 'status')
        self.assertEqual(QuoteRequest.objects.get_by_id(self.web.pk).status, 'pending')

    def test_update_rejects_unknown_status(self, task):
        response = self.client.patch(self.detail_url(self.web.pk), {'status': 'archived'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_ignores_requester_fields(self, task):
        response = self.client.patch(
            self.detail_url(self.web.pk), {'email': 'hijack@example.td', 'notes': 'ok'}, format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(QuoteRequest.objects.get_by_id(self.web.pk).email, 'amina@example.td')

    def test_update_empty_body(self, task):
        response = self.client.patch(self.detail_url(self.web.pk), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_assign_to_non_admin_rejected(self, task):
        response = self.client.patch(
            self.detail_url(self.web.pk), {'assignedTo': self.client_user.pk}, format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['errors'][0]['field'], 'assignedTo')

    def test_update_unknown(self, task):
        response = self.client.patch(self.detail_url(uuid.uuid4()), {'status': 'quoted'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_stats(self, task):
        QuoteRequest.objects.update_staff_fields(self.mobile.pk, status='in_progress')

        response = self.client.get(reverse('quote-request-stats'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pending'], 1)
        self.assertEqual(response.data['in_progress'], 1)
        self.assertEqual(response.data['total'], 2)
