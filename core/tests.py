# core/tests.py
"""
Health endpoints and the shared API error contract
Run with: python manage.py test core
"""

from unittest.mock import patch

from django.db import DatabaseError
from django.test import RequestFactory, SimpleTestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from core.exceptions import GENERIC_ERROR_MESSAGE, flatten_errors
from core.middleware import ErrorHandlingMiddleware, get_client_ip


class HealthCheckTests(APITestCase):

    def test_health(self):
        response = self.client.get(reverse('api_health'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'healthy')
        self.assertEqual(response.data['checks']['database']['status'], 'connected')
        self.assertEqual(response.data['checks']['celery']['status'], 'eager')

    def test_probes(self):
        self.assertEqual(self.client.get(reverse('api_ready')).data, {'status': 'ready'})
        self.assertEqual(self.client.get(reverse('api_alive')).data, {'status': 'alive'})

    def test_api_root_lists_quote_endpoints(self):
        response = self.client.get(reverse('api_root'))
        self.assertIn('/api/admin/quote-requests/', response.data['quote_requests'])

    def test_security_headers(self):
        response = self.client.get(reverse('api_alive'))
        self.assertEqual(response['X-Frame-Options'], 'DENY')
        self.assertEqual(response['X-Content-Type-Options'], 'nosniff')


class ErrorContractTests(APITestCase):

    def test_database_failure_is_generic(self):
        url = reverse('quote-request-create', kwargs={'service_id': 'web-development'})
        with patch('quotes.models.QuoteRequest.save', side_effect=DatabaseError('relation does not exist')):
            response = self.client.post(url, {'name': 'Amina Mahamat', 'email': 'amina@example.td'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data, {'message': GENERIC_ERROR_MESSAGE})
        self.assertNotIn('relation', response.content.decode())

    def test_unhandled_exception_under_api(self):
        request = RequestFactory().get('/api/services/web/quote/')
        response = ErrorHandlingMiddleware(lambda r: None).process_exception(request, KeyError('secret'))

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertNotIn('secret', response.content.decode())

    def test_unhandled_exception_outside_api(self):
        request = RequestFactory().get('/admin/')
        self.assertIsNone(ErrorHandlingMiddleware(lambda r: None).process_exception(request, KeyError('x')))


class HelperTests(SimpleTestCase):

    def test_flatten_errors(self):
        errors = flatten_errors({
            'email': ['Enter a valid email address.'],
            'items': [{'qty': ['Too small.']}],
            'non_field_errors': ['Bad request.'],
        })

        self.assertEqual(errors, [
            {'field': 'email', 'message': 'Enter a valid email address.'},
            {'field': 'items.qty', 'message': 'Too small.'},
            {'field': 'non_field_errors', 'message': 'Bad request.'},
        ])

    def test_client_ip_prefers_forwarded_header(self):
        factory = RequestFactory()
        request = factory.get('/', HTTP_X_FORWARDED_FOR='41.202.10.1, 10.0.0.1', REMOTE_ADDR='10.0.0.2')
        self.assertEqual(get_client_ip(request), '41.202.10.1')
        self.assertEqual(get_client_ip(factory.get('/', REMOTE_ADDR='10.0.0.2')), '10.0.0.2')

    def test_client_ip_skips_values_that_are_not_addresses(self):
        factory = RequestFactory()
        request = factory.get('/', HTTP_X_FORWARDED_FOR='unknown, 10.0.0.1', REMOTE_ADDR='10.0.0.2')
        self.assertEqual(get_client_ip(request), '10.0.0.2')
        self.assertIsNone(get_client_ip(factory.get('/', HTTP_X_FORWARDED_FOR='unknown', REMOTE_ADDR='')))
