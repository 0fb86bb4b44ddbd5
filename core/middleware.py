# core/middleware.py
"""
Request timing, response hardening and the last-resort error page for /api/.
"""

import logging
import time

from django.core.exceptions import ValidationError
from django.core.validators import validate_ipv46_address
from django.http import JsonResponse
from rest_framework import status

from .exceptions import GENERIC_ERROR_MESSAGE

logger = logging.getLogger(__name__)

SLOW_REQUEST_SECONDS = 1.0

API_PREFIX = '/api/'

RESPONSE_HEADERS = {
    'Content-Security-Policy': (
        "default-src 'self'; style-src 'self' 'unsafe-inline'; "
        "img-src 'self' data:; frame-ancestors 'none'"
    ),
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'DENY',
    'Referrer-Policy': 'strict-origin-when-cross-origin',
    'Permissions-Policy': 'geolocation=(), microphone=(), camera=()',
}


def _as_ip(value):
    value = (value or '').strip()
    try:
        validate_ipv46_address(value)
    except ValidationError:
        return None
    return value


def get_client_ip(request):
    """
    Address of the caller. Behind the platform proxy the first
    X-Forwarded-For hop is the browser; otherwise REMOTE_ADDR.
    Values that are not IP addresses (proxies send 'unknown') are skipped.
    """
    first_hop = request.META.get('HTTP_X_FORWARDED_FOR', '').split(',')[0]
    return _as_ip(first_hop) or _as_ip(request.META.get('REMOTE_ADDR'))


def _who(request):
    user = getattr(request, 'user', None)
    return user.email if user is not None and user.is_authenticated else 'anonymous'


class RequestLoggingMiddleware:
    """One log line per request, at WARNING when it took longer than a second."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        started = time.monotonic()
        response = self.get_response(request)
        elapsed = time.monotonic() - started

        log = logger.warning if elapsed > SLOW_REQUEST_SECONDS else logger.info
        log(
            f"{request.method} {request.path} -> {response.status_code} "
            f"in {elapsed * 1000:.1f}ms ({_who(request)} @ {get_client_ip(request)})"
        )
        return response


class SecurityHeadersMiddleware:

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        response = self.get_response(request)
        for header, value in RESPONSE_HEADERS.items():
            response.setdefault(header, value)
        return response


class ErrorHandlingMiddleware:
    """
    Catches what DRF's exception handler let through. API clients get the
    generic error body; the rest of the site keeps Django's own 500 page.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        logger.error(
            f"Unhandled {type(exception).__name__} on {request.method} {request.path} ({_who(request)})",
            exc_info=exception,
        )
        if not request.path.startswith(API_PREFIX):
            return None
        return JsonResponse({'message': GENERIC_ERROR_MESSAGE}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
