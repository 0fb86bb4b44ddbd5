# core/views.py
"""
API root and the probes used by the hosting platform.

/api/health/ reports each dependency. Only the database and cache can make
it fail: quote notifications are best-effort, so a missing Celery worker is
reported as a warning and the API keeps accepting requests.
"""

import logging

from celery import current_app
from django.conf import settings
from django.core.cache import cache
from django.db import connection
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.reverse import reverse

logger = logging.getLogger(__name__)

API_VERSION = '1.0.0'


@api_view(['GET'])
@permission_classes([AllowAny])
def api_root(request, format=None):
    def link(name):
        return reverse(name, request=request, format=format)

    return Response({
        'auth_register': link('auth_register'),
        'auth_login': link('auth_login'),
        'auth_refresh': link('auth_refresh'),
        'user_profile': link('user_profile'),
        'quote_requests': link('quote-request-list'),
        'quote_stats': link('quote-request-stats'),
        'health': link('api_health'),
        'schema': link('api_schema'),
    })


def _ping_database():
    with connection.cursor() as cursor:
        cursor.execute('SELECT 1')
    return {'status': 'connected', 'vendor': connection.vendor}


def _ping_cache():
    cache.set('xptech:health', 'ok', 10)
    if cache.get('xptech:health') != 'ok':
        raise RuntimeError("cache did not return the probe value")
    return {'status': 'connected', 'backend': settings.CACHES['default']['BACKEND'].rsplit('.', 1)[-1]}


def _ping_notification_workers():
    if current_app.conf.task_always_eager:
        return {'status': 'eager'}
    replies = current_app.control.inspect(timeout=1).ping()
    if not replies:
        return {'status': 'warning', 'message': 'No notification worker answered'}
    return {'status': 'running', 'workers': sorted(replies)}


# name -> (probe, whether a failure makes the API unhealthy)
PROBES = (
    ('database', _ping_database, True),
    ('cache', _ping_cache, True),
    ('celery', _ping_notification_workers, False),
)


@api_view(['GET'])
@permission_classes([AllowAny])
def health_check(request):
    checks = {}
    healthy = True
    for name, probe, required in PROBES:
        try:
            checks[name] = probe()
        except Exception as exc:
            log = logger.error if required else logger.warning
            log(f"Health check: {name} unavailable: {exc}")
            checks[name] = {'status': 'error'}
            healthy = healthy and not required

    body = {
        'status': 'healthy' if healthy else 'unhealthy',
        'timestamp': timezone.now().isoformat(),
        'version': API_VERSION,
        'environment': settings.APP_ENV,
        'checks': checks,
    }
    return Response(body, status=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE)


@api_view(['GET'])
@permission_classes([AllowAny])
def readiness_check(request):
    try:
        _ping_database()
    except Exception as exc:
        logger.error(f"Readiness check failed: {exc}")
        return Response({'status': 'not ready'}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response({'status': 'ready'})


@api_view(['GET'])
@permission_classes([AllowAny])
def liveness_check(request):
    return Response({'status': 'alive'})
