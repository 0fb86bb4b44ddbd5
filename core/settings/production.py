# core/settings/production.py
"""
Deployment settings. Select with DJANGO_SETTINGS_MODULE=core.settings.production.

In this environment a missing mail transport is an error: the quote
notifier refuses to mock and reports ServiceNotConfigured instead.
"""

import dj_database_url

from .base import *  # noqa: F401,F403
from .base import BASE_DIR, env, env_flag, env_list

APP_ENV = 'production'
DEBUG = env_flag('DEBUG')

# Hosts known to the platform are always accepted on top of ALLOWED_HOSTS.
_platform_host = env('RENDER_EXTERNAL_HOSTNAME')
ALLOWED_HOSTS = env_list('ALLOWED_HOSTS') + ([_platform_host] if _platform_host else [])

if not env('DATABASE_URL'):
    raise ValueError("DATABASE_URL must be set in production")

DATABASES = {
    'default': dj_database_url.config(conn_max_age=600, conn_health_checks=True, ssl_require=True),
}

CSRF_TRUSTED_ORIGINS = [f'https://{host}' for host in ALLOWED_HOSTS]

SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
SECURE_SSL_REDIRECT = env_flag('SECURE_SSL_REDIRECT', True)
SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True
SECURE_HSTS_SECONDS = 60 * 60 * 24 * 365
SECURE_HSTS_INCLUDE_SUBDOMAINS = True
SECURE_HSTS_PRELOAD = True

STATIC_ROOT = BASE_DIR / 'staticfiles'
STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
    'staticfiles': {'BACKEND': 'whitenoise.storage.CompressedManifestStaticFilesStorage'},
}
