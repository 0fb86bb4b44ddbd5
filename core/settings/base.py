# core/settings/base.py
"""
Shared settings for the Expérience Tech quote platform.

Everything deployment-specific is read from the environment (a ``.env`` file
at the project root is loaded first). ``production.py`` and ``test.py``
override from here.
"""

import os
from datetime import timedelta
from pathlib import Path

import dj_database_url
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent.parent

load_dotenv(BASE_DIR / '.env')


def env(name, default=''):
    return os.environ.get(name, default)


def env_flag(name, default=False):
    return env(name, str(default)).strip().lower() in ('1', 'true', 'yes', 'on')


def env_list(name, default=''):
    return [item.strip() for item in env(name, default).split(',') if item.strip()]


# --- Runtime --------------------------------------------------------------

SECRET_KEY = env('SECRET_KEY')
if not SECRET_KEY:
    raise ValueError("SECRET_KEY must be set in environment variables")

DEBUG = env_flag('DEBUG')

# development | production | test. Decides whether a missing mail transport
# is mocked or reported as an error.
APP_ENV = env('APP_ENV', 'development').lower()

ALLOWED_HOSTS = env_list('ALLOWED_HOSTS', 'localhost,127.0.0.1')

ROOT_URLCONF = 'core.urls'
WSGI_APPLICATION = 'core.wsgi.application'
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LANGUAGE_CODE = 'fr-fr'
TIME_ZONE = 'Africa/Ndjamena'
USE_I18N = True
USE_TZ = True

# --- Apps and middleware --------------------------------------------------

DJANGO_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
]

VENDOR_APPS = [
    'rest_framework',
    'rest_framework_simplejwt.token_blacklist',
    'corsheaders',
    'drf_spectacular',
    'django_celery_results',
]

PROJECT_APPS = [
    'users',
    'quotes',
]

INSTALLED_APPS = DJANGO_APPS + VENDOR_APPS + PROJECT_APPS

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    'core.middleware.RequestLoggingMiddleware',
    'core.middleware.SecurityHeadersMiddleware',
    'core.middleware.ErrorHandlingMiddleware',
]

# Email templates live inside the quotes app, so app directories suffice.
TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

# --- Storage --------------------------------------------------------------

DATABASES = {
    'default': dj_database_url.config(
        default=env('DATABASE_URL', f'sqlite:///{BASE_DIR / "db.sqlite3"}'),
        conn_max_age=600,
        conn_health_checks=True,
    ),
}

REDIS_URL = env('REDIS_URL', 'redis://127.0.0.1:6379')

# Backs DRF throttling for the public quote form and the health probe.
CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.redis.RedisCache',
        'LOCATION': f'{REDIS_URL}/0',
        'KEY_PREFIX': 'xptech',
        'TIMEOUT': 300,
        'OPTIONS': {'socket_connect_timeout': 5, 'socket_timeout': 5},
    },
}

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# --- Notification worker (Celery) ----------------------------------------

CELERY_BROKER_URL = env('CELERY_BROKER_URL', f'{REDIS_URL}/2')
CELERY_BROKER_CONNECTION_RETRY_ON_STARTUP = True
CELERY_RESULT_BACKEND = 'django-db'
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_TRACK_STARTED = True
# One email per task; a slow relay should not tie a worker up for long.
CELERY_TASK_SOFT_TIME_LIMIT = 60
CELERY_TASK_TIME_LIMIT = 90
CELERY_WORKER_PREFETCH_MULTIPLIER = 1

# --- Accounts and API -----------------------------------------------------

AUTH_USER_MODEL = 'users.CustomUser'

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator', 'OPTIONS': {'min_length': 8}},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.Argon2PasswordHasher',
    'django.contrib.auth.hashers.PBKDF2PasswordHasher',
]

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rest_framework_simplejwt.authentication.JWTAuthentication',
    ),
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.IsAuthenticatedOrReadOnly',
    ),
    'DEFAULT_RENDERER_CLASSES': ['rest_framework.renderers.JSONRenderer'],
    'DEFAULT_PARSER_CLASSES': [
        'rest_framework.parsers.JSONParser',
        'rest_framework.parsers.FormParser',
        'rest_framework.parsers.MultiPartParser',
    ],
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
    'DEFAULT_THROTTLE_CLASSES': [
        'rest_framework.throttling.AnonRateThrottle',
        'rest_framework.throttling.UserRateThrottle',
    ],
    'DEFAULT_THROTTLE_RATES': {
        'anon': env('THROTTLE_ANON', '100/hour'),
        'user': env('THROTTLE_USER', '1000/hour'),
        'auth': env('THROTTLE_AUTH', '20/hour'),
        'quotes': env('THROTTLE_QUOTES', '30/hour'),
    },
    'EXCEPTION_HANDLER': 'core.exceptions.api_exception_handler',
}

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(minutes=int(env('JWT_ACCESS_MINUTES', '15'))),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=int(env('JWT_REFRESH_DAYS', '7'))),
    'ROTATE_REFRESH_TOKENS': True,
    'BLACKLIST_AFTER_ROTATION': True,
    'UPDATE_LAST_LOGIN': True,
    'ALGORITHM': 'HS256',
    'SIGNING_KEY': SECRET_KEY,
    'ISSUER': 'xptech-api',
    'AUTH_HEADER_TYPES': ('Bearer',),
}

SPECTACULAR_SETTINGS = {
    'TITLE': 'Expérience Tech API',
    'DESCRIPTION': 'Quote requests and moderation for Expérience Tech services',
    'VERSION': '1.0.0',
}

# --- Browser security -----------------------------------------------------

CORS_ALLOWED_ORIGINS = env_list('CORS_ALLOWED_ORIGINS', 'http://localhost:3000,http://localhost:5173')
CORS_ALLOW_CREDENTIALS = True
CSRF_TRUSTED_ORIGINS = [origin.replace('http://', 'https://') for origin in CORS_ALLOWED_ORIGINS]

SECURE_CONTENT_TYPE_NOSNIFF = True
SECURE_REFERRER_POLICY = 'strict-origin-when-cross-origin'
X_FRAME_OPTIONS = 'DENY'
SESSION_COOKIE_HTTPONLY = True
SESSION_COOKIE_SAMESITE = 'Lax'

# --- Mail transport and quote workflow ------------------------------------

# Credentials are optional: without them the quote notifier degrades to a
# mock outside production and reports ServiceNotConfigured in production.
EMAIL_BACKEND = env('EMAIL_BACKEND', 'django.core.mail.backends.smtp.EmailBackend')
EMAIL_HOST = env('EMAIL_HOST', 'smtp.gmail.com')
EMAIL_PORT = int(env('EMAIL_PORT', '587'))
EMAIL_HOST_USER = env('EMAIL_HOST_USER')
EMAIL_HOST_PASSWORD = env('EMAIL_HOST_PASSWORD')
EMAIL_USE_TLS = env_flag('EMAIL_USE_TLS', True)
EMAIL_TIMEOUT = 10
EMAIL_FROM_NAME = env('EMAIL_FROM_NAME', 'Expérience Tech')
DEFAULT_FROM_EMAIL = env('DEFAULT_FROM_EMAIL', EMAIL_HOST_USER or 'no-reply@experiencetech-tchad.com')
SERVER_EMAIL = env('SERVER_EMAIL', DEFAULT_FROM_EMAIL)

# Recipient of new quote request alerts
QUOTE_ADMIN_EMAIL = env('QUOTE_ADMIN_EMAIL', EMAIL_HOST_USER)

# 'strict' enforces the moderation transition graph, 'permissive' allows any
# status to follow any other.
QUOTE_TRANSITION_POLICY = env('QUOTE_TRANSITION_POLICY', 'strict').lower()

# --- Logging --------------------------------------------------------------

LOG_DIR = Path(env('LOG_DIR', str(BASE_DIR / 'logs')))
LOG_LEVEL = env('LOG_LEVEL', 'INFO').upper()
os.makedirs(LOG_DIR, exist_ok=True)


def _rotating(filename, level):
    return {
        'level': level,
        'class': 'logging.handlers.RotatingFileHandler',
        'filename': LOG_DIR / filename,
        'maxBytes': 10 * 1024 * 1024,
        'backupCount': 5,
        'formatter': 'verbose',
    }


def _app_logger(*handlers):
    return {'handlers': list(handlers), 'level': LOG_LEVEL, 'propagate': False}


LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} [{process:d}] {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {'level': LOG_LEVEL, 'class': 'logging.StreamHandler', 'formatter': 'verbose'},
        'app_file': _rotating('xptech.log', LOG_LEVEL),
        'error_file': _rotating('errors.log', 'ERROR'),
    },
    'root': {'handlers': ['console', 'app_file'], 'level': LOG_LEVEL},
    'loggers': {
        'django': _app_logger('console', 'app_file'),
        'django.request': {'handlers': ['error_file'], 'level': 'ERROR', 'propagate': False},
        'celery': _app_logger('console', 'app_file'),
        'core': _app_logger('console', 'app_file', 'error_file'),
        'quotes': _app_logger('console', 'app_file', 'error_file'),
        'users': _app_logger('console', 'app_file'),
    },
}
