"""
Django settings for the OrgShell authorization core.
"""
import os
from pathlib import Path
import environ
from corsheaders.defaults import default_headers
import sentry_sdk
from sentry_sdk.integrations.django import DjangoIntegration

# Build paths inside the project
BASE_DIR = Path(__file__).resolve().parent.parent

# Built-in development defaults; refused at startup when DEBUG is off.
DEVELOPMENT_SECRET_KEY = 'django-insecure-orgshell-development-only'
DEVELOPMENT_IDP_JWT_SECRET = 'orgshell-development-identity-secret-do-not-deploy'
DEVELOPMENT_SECRETS = (DEVELOPMENT_SECRET_KEY, DEVELOPMENT_IDP_JWT_SECRET)

# Initialize environment variables
env = environ.Env(
    DEBUG=(bool, False),
    ALLOWED_HOSTS=(list, []),
    DB_CONN_MAX_AGE=(int, 600),
    RATE_LIMIT_ENABLED=(bool, True),
    JSON_LOGS=(bool, False),
    LOG_LEVEL=(str, 'INFO'),
)

# Read .env file if it exists
environ.Env.read_env(os.path.join(BASE_DIR, '.env'))

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = env('SECRET_KEY', default=DEVELOPMENT_SECRET_KEY)

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = env('DEBUG')

ALLOWED_HOSTS = env('ALLOWED_HOSTS')

USE_X_FORWARDED_HOST = True
SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')

# Application definition
INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.staticfiles',

    # Third-party apps
    'rest_framework',
    'drf_spectacular',
    'corsheaders',
    'django_ratelimit',

    # OrgShell apps
    'apps.core',
    'apps.rbac',
    'apps.organizations',
    'apps.audit',
    'apps.gate',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',

    # Custom middleware
    'apps.core.middleware.RequestIDMiddleware',
    'apps.rbac.middleware.IdentityMiddleware',
    'apps.gate.middleware.RequestGateMiddleware',
    'django_ratelimit.middleware.RatelimitMiddleware',
]

ROOT_URLCONF = 'config.urls'

# The gate rewrites paths to /<domain>/...; a slash redirect would leak the
# rewritten path to the client.
APPEND_SLASH = False

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
            ],
        },
    },
]

WSGI_APPLICATION = 'config.wsgi.application'

# Database
DATABASES = {
    'default': env.db('DATABASE_URL', default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}"),
}
DATABASES['default']['CONN_MAX_AGE'] = env('DB_CONN_MAX_AGE')

# Configure based on database engine
if 'postgresql' in DATABASES['default']['ENGINE']:
    DATABASES['default']['OPTIONS'] = {
        'connect_timeout': 10,
    }

# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

# Static files
STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Mirror of the identity provider's subjects
AUTH_USER_MODEL = 'rbac.User'

# ============================================================================
# DOMAINS AND IDENTITY
# ============================================================================

WWW_URL = env('WWW_URL', default='http://www.localhost:3000')
APP_URL = env('APP_URL', default='http://app.localhost:3000')
ADMIN_URL = env('ADMIN_URL', default='http://admin.localhost:3000')
OPS_URL = env('OPS_URL', default='http://ops.localhost:3000')

# Tokens are issued by the external identity provider; this service only verifies them.
IDP_JWT_SECRET = env('IDP_JWT_SECRET', default=DEVELOPMENT_IDP_JWT_SECRET)
IDP_JWT_ALGORITHM = env('IDP_JWT_ALGORITHM', default='HS256')
IDP_JWT_AUDIENCE = env('IDP_JWT_AUDIENCE', default=None)
IDP_ACCESS_TOKEN_COOKIE = env('IDP_ACCESS_TOKEN_COOKIE', default='sb-access-token')

# Membership in this organization grants the ops role.
OPS_ORGANIZATION_ID = env('OPS_ORGANIZATION_ID', default='00000000-0000-0000-0000-000000000099')
OPS_ORGANIZATION_SLUG = env('OPS_ORGANIZATION_SLUG', default='ops-system')

RESERVED_ORG_SLUGS = env.list(
    'RESERVED_ORG_SLUGS',
    default=['www', 'app', 'admin', 'ops', 'api', 'static', 'assets'],
)

# REST Framework
REST_FRAMEWORK = {
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
    'DEFAULT_PAGINATION_CLASS': 'rest_framework.pagination.PageNumberPagination',
    'PAGE_SIZE': 50,
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'DEFAULT_PARSER_CLASSES': [
        'rest_framework.parsers.JSONParser',
    ],
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'apps.core.authentication.MiddlewareAuthentication',  # Use user from IdentityMiddleware
    ],
    'DEFAULT_PERMISSION_CLASSES': [],
    'UNAUTHENTICATED_USER': 'django.contrib.auth.models.AnonymousUser',
    'EXCEPTION_HANDLER': 'apps.core.exceptions.custom_exception_handler',
}

# DRF Spectacular (OpenAPI)
SPECTACULAR_SETTINGS = {
    'TITLE': 'OrgShell API',
    'DESCRIPTION': '''
Multi-tenant organization shell: domain routing, organization resolution and
role-based authorization.

## Domains

The request host selects a handler tree:

| Host | Tree | Access |
|------|------|--------|
| `www.*` / apex | public | anyone |
| `app.*`, `<org>.app.*` | app | member, admin, owner |
| `admin.*`, `<org>.admin.*` | admin | admin, owner |
| `ops.*` | ops | ops staff only; everyone else gets 404 |

An organization is selected by `/org/<slug>/` or `/o/<slug>/` in the path, the
`?org=<slug>` query parameter, a tenant subdomain, or the caller's active
organization, in that order.

## Authentication

Access tokens are issued by the external identity provider and sent as
`Authorization: Bearer <token>` or in the provider's session cookie.

## Rate Limiting

Mutating endpoints are rate limited per user (per IP when anonymous). When a
limit is exceeded the API returns `429 Too Many Requests` with a
`Retry-After` header.
    ''',
    'VERSION': '1.0.0',
    'SERVE_INCLUDE_SCHEMA': False,
    'COMPONENT_SPLIT_REQUEST': True,
    'SECURITY': [
        {
            'JWTAuth': []
        }
    ],
    'APPEND_COMPONENTS': {
        'securitySchemes': {
            'JWTAuth': {
                'type': 'http',
                'scheme': 'bearer',
                'bearerFormat': 'JWT',
                'description': 'Access token issued by the identity provider.',
            }
        }
    },
    'TAGS': [
        {'name': 'App', 'description': 'Current subject and organization switching'},
        {'name': 'Admin - Members', 'description': 'Member invite, update and removal'},
        {'name': 'Admin - Organization Settings', 'description': 'Ownership transfer, freeze, unfreeze and archive'},
        {'name': 'Admin - Audit', 'description': 'Audit log viewing for compliance'},
        {'name': 'Ops', 'description': 'Operator lifecycle of organizations and members'},
        {'name': 'Public', 'description': 'Public landing'},
        {'name': 'Health', 'description': 'Liveness and database connectivity'},
    ],
}

# ============================================================================
# SECURITY SETTINGS
# ============================================================================

# HTTPS Enforcement (Production Only)
if not DEBUG:
    SECURE_SSL_REDIRECT = env.bool('SECURE_SSL_REDIRECT', default=True)
    SECURE_HSTS_SECONDS = 31536000  # 1 year
    SECURE_HSTS_INCLUDE_SUBDOMAINS = True
    SECURE_HSTS_PRELOAD = True
    CSRF_COOKIE_SECURE = True
    CSRF_COOKIE_HTTPONLY = True
    CSRF_COOKIE_SAMESITE = 'Lax'
else:
    SECURE_SSL_REDIRECT = False
    SECURE_HSTS_SECONDS = 0
    CSRF_COOKIE_SECURE = False

# Security Headers (All Environments)
SECURE_CONTENT_TYPE_NOSNIFF = True
X_FRAME_OPTIONS = 'DENY'

# CORS Configuration
# Only the shell's own domains may call the API with credentials.
CORS_ALLOWED_ORIGINS = env.list(
    'CORS_ALLOWED_ORIGINS',
    default=[WWW_URL.rstrip('/'), APP_URL.rstrip('/'), ADMIN_URL.rstrip('/'), OPS_URL.rstrip('/')],
)
if not DEBUG:
    for origin in CORS_ALLOWED_ORIGINS:
        if not origin.startswith('https://'):
            import warnings
            warnings.warn(f"CORS origin should use HTTPS in production: {origin}")

CSRF_TRUSTED_ORIGINS = CORS_ALLOWED_ORIGINS

CORS_ALLOW_CREDENTIALS = True
CORS_ALLOW_HEADERS = (*default_headers, 'x-request-id')

# Cache (rate limit counters)
CACHES = {
    'default': env.cache('CACHE_URL', default='locmemcache://'),
}

# Rate Limiting
RATE_LIMIT_ENABLED = env('RATE_LIMIT_ENABLED')

RATELIMIT_USE_CACHE = 'default'
RATELIMIT_ENABLE = RATE_LIMIT_ENABLED

# Use custom view for rate limit responses (returns 429 instead of 403)
RATELIMIT_VIEW = 'apps.core.exceptions.ratelimit_view'

# Local-memory cache is per process; rate limits need a shared CACHE_URL across workers.
SILENCED_SYSTEM_CHECKS = ['django_ratelimit.E003', 'django_ratelimit.W001']

# Logging Configuration
LOG_LEVEL = env('LOG_LEVEL')
JSON_LOGS = env('JSON_LOGS')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'json': {
            '()': 'apps.core.logging.JSONFormatter',
        },
        'verbose': {
            '()': 'apps.core.log_sanitizer.SanitizingFormatter',
            'format': '{levelname} {asctime} {name} [{request_id}] {message}',
            'style': '{',
        },
    },
    'filters': {
        'sanitize': {
            '()': 'apps.core.log_sanitizer.SanitizingFilter',
        },
        'request_context': {
            '()': 'apps.core.middleware.LoggingFilter',
        },
    },
    'handlers': {
        'console': {
            'level': LOG_LEVEL,
            'class': 'logging.StreamHandler',
            'formatter': 'json' if JSON_LOGS else 'verbose',
            'filters': ['request_context', 'sanitize'],
        },
        'security': {
            'level': 'INFO',
            'class': 'logging.StreamHandler',
            'formatter': 'json' if JSON_LOGS else 'verbose',
            'filters': ['request_context', 'sanitize'],
        },
    },
    'root': {
        'handlers': ['console'],
        'level': LOG_LEVEL,
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
        'django.request': {
            'handlers': ['console'],
            'level': 'ERROR',
            'propagate': False,
        },
        'apps': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
        'security': {
            'handlers': ['security'],
            'level': 'INFO',
            'propagate': False,
        },
    },
}

# Sentry Configuration
SENTRY_DSN = env('SENTRY_DSN', default=None)
SENTRY_ENVIRONMENT = env('SENTRY_ENVIRONMENT', default='development')
SENTRY_RELEASE = env('SENTRY_RELEASE', default=None)

if SENTRY_DSN:
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        integrations=[
            DjangoIntegration(),
        ],
        environment=SENTRY_ENVIRONMENT,
        release=SENTRY_RELEASE,
        traces_sample_rate=0.1 if not DEBUG else 1.0,
        send_default_pii=False,
        before_send=lambda event, hint: event if not DEBUG else None,
        attach_stacktrace=True,
        max_breadcrumbs=50,
    )
