"""
Settings for the test suite.

Production-shaped (DEBUG off) so startup validation and the gate behave as
deployed, with an in-memory database and test-only secrets.
"""
from config.settings import *  # noqa: F401,F403

DEBUG = False

SECRET_KEY = 'orgshell-test-secret-key-not-for-deployment'
IDP_JWT_SECRET = 'orgshell-test-identity-secret-0123456789abcdef'

ALLOWED_HOSTS = ['.local.test', 'localhost', 'testserver']

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
        'ATOMIC_REQUESTS': False,
    }
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
    }
}

WWW_URL = 'http://www.local.test'
APP_URL = 'http://app.local.test'
ADMIN_URL = 'http://admin.local.test'
OPS_URL = 'http://ops.local.test'

SECURE_SSL_REDIRECT = False
SECURE_HSTS_SECONDS = 0

# Individual tests switch this on.
RATELIMIT_ENABLE = False

SENTRY_DSN = None
