from .base import *

DEBUG = True

ALLOWED_HOSTS = ['*']

CORS_ALLOW_HEADERS = [
    'sentry-trace',
    'Authorization',
    'Content-Type',
]

CORS_ORIGIN_ALLOW_ALL = True

SITE_URL = 'http://localhost:3000'

EMAIL_BACKEND = 'django.core.mail.backends.console.EmailBackend'

ENVIRONMENT = 'LOCAL'
