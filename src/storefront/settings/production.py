import os

import sentry_sdk
from django.core.exceptions import ImproperlyConfigured
from sentry_sdk.integrations.django import DjangoIntegration
from sentry_sdk.integrations.celery import CeleryIntegration

from .base import *


if not os.environ.get('DATABASE_URL'):
    raise ImproperlyConfigured('DATABASE_URL is required.')

SITE_URL = os.environ.get('SITE_URL', 'https://teemeyou.shop')

ALLOWED_HOSTS = [
    host.strip() for host in
    os.environ.get('ALLOWED_HOSTS', '.teemeyou.shop').split(',')
]

CORS_ORIGIN_WHITELIST = (
    'https://teemeyou.shop',
    'https://www.teemeyou.shop',
)

SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True
CSRF_COOKIE_HTTPONLY = True

EMAIL_BACKEND = 'django.core.mail.backends.smtp.EmailBackend'
EMAIL_HOST = os.environ.get('EMAIL_HOST', 'smtp.gmail.com')
EMAIL_HOST_USER = os.environ.get('EMAIL_HOST_USER', '')
EMAIL_HOST_PASSWORD = os.environ.get('EMAIL_HOST_PASSWORD', '')
EMAIL_USE_TLS = True
EMAIL_PORT = 587

sentry_sdk.init(
    environment="production",
    dsn=os.environ.get('SENTRY_DSN'),
    integrations=[DjangoIntegration(), CeleryIntegration()],
    traces_sample_rate=0.2,
    # Associates errors with the authenticated user
    send_default_pii=True
)

ENVIRONMENT = 'PRODUCTION'
