from .base import *

SECRET_KEY = 'storefront-test-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.dummy.DummyCache',
    }
}

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

YOCO_SECRET_KEY = 'sk_test_storefront'
YOCO_WEBHOOK_SECRET = 'whsec_c3RvcmVmcm9udC13ZWJob29rLXNlY3JldA=='
PUDO_API_KEY = 'pudo-test-key'

UNITTEST_MODE = True

ENVIRONMENT = 'TEST'
