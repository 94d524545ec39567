import os
from pathlib import Path

import dj_database_url
from celery.schedules import crontab


PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
BASE_DIR = PROJECT_ROOT

SECRET_KEY = os.environ.get('SECRET_KEY', 'storefront-insecure-development-key')

DEBUG = os.environ.get('DEBUG', 'False') == 'True'

ALLOWED_HOSTS = []

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    # third party
    'corsheaders',
    'rest_framework',
    'rest_framework.authtoken',
    'django_filters',
    'drf_yasg',
    'mptt',
    'taggit',

    'shop.apps.ShopAppConfig',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'storefront.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'storefront.wsgi.application'

DATABASES = {
    'default': dj_database_url.config(
        default=f'sqlite:///{PROJECT_ROOT / "db.sqlite3"}',
        conn_max_age=600,
    )
}

AUTH_USER_MODEL = 'shop.User'

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'Africa/Johannesburg'
USE_I18N = True
USE_TZ = True

STATIC_URL = '/static/'
STATIC_ROOT = PROJECT_ROOT / 'static'

DEFAULT_AUTO_FIELD = 'django.db.models.AutoField'

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rest_framework.authentication.TokenAuthentication',
        'rest_framework.authentication.SessionAuthentication',
    ),
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.IsAuthenticated',
    ),
    'DEFAULT_FILTER_BACKENDS': (
        'django_filters.rest_framework.DjangoFilterBackend',
    ),
}

SWAGGER_SETTINGS = {
    'SECURITY_DEFINITIONS': {
        'Token': {'type': 'apiKey', 'name': 'Authorization', 'in': 'header'},
    },
}

CORS_ALLOW_CREDENTIALS = True

TAGGIT_CASE_INSENSITIVE = True

SITE_URL = os.environ.get('SITE_URL', 'http://localhost:3000')

# Email
EMAIL_BACKEND = 'django.core.mail.backends.console.EmailBackend'
EMAIL_FROM = os.environ.get('EMAIL_FROM', 'TeeMeYou <no-reply@teemeyou.shop>')
DEFAULT_FROM_EMAIL = EMAIL_FROM
ADMIN_EMAIL = os.environ.get('ADMIN_EMAIL', 'admin@teemeyou.shop')

# Celery
CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = os.environ.get('CELERY_RESULT_BACKEND', CELERY_BROKER_URL)
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_TIMEZONE = TIME_ZONE
CELERY_BEAT_SCHEDULE = {
    'promotion-schedule-sync': {
        'task': 'promotion_schedule_sync',
        'schedule': crontab(),
    },
    'pudo-locker-sync': {
        'task': 'pudo_locker_sync',
        'schedule': crontab(hour=2, minute=0),
    },
}

# YoCo payments
YOCO_API_URL = os.environ.get('YOCO_API_URL', 'https://payments.yoco.com/api')
YOCO_SECRET_KEY = os.environ.get('YOCO_SECRET_KEY', '')
YOCO_WEBHOOK_SECRET = os.environ.get('YOCO_WEBHOOK_SECRET', '')
YOCO_WEBHOOK_TOLERANCE = 180
YOCO_FEE_PERCENTAGE = '2.95'
YOCO_FEE_FIXED_CENTS = 200

# PUDO lockers
PUDO_API_URL = os.environ.get('PUDO_API_URL', 'https://api-pudo.co.za/lockers-data')
PUDO_API_KEY = os.environ.get('PUDO_API_KEY', '')
PUDO_CACHE_HOURS = 24
GEOCODER_URL = os.environ.get(
    'GEOCODER_URL', 'https://nominatim.openstreetmap.org/search')
GEOCODER_USER_AGENT = 'storefront-api/0.1'

# Shop
SHOP_DEFAULT_SHIPPING_COST = '85.00'
SHOP_VAT_RATE = os.environ.get('SHOP_VAT_RATE', '0')
SUPPLIER_URL_CHECK_TIMEOUT = 10

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'shop': {
            'handlers': ['console'],
            'level': os.environ.get('SHOP_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}

UNITTEST_MODE = False

ENVIRONMENT = 'BASE'
