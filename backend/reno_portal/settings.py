"""
Django settings for reno_portal project.
"""

from pathlib import Path
from decouple import config

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent


# Quick-start development settings - unsuitable for production
# See https://docs.djangoproject.com/en/5.0/howto/deployment/checklist/

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = config('SECRET_KEY', default='django-insecure-change-this-in-production')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = config('DEBUG', default=True, cast=bool)

ALLOWED_HOSTS = config('ALLOWED_HOSTS', default='localhost,127.0.0.1', cast=lambda v: [s.strip() for s in v.split(',')])


# Application definition

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'rest_framework_simplejwt',
    'corsheaders',
    'django_filters',
    'properties',
    'airtable_sync',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'reno_portal.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [BASE_DIR / 'templates'],
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

WSGI_APPLICATION = 'reno_portal.wsgi.application'


# Database
# https://docs.djangoproject.com/en/5.0/ref/settings/#databases

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': config('DB_NAME', default='reno_portal'),
        'USER': config('DB_USER', default='postgres'),
        'PASSWORD': config('DB_PASSWORD', default='postgres'),
        'HOST': config('DB_HOST', default='localhost'),
        'PORT': config('DB_PORT', default='5432'),
    }
}


# Cache (also backs the sync locks, so it must be shared between workers in production)
REDIS_URL = config('REDIS_URL', default='')

if REDIS_URL:
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.redis.RedisCache',
            'LOCATION': REDIS_URL,
        }
    }
else:
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'reno-portal',
        }
    }


# Password validation
# https://docs.djangoproject.com/en/5.0/ref/settings/#auth-password-validators

AUTH_PASSWORD_VALIDATORS = [
    {
        'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',
    },
    {
        'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator',
    },
]


# Internationalization
# https://docs.djangoproject.com/en/5.0/topics/i18n/

LANGUAGE_CODE = 'en-us'

TIME_ZONE = 'UTC'

USE_I18N = True

USE_TZ = True


# Static files (CSS, JavaScript, Images)
# https://docs.djangoproject.com/en/5.0/howto/static-files/

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# Default primary key field type
# https://docs.djangoproject.com/en/5.0/ref/settings/#default-auto-field

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# REST Framework settings
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rest_framework_simplejwt.authentication.JWTAuthentication',
    ),
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.IsAuthenticated',
    ),
    'DEFAULT_PAGINATION_CLASS': 'rest_framework.pagination.PageNumberPagination',
    'PAGE_SIZE': 50,
    'DEFAULT_FILTER_BACKENDS': [
        'django_filters.rest_framework.DjangoFilterBackend',
        'rest_framework.filters.SearchFilter',
        'rest_framework.filters.OrderingFilter',
    ],
}

# JWT Settings
from datetime import timedelta

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(hours=24),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=7),
    'ROTATE_REFRESH_TOKENS': True,
}

# CORS Settings
CORS_ALLOWED_ORIGINS = config(
    'CORS_ALLOWED_ORIGINS',
    default='http://localhost:3000,http://127.0.0.1:3000',
    cast=lambda v: [s.strip() for s in v.split(',') if s.strip()],
)

CORS_ALLOW_CREDENTIALS = True

# Airtable (system of record for the renovation pipeline)
AIRTABLE_API_KEY = config('AIRTABLE_API_KEY', default='')
AIRTABLE_BASE_ID = config('AIRTABLE_BASE_ID', default='')
AIRTABLE_API_URL = config('AIRTABLE_API_URL', default='https://api.airtable.com/v0')
AIRTABLE_PROPERTIES_TABLE_ID = config('AIRTABLE_PROPERTIES_TABLE_ID', default='tblmX19OTsj3cTHmA')
AIRTABLE_TIMEOUT = config('AIRTABLE_TIMEOUT', default=30, cast=int)
AIRTABLE_PAGE_SIZE = config('AIRTABLE_PAGE_SIZE', default=100, cast=int)
AIRTABLE_MAX_RETRIES = config('AIRTABLE_MAX_RETRIES', default=3, cast=int)
AIRTABLE_BACKOFF_SECONDS = config('AIRTABLE_BACKOFF_SECONDS', default=1.0, cast=float)

# Shared secrets for the inbound triggers. Leave blank to disable the endpoint.
AIRTABLE_WEBHOOK_SECRET = config('AIRTABLE_WEBHOOK_SECRET', default='')
CRON_SECRET = config('CRON_SECRET', default='')

# n8n categories extraction (budget PDF -> dynamic categories)
N8N_CATEGORIES_WEBHOOK_URL = config('N8N_CATEGORIES_WEBHOOK_URL', default='')
N8N_TIMEOUT = config('N8N_TIMEOUT', default=30, cast=int)
N8N_MAX_RETRIES = config('N8N_MAX_RETRIES', default=2, cast=int)

# Phase sync engine
SYNC_LOCK_TTL = config('SYNC_LOCK_TTL', default=60 * 30, cast=int)
SYNC_LOCK_RENEW_EVERY = config('SYNC_LOCK_RENEW_EVERY', default=50, cast=int)
SYNC_PROPERTY_LOCK_TTL = config('SYNC_PROPERTY_LOCK_TTL', default=120, cast=int)
SYNC_PROPERTY_LOCK_WAIT = config('SYNC_PROPERTY_LOCK_WAIT', default=10.0, cast=float)
SYNC_MAX_DETAILS = config('SYNC_MAX_DETAILS', default=50, cast=int)
SYNC_TRIGGER_EXTRACTION = config('SYNC_TRIGGER_EXTRACTION', default=True, cast=bool)
SYNC_RUN_RETENTION_DAYS = config('SYNC_RUN_RETENTION_DAYS', default=90, cast=int)

# Celery Configuration
CELERY_BROKER_URL = config('CELERY_BROKER_URL', default='redis://localhost:6379/0')
CELERY_RESULT_BACKEND = config('CELERY_RESULT_BACKEND', default='redis://localhost:6379/0')
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_ALWAYS_EAGER = config('CELERY_TASK_ALWAYS_EAGER', default=True, cast=bool)
CELERY_TASK_EAGER_PROPAGATES = config('CELERY_TASK_EAGER_PROPAGATES', default=True, cast=bool)

# Celery Beat Schedule (Periodic Tasks)
from celery.schedules import crontab
CELERY_BEAT_SCHEDULE = {
    'sync-airtable-phases-every-two-hours': {
        'task': 'airtable_sync.tasks.sync_airtable_phases_task',
        'schedule': crontab(minute=0, hour='*/2'),
    },
    'cleanup-phase-sync-runs-daily': {
        'task': 'airtable_sync.tasks.cleanup_phase_sync_runs_task',
        'schedule': crontab(minute=30, hour=3),
    },
}

# Logging Configuration
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {message}',
            'style': '{',
        },
        'simple': {
            'format': '{levelname} {message}',
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
        'level': 'INFO',
    },
    'loggers': {
        'airtable_sync': {
            'handlers': ['console'],
            'level': config('SYNC_LOG_LEVEL', default='INFO'),
            'propagate': False,
        },
        'properties': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
        'django': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
    },
}
