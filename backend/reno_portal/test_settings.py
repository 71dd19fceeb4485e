"""
Settings used by the pytest suite: SQLite, in-process cache, eager Celery.
"""
from .settings import *  # noqa: F401,F403

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'reno-portal-tests',
    }
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

AIRTABLE_API_KEY = 'test-key'
AIRTABLE_BASE_ID = 'appTest'
AIRTABLE_BACKOFF_SECONDS = 0
AIRTABLE_WEBHOOK_SECRET = 'webhook-secret'
CRON_SECRET = 'cron-secret'
N8N_CATEGORIES_WEBHOOK_URL = 'https://n8n.example.test/webhook/send_categories'
SYNC_PROPERTY_LOCK_WAIT = 0.2
SYNC_TRIGGER_EXTRACTION = False

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']
