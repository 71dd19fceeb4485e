"""
Celery application for reno_portal.
"""
import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "reno_portal.settings")

app = Celery("reno_portal")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
