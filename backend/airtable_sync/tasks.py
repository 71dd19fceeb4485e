"""
Celery tasks for the Airtable phase sync.
"""
import logging
from datetime import timedelta
from celery import shared_task
from django.conf import settings
from django.utils import timezone

from airtable_sync.models import PhaseSyncRun
from airtable_sync.sync_engine import run_phase_sync
from airtable_sync.triggers import trigger_pending_extractions

logger = logging.getLogger(__name__)


@shared_task
def sync_airtable_phases_task(run_type=PhaseSyncRun.RUN_AUTO, views=None):
    """
    Periodic (and queued manual) phase sync.
    """
    try:
        logger.info(f"Starting {run_type.lower()} Airtable phase sync...")
        result = run_phase_sync(run_type=run_type, views=views)
        logger.info(f"Airtable phase sync finished with status {result.status}")
        return result.to_dict()
    except Exception as e:
        logger.error(f"Error in Airtable phase sync: {e}", exc_info=True)
        raise


@shared_task
def trigger_categories_extraction_task():
    try:
        return trigger_pending_extractions()
    except Exception as e:
        logger.error(f"Error in categories extraction sweep: {e}", exc_info=True)
        raise


@shared_task
def cleanup_phase_sync_runs_task(days=None):
    """
    Delete PhaseSyncRun rows older than the retention window.
    """
    if days is None:
        days = getattr(settings, "SYNC_RUN_RETENTION_DAYS", 90)
    cutoff = timezone.now() - timedelta(days=days)
    deleted, _ = PhaseSyncRun.objects.filter(started_at__lt=cutoff).delete()
    logger.info(f"Deleted {deleted} phase sync runs older than {days} days")
    return deleted
