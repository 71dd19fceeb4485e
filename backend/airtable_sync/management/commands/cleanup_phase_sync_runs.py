"""
Cleanup old phase sync runs to control database growth.
"""
import logging
from django.core.management.base import BaseCommand
from django.conf import settings

from airtable_sync.tasks import cleanup_phase_sync_runs_task

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Delete PhaseSyncRun records older than retention window."

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            type=int,
            default=None,
            help="Retention days (default settings.SYNC_RUN_RETENTION_DAYS or 90).",
        )

    def handle(self, *args, **options):
        days = options.get("days")
        if days is None:
            days = getattr(settings, "SYNC_RUN_RETENTION_DAYS", 90)

        count = cleanup_phase_sync_runs_task(days=days)
        self.stdout.write(self.style.SUCCESS(f"Deleted {count} phase sync runs older than {days} days."))
