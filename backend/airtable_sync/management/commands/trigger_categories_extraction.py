"""
Send pending budgets to the n8n categories extraction workflow.
"""
import logging
from django.core.management.base import BaseCommand

from airtable_sync.triggers import CategoriesExtractionTrigger, trigger_pending_extractions

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Trigger categories extraction for reno-in-progress properties with a budget and no categories"

    def handle(self, *args, **options):
        trigger = CategoriesExtractionTrigger()
        if not trigger.is_configured:
            self.stdout.write(self.style.ERROR("N8N_CATEGORIES_WEBHOOK_URL not configured."))
            return

        stats = trigger_pending_extractions(trigger)
        self.stdout.write(self.style.SUCCESS(
            f"Extraction sweep done: {stats['eligible']} eligible, {stats['triggered']} triggered, "
            f"{stats['failed']} failed."
        ))
