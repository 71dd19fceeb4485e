"""
Reset a property to the initial kanban phase (upcoming-settlements).
"""
import logging
from django.core.management.base import BaseCommand, CommandError

from properties.services import find_property, reset_property_to_initial_phase

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Delete a property's inspections, clear workflow fields and reset it to upcoming-settlements"

    def add_arguments(self, parser):
        parser.add_argument("property_id", type=str, help="Unique ID From Engagements or internal id")
        parser.add_argument(
            "--no-airtable",
            action="store_true",
            default=False,
            help="Do not push the reset status back to Airtable",
        )

    def handle(self, *args, **options):
        property_id = options["property_id"]
        prop = find_property(property_id)
        if prop is None:
            raise CommandError(f"Property {property_id} not found")

        try:
            result = reset_property_to_initial_phase(prop, push_to_airtable=not options["no_airtable"])
        except Exception as e:
            logger.error(f"Reset of {property_id} failed: {e}", exc_info=True)
            self.stdout.write(self.style.ERROR(f"Reset failed: {e}"))
            raise

        cascade = result.cascade
        self.stdout.write(self.style.SUCCESS(
            f"Property {prop.unique_id} reset: deleted {cascade.inspections} inspections, "
            f"{cascade.zones} zones, {cascade.elements} elements."
        ))
        if not options["no_airtable"]:
            if result.airtable_updated:
                self.stdout.write(self.style.SUCCESS("Airtable updated."))
            else:
                self.stdout.write(self.style.WARNING("Airtable not updated (see logs)."))
