"""
Django management command to sync kanban phases from Airtable views.
"""
import json
import logging
import signal
from django.core.management.base import BaseCommand, CommandError

from airtable_sync.models import PhaseSyncRun
from airtable_sync.phase_views import get_phase_views
from airtable_sync.sync_engine import PhaseSyncOrchestrator

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Sync properties from the Airtable phase views into the local database"

    def add_arguments(self, parser):
        parser.add_argument(
            "--view",
            action="append",
            dest="views",
            default=None,
            help="Only sync this view (repeatable). Default: all views. Orphan sweep only runs for all views.",
        )
        parser.add_argument("--manual", action="store_true", default=False, help="Record the run as MANUAL instead of AUTO")
        parser.add_argument("--json", action="store_true", default=False, help="Print the full result as JSON")

    def handle(self, *args, **options):
        views = options.get("views")
        try:
            get_phase_views(views)
        except ValueError as e:
            raise CommandError(str(e))

        run_type = PhaseSyncRun.RUN_MANUAL if options.get("manual") else PhaseSyncRun.RUN_AUTO
        orchestrator = PhaseSyncOrchestrator()

        def _stop(signum, frame):
            self.stdout.write(self.style.WARNING("Stop requested, finishing current view..."))
            orchestrator.request_stop()

        previous = signal.signal(signal.SIGTERM, _stop)
        self.stdout.write(self.style.SUCCESS("Starting Airtable phase sync..."))
        try:
            result = orchestrator.run(run_type=run_type, view_names=views)
        except Exception as e:
            logger.error(f"Airtable phase sync failed: {e}", exc_info=True)
            self.stdout.write(self.style.ERROR(f"Airtable phase sync failed: {e}"))
            raise
        finally:
            signal.signal(signal.SIGTERM, previous)

        if options.get("json"):
            self.stdout.write(json.dumps(result.to_dict(), indent=2, default=str))

        summary = (
            f"{result.status}: created={result.created} updated={result.updated} skipped={result.skipped} "
            f"errored={result.errored} orphaned={result.orphaned} triggered={result.triggered}"
        )
        if result.status == "rejected":
            self.stdout.write(self.style.WARNING(f"Sync not started: {'; '.join(result.details)}"))
        elif result.status == "failed":
            self.stdout.write(self.style.ERROR(f"Airtable phase sync {summary}"))
        else:
            self.stdout.write(self.style.SUCCESS(f"Airtable phase sync {summary}"))
        for view in result.views:
            self.stdout.write(
                f"  {view.name}: {view.status} fetched={view.fetched} created={view.created} "
                f"updated={view.updated} skipped={view.skipped} errored={view.errored}"
            )
        for line in result.details:
            self.stdout.write(f"  - {line}")
