# backend/airtable_sync/sync_engine.py
"""
Airtable -> Property phase sync engine.

Design goals:
- Pull every phase view from Airtable, most advanced phase first
- Upsert one Property per record, each in its own transaction, so one bad record never sinks the batch
- Keep reno_phase and Set Up Status consistent through the phase enforcer
- Move properties that left every view to "orphaned", but only after a clean fetch of all views
- Provide a structured SyncRunResult for scheduled, manual and webhook runs

This module does NOT depend on DRF views. Management commands, Celery tasks and API views call this.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DataError, IntegrityError, transaction
from django.utils import timezone

from properties.models import Project, Property, RenoPhase

from .exceptions import AirtableError, PropertyLocked, RecordTranslationError
from .locks import PropertyLock, SyncLock
from .models import PhaseSyncRun
from .phase_views import ForcedOutcome, PHASE_VIEWS, SyncView, get_phase_views, resolve_view_outcome
from .phases import enforce_phase_consistency, map_status_to_phase, status_for_phase
from .reporting import (
    STATUS_FAILED,
    STATUS_PARTIAL,
    STATUS_SUCCESS,
    VIEW_FAILED,
    VIEW_NOT_RUN,
    VIEW_OK,
    SyncRunReport,
    SyncRunResult,
    ViewResult,
    rejected_result,
)
from .services import AirtableClient, ExternalRecord
from .translator import TranslatedRecord, translate_record
from .triggers import CategoriesExtractionTrigger

logger = logging.getLogger(__name__)


# Blank source values never erase these columns
PROTECTED_FIELDS = ("budget_pdf_url", "airtable_properties_record_id")

RECORD_ERRORS = (IntegrityError, DataError, ValidationError, RecordTranslationError, PropertyLocked)

ACTION_CREATED = "created"
ACTION_UPDATED = "updated"
ACTION_UNCHANGED = "unchanged"
ACTION_NOT_LINKABLE = "not_linkable"

RUN_STATUS_BY_RESULT = {
    STATUS_SUCCESS: PhaseSyncRun.STATUS_SUCCESS,
    STATUS_PARTIAL: PhaseSyncRun.STATUS_PARTIAL,
    STATUS_FAILED: PhaseSyncRun.STATUS_FAILED,
}


@dataclass(frozen=True)
class UpsertOutcome:
    action: str
    property: Optional[Property] = None
    changed_fields: tuple = ()


def _resolve_project(project_airtable_id: Optional[str]) -> Optional[Project]:
    if not project_airtable_id:
        return None
    return Project.objects.filter(airtable_project_id=project_airtable_id).first()


def _merge_values(prop: Property, translated: TranslatedRecord) -> Dict[str, Any]:
    changes: Dict[str, Any] = {}
    for name, value in translated.values.items():
        if value is None and name in PROTECTED_FIELDS:
            continue
        if getattr(prop, name) != value:
            changes[name] = value
    project = _resolve_project(translated.project_airtable_id)
    if project is not None and prop.project_id != project.id:
        changes["project"] = project
    return changes


def upsert_property(
    translated: TranslatedRecord,
    forced: Optional[ForcedOutcome] = None,
    fallback_phase: Optional[str] = None,
    allow_create: bool = True,
) -> UpsertOutcome:
    """
    Insert or update the Property for one translated record.

    Runs under the per-property lock and inside one transaction. A forced
    outcome sets the phase, and the status too when it carries one; otherwise
    the record's own status is written and the phase follows it through the
    mapper. ``fallback_phase`` is only used for brand new rows whose status
    does not map.
    """
    forced_status = None
    if forced is not None:
        forced_status = forced.status if forced.status is not None else translated.set_up_status

    with PropertyLock(translated.unique_id):
        with transaction.atomic():
            prop = (
                Property.objects.select_for_update()
                .filter(unique_id=translated.unique_id)
                .first()
            )

            if prop is None:
                if not allow_create:
                    return UpsertOutcome(ACTION_NOT_LINKABLE)
                if forced is not None:
                    phase, status = forced.phase, forced_status
                else:
                    status = translated.set_up_status
                    phase = map_status_to_phase(status) or fallback_phase
                values = dict(translated.values)
                prop = Property(
                    unique_id=translated.unique_id,
                    project=_resolve_project(translated.project_airtable_id),
                    set_up_status=status,
                    reno_phase=RenoPhase(phase).value if phase else None,
                    last_synced_at=timezone.now(),
                    **values,
                )
                prop.full_clean(validate_unique=False)
                prop.save()
                return UpsertOutcome(ACTION_CREATED, prop)

            changes = _merge_values(prop, translated)
            if forced is not None:
                changes.update(enforce_phase_consistency(
                    prop.reno_phase, prop.set_up_status, new_phase=forced.phase, new_status=forced_status,
                ))
            else:
                changes.update(enforce_phase_consistency(
                    prop.reno_phase, prop.set_up_status, new_status=translated.set_up_status,
                ))

            if not changes:
                return UpsertOutcome(ACTION_UNCHANGED, prop)

            for name, value in changes.items():
                setattr(prop, name, value)
            prop.last_synced_at = timezone.now()
            prop.full_clean(validate_unique=False)
            update_fields = list(changes.keys()) + ["last_synced_at", "updated_at"]
            prop.save(update_fields=update_fields)
            return UpsertOutcome(ACTION_UPDATED, prop, tuple(changes.keys()))


class PhaseReconciler:
    """
    Reconciles one view into the store. Shares ``claimed`` and ``seen_record_ids``
    with the other views of the same run. ``keepalive`` is called every
    SYNC_LOCK_RENEW_EVERY records so a long view keeps the run lock alive.
    """

    def __init__(
        self,
        client: AirtableClient,
        report: SyncRunReport,
        trigger: Optional[CategoriesExtractionTrigger] = None,
        claimed: Optional[Dict[str, str]] = None,
        seen_record_ids: Optional[Set[str]] = None,
        keepalive: Optional[Callable[[], None]] = None,
    ) -> None:
        self.client = client
        self.report = report
        self.trigger = trigger
        self.claimed = claimed if claimed is not None else {}
        self.seen_record_ids = seen_record_ids if seen_record_ids is not None else set()
        self.keepalive = keepalive
        self.renew_every = max(1, int(getattr(settings, "SYNC_LOCK_RENEW_EVERY", 50)))

    def reconcile(self, view: SyncView) -> ViewResult:
        counts = {"fetched": 0, "created": 0, "updated": 0, "skipped": 0, "errored": 0, "triggered": 0}

        try:
            records = self.client.fetch_view(view.table_id, view.view_id)
        except AirtableError as e:
            logger.error("Fetching view %s (%s) failed: %s", view.name, view.view_id, e)
            self.report.add_detail(f"View {view.name} failed: {e}")
            return ViewResult(name=view.name, phase=str(view.phase), status=VIEW_FAILED, error=str(e))

        counts["fetched"] = len(records)
        logger.info("View %s: %s records", view.name, len(records))

        for index, record in enumerate(records, start=1):
            self.seen_record_ids.add(record.record_id)
            self._process(view, record, counts)
            if self.keepalive is not None and index % self.renew_every == 0:
                self.keepalive()

        logger.info(
            "View %s done: created=%s updated=%s skipped=%s errored=%s triggered=%s",
            view.name, counts["created"], counts["updated"], counts["skipped"], counts["errored"], counts["triggered"],
        )
        return ViewResult(name=view.name, phase=str(view.phase), status=VIEW_OK, **counts)

    def _process(self, view: SyncView, record: ExternalRecord, counts: Dict[str, int]) -> None:
        try:
            translated = translate_record(record)
        except RecordTranslationError as e:
            counts["errored"] += 1
            self.report.add_detail(f"Error {record.record_id}: {e}")
            logger.warning("Record %s in view %s not translated: %s", record.record_id, view.name, e)
            return
        except Exception as e:
            counts["errored"] += 1
            self.report.add_detail(f"Error {record.record_id}: {e}")
            logger.error("Record %s in view %s crashed the translator", record.record_id, view.name, exc_info=True)
            return

        if translated is None:
            counts["skipped"] += 1
            return

        owner = self.claimed.get(translated.unique_id)
        if owner is not None:
            logger.debug("%s already claimed by view %s, skipping in %s", translated.unique_id, owner, view.name)
            counts["skipped"] += 1
            return
        self.claimed[translated.unique_id] = view.name

        forced = resolve_view_outcome(view, translated.set_up_status, translated.values.get("stage"))
        try:
            outcome = upsert_property(translated, forced=forced, fallback_phase=view.phase)
        except RECORD_ERRORS as e:
            counts["errored"] += 1
            self.report.add_detail(f"Error {translated.unique_id}: {e}")
            logger.warning("Upsert failed for %s (view %s): %s", translated.unique_id, view.name, e)
            return
        except Exception as e:
            counts["errored"] += 1
            self.report.add_detail(f"Error {translated.unique_id}: {e}")
            logger.error("Upsert crashed for %s (view %s)", translated.unique_id, view.name, exc_info=True)
            return

        if outcome.action == ACTION_CREATED:
            counts["created"] += 1
        elif outcome.action == ACTION_UPDATED:
            counts["updated"] += 1

        if self.trigger is not None and outcome.property is not None:
            if _fire_trigger(self.trigger, outcome.property, self.report):
                counts["triggered"] += 1


def _fire_trigger(trigger: CategoriesExtractionTrigger, prop: Property, report: SyncRunReport) -> bool:
    try:
        return trigger.trigger_if_needed(prop)
    except Exception as e:
        logger.error("Extraction trigger crashed for %s", prop.unique_id, exc_info=True)
        report.add_detail(f"Trigger error {prop.unique_id}: {e}")
        return False


def build_trigger() -> Optional[CategoriesExtractionTrigger]:
    if not getattr(settings, "SYNC_TRIGGER_EXTRACTION", True):
        return None
    trigger = CategoriesExtractionTrigger()
    return trigger if trigger.is_configured else None


class PhaseSyncOrchestrator:
    def __init__(
        self,
        client: Optional[AirtableClient] = None,
        trigger: Optional[CategoriesExtractionTrigger] = None,
        use_default_trigger: bool = True,
    ) -> None:
        self.client = client or AirtableClient()
        if trigger is None and use_default_trigger:
            trigger = build_trigger()
        self.trigger = trigger
        self._stop = threading.Event()

    def request_stop(self) -> None:
        """Finish the current view, then stop. Remaining views are reported as not run."""
        logger.info("Stop requested for phase sync")
        self._stop.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    # -----------------------------
    # Full pass
    # -----------------------------

    def run(self, run_type: str = PhaseSyncRun.RUN_AUTO, view_names: Optional[Iterable[str]] = None) -> SyncRunResult:
        """
        Run every configured view (or the named subset) under the single-flight lock.
        Returns a rejected result immediately when another run holds the lock.
        """
        views = get_phase_views(view_names)
        lock = SyncLock()
        if not lock.acquire():
            logger.warning("Phase sync (%s) rejected: another sync is running", run_type)
            return rejected_result(run_type, "Another sync is already running")

        try:
            return self._run_locked(run_type, views, lock, full_set=len(views) == len(PHASE_VIEWS))
        finally:
            lock.release()

    def _renew_lock(self, lock: SyncLock) -> None:
        if not lock.extend():
            logger.error("Phase sync lost its lock, stopping after the current view")
            self.request_stop()

    def _run_locked(self, run_type: str, views: List[SyncView], lock: SyncLock, full_set: bool) -> SyncRunResult:
        report = SyncRunReport(run_type)
        run = PhaseSyncRun.objects.create(
            run_type=run_type,
            status=PhaseSyncRun.STATUS_RUNNING,
            views=[v.name for v in views],
            stats={},
        )
        report.run_id = run.id
        logger.info("Phase sync %s started (%s): %s", run.id, run_type, ", ".join(v.name for v in views))

        try:
            reconciler = PhaseReconciler(
                self.client, report, trigger=self.trigger, keepalive=lambda: self._renew_lock(lock),
            )
            for view in views:
                if not self.stop_requested:
                    self._renew_lock(lock)
                if self.stop_requested:
                    report.add_view(ViewResult(name=view.name, phase=str(view.phase), status=VIEW_NOT_RUN))
                    report.add_detail(f"View {view.name} not run: stop requested")
                    continue
                report.add_view(reconciler.reconcile(view))

            if full_set and all(v.status == VIEW_OK for v in report.views):
                report.orphaned = self._sweep_orphans(reconciler.seen_record_ids)
                if report.orphaned:
                    report.add_detail(f"Moved to orphaned: {report.orphaned} properties")
            else:
                logger.info("Orphan sweep skipped (partial view set or failed views)")

            result = report.build()
        except Exception as e:
            logger.error("Phase sync %s failed", run.id, exc_info=True)
            report.add_detail(f"Sync failed: {e}")
            result = report.build(status=STATUS_FAILED)
            self._finish_run(run, result, error=str(e))
            return result

        self._finish_run(run, result)
        logger.info(
            "Phase sync %s finished: %s created=%s updated=%s skipped=%s errored=%s orphaned=%s triggered=%s",
            run.id, result.status, result.created, result.updated, result.skipped,
            result.errored, result.orphaned, result.triggered,
        )
        return result

    def _sweep_orphans(self, seen_record_ids: Set[str]) -> int:
        """
        Properties synced from Airtable earlier but present in no view now move to orphaned.
        Each row goes through the per-property lock and the phase enforcer; a row
        held by a concurrent write is left for the next pass.
        """
        candidates = (
            Property.objects.exclude(airtable_record_id__isnull=True)
            .exclude(airtable_record_id="")
            .exclude(airtable_record_id__in=seen_record_ids)
            .exclude(reno_phase=RenoPhase.ORPHANED)
            .values_list("unique_id", flat=True)
        )
        orphan_status = status_for_phase(RenoPhase.ORPHANED)
        count = 0
        for unique_id in list(candidates):
            lock = PropertyLock(unique_id, wait=0)
            if not lock.acquire():
                logger.info("Orphan sweep skipped %s: property is being written", unique_id)
                continue
            try:
                with transaction.atomic():
                    prop = Property.objects.select_for_update().filter(unique_id=unique_id).first()
                    if prop is None or prop.reno_phase == RenoPhase.ORPHANED:
                        continue
                    changes = enforce_phase_consistency(
                        prop.reno_phase, prop.set_up_status, new_phase=RenoPhase.ORPHANED, new_status=orphan_status,
                    )
                    for name, value in changes.items():
                        setattr(prop, name, value)
                    prop.last_synced_at = timezone.now()
                    prop.save(update_fields=list(changes.keys()) + ["last_synced_at", "updated_at"])
                    count += 1
            finally:
                lock.release()
        if count:
            logger.info("Moved %s properties to orphaned", count)
        return count

    def _finish_run(self, run: PhaseSyncRun, result: SyncRunResult, error: Optional[str] = None) -> None:
        run.status = RUN_STATUS_BY_RESULT.get(result.status, PhaseSyncRun.STATUS_FAILED)
        run.finished_at = result.finished_at
        run.stats = result.to_dict()
        run.error = error
        run.save(update_fields=["status", "finished_at", "stats", "error"])

    # -----------------------------
    # Webhook path
    # -----------------------------

    def run_records(self, table_id: str, record_ids: Iterable[str]) -> SyncRunResult:
        """
        Re-sync specific records after an Airtable change notification.
        Takes only the per-property lock, so it can run alongside a full pass.
        Only properties that already exist are updated; phase follows the status text.
        """
        record_ids = [r for r in dict.fromkeys(record_ids) if r]
        report = SyncRunReport(PhaseSyncRun.RUN_WEBHOOK)
        run = PhaseSyncRun.objects.create(
            run_type=PhaseSyncRun.RUN_WEBHOOK,
            status=PhaseSyncRun.STATUS_RUNNING,
            views=[],
            stats={"table_id": table_id, "record_ids": record_ids},
        )
        report.run_id = run.id

        fetch_errors = 0
        for record_id in record_ids:
            try:
                record = self.client.get_record(table_id, record_id)
            except AirtableError as e:
                fetch_errors += 1
                report.errored += 1
                report.add_detail(f"Error fetching {record_id}: {e}")
                logger.error("Webhook fetch of %s/%s failed: %s", table_id, record_id, e)
                continue
            self._process_single(record, report)

        if record_ids and fetch_errors == len(record_ids):
            status = STATUS_FAILED
        elif report.errored:
            status = STATUS_PARTIAL if len(record_ids) > 1 else STATUS_FAILED
        else:
            status = STATUS_SUCCESS
        result = report.build(status=status)
        self._finish_run(run, result)
        logger.info(
            "Webhook sync %s finished: %s updated=%s skipped=%s errored=%s",
            run.id, result.status, result.updated, result.skipped, result.errored,
        )
        return result

    def run_single_record(self, table_id: str, record_id: str) -> SyncRunResult:
        return self.run_records(table_id, [record_id])

    def _process_single(self, record: ExternalRecord, report: SyncRunReport) -> None:
        try:
            translated = translate_record(record)
        except RecordTranslationError as e:
            report.errored += 1
            report.add_detail(f"Error {record.record_id}: {e}")
            return
        except Exception as e:
            report.errored += 1
            report.add_detail(f"Error {record.record_id}: {e}")
            logger.error("Webhook record %s crashed the translator", record.record_id, exc_info=True)
            return
        if translated is None:
            report.skipped += 1
            report.add_detail(f"Skipped {record.record_id}: no unique id")
            return

        try:
            outcome = upsert_property(translated, allow_create=False)
        except RECORD_ERRORS as e:
            report.errored += 1
            report.add_detail(f"Error {translated.unique_id}: {e}")
            logger.warning("Webhook upsert failed for %s: %s", translated.unique_id, e)
            return
        except Exception as e:
            report.errored += 1
            report.add_detail(f"Error {translated.unique_id}: {e}")
            logger.error("Webhook upsert crashed for %s", translated.unique_id, exc_info=True)
            return

        if outcome.action == ACTION_NOT_LINKABLE:
            report.skipped += 1
            report.add_detail(f"Skipped {translated.unique_id}: property not in portal yet")
            return
        if outcome.action == ACTION_UPDATED:
            report.updated += 1
            report.add_detail(f"Updated {translated.unique_id}: {', '.join(outcome.changed_fields)}")

        if self.trigger is not None and outcome.property is not None:
            if _fire_trigger(self.trigger, outcome.property, report):
                report.triggered += 1


def run_phase_sync(
    *,
    run_type: str = PhaseSyncRun.RUN_AUTO,
    views: Optional[List[str]] = None,
) -> SyncRunResult:
    """
    Convenience function used by views/commands/tasks.
    """
    return PhaseSyncOrchestrator().run(run_type=run_type, view_names=views)


def run_webhook_sync(*, table_id: Optional[str] = None, record_ids: Iterable[str] = ()) -> SyncRunResult:
    table_id = table_id or getattr(settings, "AIRTABLE_PROPERTIES_TABLE_ID", "")
    return PhaseSyncOrchestrator().run_records(table_id, record_ids)
