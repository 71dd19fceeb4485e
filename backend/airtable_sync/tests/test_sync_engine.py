from __future__ import annotations

import pytest

from airtable_sync.locks import PropertyLock, SyncLock
from airtable_sync.models import PhaseSyncRun
from airtable_sync.phase_views import get_phase_views
from airtable_sync.reporting import STATUS_FAILED, STATUS_PARTIAL, STATUS_REJECTED, STATUS_SUCCESS, VIEW_FAILED, VIEW_NOT_RUN
from airtable_sync.sync_engine import PhaseSyncOrchestrator, run_phase_sync
from conftest import FakeAirtableClient, airtable_record
from properties.models import Project, Property, RenoPhase

pytestmark = pytest.mark.django_db

VIEW_IDS = {v.name: v.view_id for v in get_phase_views()}


def _orchestrator(client, trigger=None):
    return PhaseSyncOrchestrator(client=client, trigger=trigger, use_default_trigger=False)


def test_first_run_creates_and_second_run_is_idempotent():
    client = FakeAirtableClient(views={
        VIEW_IDS["upcoming-settlements"]: [
            airtable_record("rec1", "U-1", "Pending to visit", Stage="Presettlement", **{"Est. visit date": "2025-05-02"}),
            airtable_record("rec2", "U-2", "Something nobody mapped"),
        ],
        VIEW_IDS["reno-budget"]: [airtable_record("rec3", "U-3", "Pending to budget (from Client)")],
    })

    first = _orchestrator(client).run()

    assert first.status == STATUS_SUCCESS
    assert first.created == 3
    assert Property.objects.get(unique_id="U-1").reno_phase == RenoPhase.UPCOMING_SETTLEMENTS
    # entry views send anything that is not a pending visit to the budget column
    u2 = Property.objects.get(unique_id="U-2")
    assert u2.reno_phase == RenoPhase.RENO_BUDGET
    assert u2.set_up_status == "Something nobody mapped"
    assert Property.objects.get(unique_id="U-3").reno_phase == RenoPhase.RENO_BUDGET_CLIENT

    stamps = dict(Property.objects.values_list("unique_id", "last_synced_at"))
    second = _orchestrator(client).run()

    assert second.status == STATUS_SUCCESS
    assert (second.created, second.updated, second.errored, second.orphaned) == (0, 0, 0, 0)
    assert dict(Property.objects.values_list("unique_id", "last_synced_at")) == stamps
    assert PhaseSyncRun.objects.filter(status=PhaseSyncRun.STATUS_SUCCESS).count() == 2


def test_forced_view_overrides_status_text_and_wins_over_lower_views():
    client = FakeAirtableClient(views={
        VIEW_IDS["cleaning"]: [airtable_record("rec1", "U-1", "Reno in progress")],
        VIEW_IDS["reno-in-progress"]: [airtable_record("rec1", "U-1", "Reno in progress")],
        VIEW_IDS["initial-check"]: [airtable_record("rec1", "U-1", "initial check")],
    })

    result = _orchestrator(client).run()

    prop = Property.objects.get(unique_id="U-1")
    assert prop.reno_phase == RenoPhase.CLEANING
    assert prop.set_up_status == "Cleaning"
    assert result.created == 1
    assert result.skipped == 2
    by_name = {v.name: v for v in result.views}
    assert by_name["reno-in-progress"].skipped == 1
    assert by_name["initial-check"].skipped == 1


def test_existing_row_follows_status_text():
    Property.objects.create(
        unique_id="U-1", airtable_record_id="rec1",
        set_up_status="initial check", reno_phase=RenoPhase.INITIAL_CHECK,
    )
    client = FakeAirtableClient(views={
        VIEW_IDS["reno-budget"]: [airtable_record("rec1", "U-1", "Reno to start")],
    })

    result = _orchestrator(client).run()

    prop = Property.objects.get(unique_id="U-1")
    assert prop.set_up_status == "Reno to start"
    assert prop.reno_phase == RenoPhase.RENO_BUDGET_START
    assert result.updated == 1


def test_unmapped_status_keeps_existing_phase():
    Property.objects.create(unique_id="U-1", airtable_record_id="rec1", reno_phase=RenoPhase.FURNISHING)
    client = FakeAirtableClient(views={
        VIEW_IDS["reno-budget"]: [airtable_record("rec1", "U-1", "Waiting for the notary")],
    })

    _orchestrator(client).run()

    prop = Property.objects.get(unique_id="U-1")
    assert prop.reno_phase == RenoPhase.FURNISHING
    assert prop.set_up_status == "Waiting for the notary"


def test_one_bad_record_does_not_sink_the_batch():
    records = [airtable_record(f"rec{i}", f"U-{i}", "Pending to visit") for i in range(99)]
    records.insert(40, airtable_record("recBad", "U-BAD", "Pending to visit", **{"Est. visit date": "31/31/2025"}))
    client = FakeAirtableClient(views={VIEW_IDS["upcoming-settlements"]: records})

    result = _orchestrator(client).run()

    assert result.status == STATUS_PARTIAL
    assert result.created == 99
    assert result.errored == 1
    assert Property.objects.count() == 99
    assert not Property.objects.filter(unique_id="U-BAD").exists()
    assert any("recBad" in line for line in result.details)


def test_records_without_unique_id_are_skipped():
    client = FakeAirtableClient(views={
        VIEW_IDS["upcoming-settlements"]: [airtable_record("rec1", None, "Pending to visit")],
    })

    result = _orchestrator(client).run()

    assert result.skipped == 1
    assert Property.objects.count() == 0


def test_failed_view_makes_run_partial_and_skips_orphan_sweep():
    Property.objects.create(unique_id="U-OLD", airtable_record_id="recOld", reno_phase=RenoPhase.FURNISHING)
    client = FakeAirtableClient(
        views={VIEW_IDS["upcoming-settlements"]: [airtable_record("rec1", "U-1", "Pending to visit")]},
        failing_views=[VIEW_IDS["furnishing"]],
    )

    result = _orchestrator(client).run()

    assert result.status == STATUS_PARTIAL
    assert result.orphaned == 0
    assert {v.name: v.status for v in result.views}["furnishing"] == VIEW_FAILED
    assert Property.objects.get(unique_id="U-OLD").reno_phase == RenoPhase.FURNISHING
    assert Property.objects.filter(unique_id="U-1").exists()
    run = PhaseSyncRun.objects.get()
    assert run.status == PhaseSyncRun.STATUS_PARTIAL


def test_every_view_failing_fails_the_run():
    client = FakeAirtableClient(failing_views=VIEW_IDS.values())

    result = _orchestrator(client).run()

    assert result.status == STATUS_FAILED
    assert PhaseSyncRun.objects.get().status == PhaseSyncRun.STATUS_FAILED


def test_orphan_sweep_after_clean_full_pass():
    Property.objects.create(unique_id="U-OLD", airtable_record_id="recOld", reno_phase=RenoPhase.RENO_IN_PROGRESS)
    Property.objects.create(unique_id="U-LOCAL", reno_phase=RenoPhase.INITIAL_CHECK)
    client = FakeAirtableClient(views={
        VIEW_IDS["upcoming-settlements"]: [airtable_record("rec1", "U-1", "Pending to visit", Stage="Presettlement")],
    })

    result = _orchestrator(client).run()

    assert result.orphaned == 1
    old = Property.objects.get(unique_id="U-OLD")
    assert old.reno_phase == RenoPhase.ORPHANED
    assert old.set_up_status == "Orphaned"
    assert Property.objects.get(unique_id="U-LOCAL").reno_phase == RenoPhase.INITIAL_CHECK
    assert Property.objects.get(unique_id="U-1").reno_phase == RenoPhase.UPCOMING_SETTLEMENTS


def test_view_subset_never_orphans():
    Property.objects.create(unique_id="U-OLD", airtable_record_id="recOld", reno_phase=RenoPhase.RENO_IN_PROGRESS)
    client = FakeAirtableClient()

    result = _orchestrator(client).run(view_names=["cleaning"])

    assert result.orphaned == 0
    assert client.fetched_views == [VIEW_IDS["cleaning"]]
    assert Property.objects.get(unique_id="U-OLD").reno_phase == RenoPhase.RENO_IN_PROGRESS


def test_second_run_is_rejected_while_lock_is_held():
    client = FakeAirtableClient()
    lock = SyncLock()
    assert lock.acquire()
    try:
        result = _orchestrator(client).run()
    finally:
        lock.release()

    assert result.status == STATUS_REJECTED
    assert not result.ok
    assert client.fetched_views == []
    assert PhaseSyncRun.objects.count() == 0


def test_lock_is_released_after_run():
    _orchestrator(FakeAirtableClient()).run()
    lock = SyncLock()
    assert lock.acquire()
    lock.release()


def test_blank_source_never_erases_protected_columns():
    project = Project.objects.create(airtable_project_id="recProj", name="Edificio Sol")
    Property.objects.create(
        unique_id="U-1",
        airtable_record_id="rec1",
        budget_pdf_url="https://files.example.com/budget.pdf",
        airtable_properties_record_id="recProp1",
        project=project,
        client_name="Old name",
        reno_phase=RenoPhase.RENO_IN_PROGRESS,
        set_up_status="Reno in progress",
    )
    client = FakeAirtableClient(views={
        VIEW_IDS["reno-in-progress"]: [airtable_record("rec1", "U-1", "Reno in progress")],
    })

    _orchestrator(client).run()

    prop = Property.objects.get(unique_id="U-1")
    assert prop.budget_pdf_url == "https://files.example.com/budget.pdf"
    assert prop.airtable_properties_record_id == "recProp1"
    assert prop.project_id == project.id
    assert prop.client_name is None


def test_project_link_is_resolved():
    project = Project.objects.create(airtable_project_id="recProj", name="Edificio Sol")
    client = FakeAirtableClient(views={
        VIEW_IDS["upcoming-settlements"]: [
            airtable_record("rec1", "U-1", "Pending to visit", Type="WIP", Project=["recProj"]),
        ],
    })

    _orchestrator(client).run()

    assert Property.objects.get(unique_id="U-1").project == project


def test_locked_property_is_counted_as_error(settings):
    settings.SYNC_PROPERTY_LOCK_WAIT = 0
    client = FakeAirtableClient(views={
        VIEW_IDS["upcoming-settlements"]: [
            airtable_record("rec1", "U-1", "Pending to visit"),
            airtable_record("rec2", "U-2", "Pending to visit"),
        ],
    })
    held = PropertyLock("U-1", wait=0)
    assert held.acquire()
    try:
        result = _orchestrator(client).run()
    finally:
        held.release()

    assert result.errored == 1
    assert result.created == 1
    assert result.status == STATUS_PARTIAL


def test_stop_request_finishes_current_view_only():
    client = FakeAirtableClient(views={
        VIEW_IDS["cleaning"]: [airtable_record("rec1", "U-1")],
        VIEW_IDS["upcoming-settlements"]: [airtable_record("rec2", "U-2", "Pending to visit")],
    })
    orchestrator = _orchestrator(client)
    client.on_fetch = lambda view_id: orchestrator.request_stop()

    result = orchestrator.run()

    assert client.fetched_views == [VIEW_IDS["cleaning"]]
    statuses = {v.name: v.status for v in result.views}
    assert statuses["cleaning"] == "ok"
    assert all(s == VIEW_NOT_RUN for name, s in statuses.items() if name != "cleaning")
    assert result.status == STATUS_PARTIAL
    assert result.orphaned == 0
    assert Property.objects.filter(unique_id="U-1").exists()
    assert not Property.objects.filter(unique_id="U-2").exists()


def test_unexpected_error_marks_run_failed(monkeypatch):
    client = FakeAirtableClient(views={
        VIEW_IDS["cleaning"]: [airtable_record("rec1", "U-1")],
    })

    def explode(*args, **kwargs):
        raise RuntimeError("database went away")

    monkeypatch.setattr("airtable_sync.sync_engine.PhaseSyncOrchestrator._sweep_orphans", explode)

    result = _orchestrator(client).run()

    assert result.status == STATUS_FAILED
    run = PhaseSyncRun.objects.get()
    assert run.status == PhaseSyncRun.STATUS_FAILED
    assert "database went away" in run.error
    assert SyncLock().acquire()


def test_details_are_capped(settings):
    settings.SYNC_MAX_DETAILS = 3
    records = [
        airtable_record(f"rec{i}", f"U-{i}", **{"Est. visit date": "garbage"})
        for i in range(6)
    ]
    client = FakeAirtableClient(views={VIEW_IDS["upcoming-settlements"]: records})

    result = _orchestrator(client).run()

    assert result.errored == 6
    assert len(result.details) == 4
    assert result.details[-1] == "... and 3 more"


def test_run_row_stores_result_summary():
    client = FakeAirtableClient(views={
        VIEW_IDS["upcoming-settlements"]: [airtable_record("rec1", "U-1", "Pending to visit")],
    })

    result = _orchestrator(client).run(run_type=PhaseSyncRun.RUN_MANUAL)

    run = PhaseSyncRun.objects.get(pk=result.run_id)
    assert run.run_type == PhaseSyncRun.RUN_MANUAL
    assert run.finished_at is not None
    assert run.stats["created"] == 1
    assert run.views[0] == "cleaning"


def test_run_phase_sync_uses_default_client(patch_airtable):
    patch_airtable.views = {VIEW_IDS["furnishing"]: [airtable_record("rec1", "U-1", "Furnishing")]}

    result = run_phase_sync(run_type=PhaseSyncRun.RUN_AUTO, views=["furnishing"])

    assert result.status == STATUS_SUCCESS
    assert Property.objects.get(unique_id="U-1").reno_phase == RenoPhase.FURNISHING


def test_entry_views_place_records_by_stage():
    client = FakeAirtableClient(views={
        VIEW_IDS["initial-check"]: [
            airtable_record("rec1", "U-1", "Pending to visit", Stage="Settled"),
            airtable_record("rec4", "U-4", "Pending to visit"),
        ],
        VIEW_IDS["upcoming-settlements"]: [
            airtable_record("rec2", "U-2", "Pending to visit", Stage="Presettlement"),
            airtable_record("rec3", "U-3", "Pending to visit", Stage="Settled"),
        ],
    })

    result = _orchestrator(client).run()

    assert result.status == STATUS_SUCCESS
    phases = dict(Property.objects.values_list("unique_id", "reno_phase"))
    assert phases == {
        "U-1": RenoPhase.INITIAL_CHECK,
        "U-2": RenoPhase.UPCOMING_SETTLEMENTS,
        "U-3": RenoPhase.INITIAL_CHECK,
        "U-4": RenoPhase.RENO_BUDGET,
    }
    # the record keeps its own status text
    assert Property.objects.get(unique_id="U-1").set_up_status == "Pending to visit"


def test_settled_stage_moves_existing_row_to_initial_check():
    Property.objects.create(
        unique_id="U-1", airtable_record_id="rec1",
        set_up_status="Pending to visit", reno_phase=RenoPhase.UPCOMING_SETTLEMENTS,
    )
    client = FakeAirtableClient(views={
        VIEW_IDS["initial-check"]: [airtable_record("rec1", "U-1", "Pending to visit", Stage="Settled")],
    })

    first = _orchestrator(client).run()
    second = _orchestrator(client).run()

    assert first.updated == 1
    assert second.updated == 0
    prop = Property.objects.get(unique_id="U-1")
    assert prop.reno_phase == RenoPhase.INITIAL_CHECK
    assert prop.set_up_status == "Pending to visit"


def test_unreadable_number_does_not_fail_the_run():
    client = FakeAirtableClient(views={
        VIEW_IDS["reno-in-progress"]: [
            airtable_record("rec1", "U-1", "Reno in progress", **{"Days to visit": "1e999"}),
            airtable_record("rec2", "U-2", "Reno in progress"),
        ],
        VIEW_IDS["upcoming-settlements"]: [airtable_record("rec3", "U-3", "Pending to visit", Stage="Presettlement")],
    })

    result = _orchestrator(client).run()

    assert result.status == STATUS_SUCCESS
    assert result.created == 3
    assert Property.objects.get(unique_id="U-1").days_to_visit is None


def test_unexpected_record_error_is_isolated(monkeypatch):
    from airtable_sync import sync_engine

    real_translate = sync_engine.translate_record

    def translate(record):
        if record.record_id == "rec1":
            raise OverflowError("cannot convert float infinity to integer")
        return real_translate(record)

    monkeypatch.setattr(sync_engine, "translate_record", translate)
    client = FakeAirtableClient(views={
        VIEW_IDS["reno-in-progress"]: [
            airtable_record("rec1", "U-1", "Reno in progress"),
            airtable_record("rec2", "U-2", "Reno in progress"),
        ],
        VIEW_IDS["upcoming-settlements"]: [airtable_record("rec3", "U-3", "Pending to visit", Stage="Presettlement")],
    })

    result = _orchestrator(client).run()

    assert result.status == STATUS_PARTIAL
    assert (result.created, result.errored) == (2, 1)
    assert any("rec1" in line for line in result.details)
    assert PhaseSyncRun.objects.get().status == PhaseSyncRun.STATUS_PARTIAL


def test_unexpected_upsert_error_is_isolated(monkeypatch):
    from airtable_sync import sync_engine

    real_upsert = sync_engine.upsert_property

    def upsert(translated, **kwargs):
        if translated.unique_id == "U-1":
            raise RuntimeError("storage hiccup")
        return real_upsert(translated, **kwargs)

    monkeypatch.setattr(sync_engine, "upsert_property", upsert)
    client = FakeAirtableClient(views={
        VIEW_IDS["cleaning"]: [airtable_record("rec1", "U-1"), airtable_record("rec2", "U-2")],
    })

    result = _orchestrator(client).run()

    assert (result.created, result.errored) == (1, 1)
    assert any("storage hiccup" in line for line in result.details)


def test_long_run_keeps_renewing_the_lock(settings, monkeypatch):
    from django.core.cache import cache

    settings.SYNC_LOCK_RENEW_EVERY = 2
    touched = []
    real_touch = cache.touch

    def touch(key, timeout=None, version=None):
        touched.append((key, timeout))
        return real_touch(key, timeout, version=version)

    monkeypatch.setattr(cache, "touch", touch)
    records = [airtable_record(f"rec{i}", f"U-{i}") for i in range(5)]
    client = FakeAirtableClient(views={VIEW_IDS["cleaning"]: records})
    lock_key = SyncLock().key

    result = _orchestrator(client).run()

    assert result.status == STATUS_SUCCESS
    # once per view plus every second record of the cleaning view
    assert touched == [(lock_key, settings.SYNC_LOCK_TTL)] * (len(VIEW_IDS) + 2)


def test_lost_lock_stops_the_run():
    from django.core.cache import cache

    client = FakeAirtableClient(views={
        VIEW_IDS["cleaning"]: [airtable_record("rec1", "U-1")],
        VIEW_IDS["furnishing"]: [airtable_record("rec2", "U-2")],
    })
    Property.objects.create(unique_id="U-OLD", airtable_record_id="recOld", reno_phase=RenoPhase.FURNISHING)
    lock_key = SyncLock().key
    client.on_fetch = lambda view_id: cache.delete(lock_key)

    result = _orchestrator(client).run()

    assert client.fetched_views == [VIEW_IDS["cleaning"]]
    assert result.status == STATUS_PARTIAL
    assert all(v.status == VIEW_NOT_RUN for v in result.views if v.name != "cleaning")
    assert result.orphaned == 0
    assert Property.objects.get(unique_id="U-OLD").reno_phase == RenoPhase.FURNISHING


def test_sync_lock_extend_requires_ownership():
    from django.core.cache import cache

    lock = SyncLock()
    assert lock.extend() is False
    assert lock.acquire()
    assert lock.extend() is True

    cache.set(lock.key, "someone-else")
    assert lock.extend() is False
    lock.release()
    assert cache.get(lock.key) == "someone-else"


def test_orphan_sweep_leaves_locked_property_for_next_pass():
    Property.objects.create(
        unique_id="U-OLD", airtable_record_id="recOld",
        set_up_status="Reno in progress", reno_phase=RenoPhase.RENO_IN_PROGRESS,
    )
    held = PropertyLock("U-OLD", wait=0)
    assert held.acquire()
    try:
        result = _orchestrator(FakeAirtableClient()).run()
    finally:
        held.release()

    assert result.orphaned == 0
    assert Property.objects.get(unique_id="U-OLD").reno_phase == RenoPhase.RENO_IN_PROGRESS

    assert _orchestrator(FakeAirtableClient()).run().orphaned == 1


class TestWebhookPath:
    def test_updates_existing_and_skips_unknown(self):
        Property.objects.create(
            unique_id="U-1", airtable_record_id="rec1",
            set_up_status="Reno to start", reno_phase=RenoPhase.RENO_BUDGET_START,
        )
        client = FakeAirtableClient(records={
            "rec1": airtable_record("rec1", "U-1", "Reno in progress"),
            "rec2": airtable_record("rec2", "U-NEW", "Pending to visit"),
        })

        result = _orchestrator(client).run_records("tblProps", ["rec1", "rec2", "rec1"])

        assert result.status == STATUS_SUCCESS
        assert result.updated == 1
        assert result.skipped == 1
        assert Property.objects.get(unique_id="U-1").reno_phase == RenoPhase.RENO_IN_PROGRESS
        assert not Property.objects.filter(unique_id="U-NEW").exists()
        run = PhaseSyncRun.objects.get()
        assert run.run_type == PhaseSyncRun.RUN_WEBHOOK
        assert run.stats["updated"] == 1
        assert run.stats["skipped"] == 1

    def test_fetch_failure_for_single_record_fails(self):
        result = _orchestrator(FakeAirtableClient()).run_single_record("tblProps", "recMissing")

        assert result.status == STATUS_FAILED
        assert result.errored == 1

    def test_partial_when_some_records_fail(self):
        Property.objects.create(unique_id="U-1", airtable_record_id="rec1")
        client = FakeAirtableClient(records={"rec1": airtable_record("rec1", "U-1", "Cleaning")})

        result = _orchestrator(client).run_records("tblProps", ["rec1", "recMissing"])

        assert result.status == STATUS_PARTIAL
        assert Property.objects.get(unique_id="U-1").reno_phase == RenoPhase.CLEANING

    def test_runs_while_full_sync_lock_is_held(self):
        Property.objects.create(unique_id="U-1", airtable_record_id="rec1")
        client = FakeAirtableClient(records={"rec1": airtable_record("rec1", "U-1", "Done")})
        lock = SyncLock()
        assert lock.acquire()
        try:
            result = _orchestrator(client).run_records("tblProps", ["rec1"])
        finally:
            lock.release()

        assert result.status == STATUS_SUCCESS
        assert Property.objects.get(unique_id="U-1").reno_phase == RenoPhase.DONE

    def test_unexpected_error_on_one_record_is_isolated(self, monkeypatch):
        from airtable_sync import sync_engine

        real_translate = sync_engine.translate_record

        def translate(record):
            if record.record_id == "rec1":
                raise OverflowError("cannot convert float infinity to integer")
            return real_translate(record)

        monkeypatch.setattr(sync_engine, "translate_record", translate)
        Property.objects.create(unique_id="U-2", airtable_record_id="rec2")
        client = FakeAirtableClient(records={
            "rec1": airtable_record("rec1", "U-1", "Cleaning"),
            "rec2": airtable_record("rec2", "U-2", "Cleaning"),
        })

        result = _orchestrator(client).run_records("tblProps", ["rec1", "rec2"])

        assert result.status == STATUS_PARTIAL
        assert (result.updated, result.errored) == (1, 1)
        assert Property.objects.get(unique_id="U-2").reno_phase == RenoPhase.CLEANING
