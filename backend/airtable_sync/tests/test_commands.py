from __future__ import annotations

import json
from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import CommandError, call_command
from django.utils import timezone

from airtable_sync.locks import SyncLock
from airtable_sync.models import PhaseSyncRun
from airtable_sync.phase_views import get_phase_views
from conftest import airtable_record
from properties.models import Property

pytestmark = pytest.mark.django_db

VIEW_IDS = {v.name: v.view_id for v in get_phase_views()}


def test_sync_command(patch_airtable):
    patch_airtable.views = {VIEW_IDS["final-check"]: [airtable_record("rec1", "U-1", "whatever")]}
    out = StringIO()

    call_command("sync_airtable_phases", "--view", "final-check", "--manual", stdout=out)

    output = out.getvalue()
    assert "success: created=1" in output
    assert "final-check: ok fetched=1" in output
    assert Property.objects.get(unique_id="U-1").reno_phase == "final-check"
    assert PhaseSyncRun.objects.get().run_type == PhaseSyncRun.RUN_MANUAL


def test_sync_command_json_output(patch_airtable):
    out = StringIO()

    call_command("sync_airtable_phases", "--view", "cleaning", "--json", stdout=out)

    body = out.getvalue()
    payload = json.loads(body[body.index("{"):body.rindex("}") + 1])
    assert payload["status"] == "success"
    assert payload["run_type"] == PhaseSyncRun.RUN_AUTO


def test_sync_command_unknown_view(patch_airtable):
    with pytest.raises(CommandError):
        call_command("sync_airtable_phases", "--view", "nope", stdout=StringIO())


def test_sync_command_reports_rejection(patch_airtable):
    out = StringIO()
    lock = SyncLock()
    assert lock.acquire()
    try:
        call_command("sync_airtable_phases", stdout=out)
    finally:
        lock.release()

    assert "Sync not started" in out.getvalue()


def test_cleanup_command():
    old = PhaseSyncRun.objects.create(status=PhaseSyncRun.STATUS_SUCCESS)
    PhaseSyncRun.objects.filter(pk=old.pk).update(started_at=timezone.now() - timedelta(days=120))
    PhaseSyncRun.objects.create(status=PhaseSyncRun.STATUS_SUCCESS)
    out = StringIO()

    call_command("cleanup_phase_sync_runs", "--days", "90", stdout=out)

    assert "Deleted 1 phase sync runs" in out.getvalue()
    assert PhaseSyncRun.objects.count() == 1


def test_trigger_command_without_configuration(settings):
    settings.N8N_CATEGORIES_WEBHOOK_URL = ""
    out = StringIO()

    call_command("trigger_categories_extraction", stdout=out)

    assert "not configured" in out.getvalue()


def test_trigger_command_sweep():
    out = StringIO()

    call_command("trigger_categories_extraction", stdout=out)

    assert "0 eligible, 0 triggered, 0 failed" in out.getvalue()
