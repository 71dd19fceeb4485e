"""
Shared fixtures and fakes for the backend test suite.

Nothing here talks to the network: the Airtable client and the n8n trigger
both accept an injected session, and the sync engine accepts an injected
client.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from airtable_sync.exceptions import AirtableFetchError
from airtable_sync.services import AirtableClient, ExternalRecord
from airtable_sync.triggers import CategoriesExtractionTrigger


def airtable_record(
    record_id: str,
    unique_id: Optional[str] = None,
    status: Optional[str] = None,
    **fields: Any,
) -> Dict[str, Any]:
    """Raw Airtable API record with the columns the translator reads most often."""
    data: Dict[str, Any] = {}
    if unique_id is not None:
        data["UNIQUEID (from Engagements)"] = [unique_id]
    if status is not None:
        data["Set Up Status"] = status
    data.setdefault("Address", f"Calle {record_id}")
    data.update(fields)
    return {"id": record_id, "createdTime": "2025-01-01T00:00:00.000Z", "fields": data}


class FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        json_data: Any = None,
        text: str = "",
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.status_code = status_code
        self._json = json_data
        self.text = text
        self.headers = headers or {}

    def json(self) -> Any:
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json


class FakeSession:
    """
    Scripted stand-in for requests.Session. Each call consumes the next
    queued item; exceptions are raised instead of returned.
    """

    def __init__(self, responses: Iterable[Any] = ()) -> None:
        self.responses: List[Any] = list(responses)
        self.calls: List[Dict[str, Any]] = []

    def queue(self, *items: Any) -> None:
        self.responses.extend(items)

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self.responses:
            raise AssertionError(f"Unexpected {method} {url}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        return self.request("POST", url, **kwargs)


class FakeAirtableClient:
    """
    In-memory Airtable: views map view id -> raw records, ``records`` map record id -> raw record.
    Views listed in ``failing_views`` raise like an exhausted retry loop.
    """

    is_configured = True

    def __init__(
        self,
        views: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        records: Optional[Dict[str, Dict[str, Any]]] = None,
        failing_views: Iterable[str] = (),
    ) -> None:
        self.views = views or {}
        self.records = records or {}
        self.failing_views = set(failing_views)
        self.fetched_views: List[str] = []
        self.updates: List[Dict[str, Any]] = []
        self.on_fetch = None

    def fetch_view(self, table_id: str, view_id: str) -> List[ExternalRecord]:
        self.fetched_views.append(view_id)
        if self.on_fetch is not None:
            self.on_fetch(view_id)
        if view_id in self.failing_views:
            raise AirtableFetchError("Airtable request failed after 3 attempts: HTTP 503", status_code=503)
        return [ExternalRecord.from_api(raw) for raw in self.views.get(view_id, [])]

    def get_record(self, table_id: str, record_id: str) -> ExternalRecord:
        raw = self.records.get(record_id)
        if raw is None:
            raise AirtableFetchError("Airtable returned HTTP 404: NOT_FOUND", status_code=404)
        return ExternalRecord.from_api(raw)

    def update_record(self, table_id: str, record_id: str, fields: Dict[str, Any]) -> ExternalRecord:
        self.updates.append({"table_id": table_id, "record_id": record_id, "fields": fields})
        return ExternalRecord(record_id=record_id, fields=dict(fields))


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def airtable_client(fake_session: FakeSession) -> AirtableClient:
    return AirtableClient(session=fake_session)


@pytest.fixture
def n8n_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def extraction_trigger(n8n_session: FakeSession) -> CategoriesExtractionTrigger:
    return CategoriesExtractionTrigger(session=n8n_session)


@pytest.fixture
def fake_airtable() -> FakeAirtableClient:
    return FakeAirtableClient()


@pytest.fixture
def patch_airtable(monkeypatch, fake_airtable: FakeAirtableClient) -> FakeAirtableClient:
    """Route every AirtableClient() built by the engine and the reset workflow to the fake."""
    monkeypatch.setattr("airtable_sync.sync_engine.AirtableClient", lambda: fake_airtable)
    monkeypatch.setattr("properties.services.AirtableClient", lambda: fake_airtable)
    return fake_airtable


@pytest.fixture
def staff_user(db):
    User = get_user_model()
    return User.objects.create_user(username="ops", password="pass1234", is_staff=True)


@pytest.fixture
def regular_user(db):
    User = get_user_model()
    return User.objects.create_user(username="viewer", password="pass1234")


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def staff_client(api_client: APIClient, staff_user) -> APIClient:
    api_client.force_authenticate(user=staff_user)
    return api_client
