# backend/airtable_sync/services.py
"""
Airtable REST API client.
Handles communication with the Airtable base that is the system of record
for the renovation pipeline.

- Reuse a single requests.Session (keep-alive)
- Walk view pagination through the ``offset`` cursor
- Retry transient failures (connection errors, timeouts, 429, 5xx) with tenacity,
  bounded attempts and exponential backoff that honours Retry-After
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

import requests
from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from django.conf import settings

from .exceptions import AirtableConfigurationError, AirtableFetchError, TransientHTTPError

logger = logging.getLogger(__name__)


RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

TRANSIENT_ERRORS = (TransientHTTPError, requests.ConnectionError, requests.Timeout)

MAX_BACKOFF_SECONDS = 60


@dataclass(frozen=True)
class ExternalRecord:
    """One Airtable record as returned by the API."""
    record_id: str
    fields: Dict[str, Any] = field(default_factory=dict)
    created_time: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "ExternalRecord":
        return cls(
            record_id=payload.get("id") or "",
            fields=dict(payload.get("fields") or {}),
            created_time=payload.get("createdTime"),
        )


class AirtableClient:
    """
    Client for the Airtable REST API (v0).
    """

    def __init__(self, session: Optional[requests.Session] = None) -> None:
        self.api_key = getattr(settings, "AIRTABLE_API_KEY", "")
        self.base_id = getattr(settings, "AIRTABLE_BASE_ID", "")
        self.api_url = getattr(settings, "AIRTABLE_API_URL", "https://api.airtable.com/v0").rstrip("/")
        self.timeout = getattr(settings, "AIRTABLE_TIMEOUT", 30)
        self.page_size = getattr(settings, "AIRTABLE_PAGE_SIZE", 100)
        self.max_retries = max(1, int(getattr(settings, "AIRTABLE_MAX_RETRIES", 3)))
        self.backoff_seconds = float(getattr(settings, "AIRTABLE_BACKOFF_SECONDS", 1.0))
        self._backoff = wait_exponential(multiplier=self.backoff_seconds, max=MAX_BACKOFF_SECONDS)

        if not self.api_key:
            logger.warning("AIRTABLE_API_KEY not configured")
        if not self.base_id:
            logger.warning("AIRTABLE_BASE_ID not configured")

        # Keep-alive HTTP
        self._session = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.base_id)

    # -----------------------
    # Core HTTP helpers
    # -----------------------

    def _table_url(self, table_id: str, record_id: Optional[str] = None) -> str:
        if not self.is_configured:
            raise AirtableConfigurationError("AIRTABLE_API_KEY / AIRTABLE_BASE_ID not configured")
        url = f"{self.api_url}/{self.base_id}/{table_id}"
        if record_id:
            url = f"{url}/{record_id}"
        return url

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)

    def _wait(self, retry_state: RetryCallState) -> float:
        """Retry-After on a 429 when present, exponential backoff otherwise."""
        error = retry_state.outcome.exception() if retry_state.outcome else None
        response = getattr(error, "response", None)
        if response is not None and response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            if retry_after:
                try:
                    return max(0.0, float(retry_after))
                except ValueError:
                    pass
        return self._backoff(retry_state)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        method, url = retry_state.args[:2]
        logger.warning(
            "Airtable %s %s failed (attempt %s/%s): %s",
            method, url, retry_state.attempt_number, self.max_retries, retry_state.outcome.exception(),
        )

    def _retrying(self) -> Retrying:
        return Retrying(
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            stop=stop_after_attempt(self.max_retries),
            wait=self._wait,
            before_sleep=self._log_retry,
            sleep=self._sleep,
            reraise=True,
        )

    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        response = self._session.request(
            method,
            url,
            headers=self._headers(),
            timeout=self.timeout,
            **kwargs,
        )
        if response.status_code in RETRYABLE_STATUS_CODES:
            raise TransientHTTPError(response)
        return response

    def _request(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        """
        Perform one API call with retries. Returns the decoded JSON body.
        Raises AirtableFetchError once retries are exhausted or on a non-retryable status.
        """
        try:
            response = self._retrying()(self._send, method, url, **kwargs)
        except TransientHTTPError as e:
            raise AirtableFetchError(
                f"Airtable request failed after {self.max_retries} attempts: HTTP {e.status_code}",
                status_code=e.status_code,
            ) from e
        except (requests.ConnectionError, requests.Timeout) as e:
            raise AirtableFetchError(
                f"Airtable request failed after {self.max_retries} attempts: {type(e).__name__}: {e}",
            ) from e
        except requests.RequestException as e:
            raise AirtableFetchError(f"Airtable request failed: {type(e).__name__}: {e}") from e

        if response.status_code >= 400:
            body = (response.text or "")[:500]
            logger.error("Airtable %s %s returned %s: %s", method, url, response.status_code, body)
            raise AirtableFetchError(
                f"Airtable returned HTTP {response.status_code}: {body}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise AirtableFetchError(f"Airtable returned invalid JSON: {e}", status_code=response.status_code)

    # -----------------------
    # Public API
    # -----------------------

    def iter_view_records(self, table_id: str, view_id: str) -> Iterator[ExternalRecord]:
        """
        Yield every record of a view, following the ``offset`` cursor from the first page.
        A failure on any page raises AirtableFetchError; records already yielded stay yielded.
        """
        url = self._table_url(table_id)
        offset: Optional[str] = None
        page = 0

        while True:
            params: Dict[str, Any] = {"view": view_id, "pageSize": self.page_size}
            if offset:
                params["offset"] = offset

            data = self._request("GET", url, params=params)
            page += 1
            records = data.get("records") or []
            logger.debug("Airtable view %s page %s: %s records", view_id, page, len(records))

            for raw in records:
                yield ExternalRecord.from_api(raw)

            offset = data.get("offset")
            if not offset:
                break

    def fetch_view(self, table_id: str, view_id: str) -> list[ExternalRecord]:
        """Materialize a whole view; the view is aborted as a unit on failure."""
        return list(self.iter_view_records(table_id, view_id))

    def get_record(self, table_id: str, record_id: str) -> ExternalRecord:
        data = self._request("GET", self._table_url(table_id, record_id))
        return ExternalRecord.from_api(data)

    def update_record(self, table_id: str, record_id: str, fields: Dict[str, Any]) -> ExternalRecord:
        """PATCH only the given fields; Airtable leaves the rest untouched."""
        data = self._request(
            "PATCH",
            self._table_url(table_id, record_id),
            json={"fields": fields, "typecast": True},
        )
        logger.info("Updated Airtable record %s fields=%s", record_id, list(fields.keys()))
        return ExternalRecord.from_api(data)
