"""
Fire-once trigger for the n8n budget categories extraction workflow.

A property in reno-in-progress with a budget document and no extracted
categories gets its first budget sent to n8n, which parses the PDF and writes
PropertyDynamicCategory rows. Once categories exist the property is never sent
again. A successful call for the same budget URL also blocks a resend while
n8n is still working on it.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

import requests
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from django.conf import settings

from properties.models import Property, PropertyDynamicCategory, RenoPhase

from .exceptions import TransientHTTPError
from .models import ExtractionTriggerLog
from .services import MAX_BACKOFF_SECONDS, RETRYABLE_STATUS_CODES, TRANSIENT_ERRORS

logger = logging.getLogger(__name__)


def first_budget_url(property: Property, budget_index: int = 1) -> Optional[str]:
    urls = property.budget_urls
    if budget_index < 1 or budget_index > len(urls):
        return None
    return urls[budget_index - 1]


def needs_categories_extraction(property: Property) -> bool:
    """Default precondition: reno in progress, a usable budget URL, no categories yet."""
    if property.reno_phase != RenoPhase.RENO_IN_PROGRESS:
        return False
    budget_url = first_budget_url(property)
    if not budget_url:
        return False
    if PropertyDynamicCategory.objects.filter(property=property).exists():
        return False
    return not ExtractionTriggerLog.objects.filter(
        property=property,
        success=True,
        payload__budget_pdf_url=budget_url,
    ).exists()


def build_payload(property: Property, budget_index: int = 1) -> Optional[Dict[str, Any]]:
    budget_url = first_budget_url(property, budget_index)
    if not budget_url:
        return None
    return {
        "budget_pdf_url": budget_url,
        "property_id": property.unique_id,
        "unique_id": property.unique_id,
        "property_name": property.address or None,
        "address": property.address or None,
        "client_name": property.client_name,
        "client_email": property.client_email,
        "renovation_type": property.renovation_type,
        "area_cluster": property.area_cluster,
        "budget_index": budget_index,
    }


class CategoriesExtractionTrigger:
    """
    Posts the extraction payload to N8N_CATEGORIES_WEBHOOK_URL.
    """

    def __init__(self, session: Optional[requests.Session] = None) -> None:
        self.url = getattr(settings, "N8N_CATEGORIES_WEBHOOK_URL", "")
        self.timeout = getattr(settings, "N8N_TIMEOUT", 30)
        self.max_retries = max(0, int(getattr(settings, "N8N_MAX_RETRIES", 2)))
        self.backoff_seconds = float(getattr(settings, "AIRTABLE_BACKOFF_SECONDS", 1.0))
        self._session = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self.url)

    def trigger_if_needed(
        self,
        property: Property,
        precondition: Optional[Callable[[Property], bool]] = None,
    ) -> bool:
        """
        Call the extraction webhook when the precondition holds.
        Returns True only when n8n answered 2xx; False leaves the property eligible for a later pass.
        """
        if not self.is_configured:
            logger.debug("N8N_CATEGORIES_WEBHOOK_URL not configured, skipping extraction for %s", property.unique_id)
            return False

        check = precondition or needs_categories_extraction
        if not check(property):
            return False

        payload = build_payload(property)
        if payload is None:
            return False

        return self._post(property, payload)

    def _sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)

    def _post(self, property: Property, payload: Dict[str, Any]) -> bool:
        attempts = self.max_retries + 1
        retrying = Retrying(
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=self.backoff_seconds, max=MAX_BACKOFF_SECONDS),
            sleep=self._sleep,
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    return self._attempt(property, payload, attempt.retry_state.attempt_number, attempts)
        except TRANSIENT_ERRORS as e:
            logger.error(
                "Categories extraction not triggered for %s after %s attempts: %s", property.unique_id, attempts, e,
            )
        return False

    def _attempt(self, property: Property, payload: Dict[str, Any], attempt: int, attempts: int) -> bool:
        """
        One POST, logged as one ExtractionTriggerLog row. Transport errors and
        429/5xx raise so the retry loop goes again; other failures return False.
        """
        try:
            response = self._session.post(self.url, json=payload, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            self._failed(property, payload, None, f"{type(e).__name__}: {e}", attempt, attempts)
            raise
        except requests.RequestException as e:
            self._failed(property, payload, None, f"{type(e).__name__}: {e}", attempt, attempts)
            return False

        status_code = response.status_code
        if 200 <= status_code < 300:
            self._log(property, payload, True, status_code, None, attempt)
            logger.info("Categories extraction triggered for %s (attempt %s)", property.unique_id, attempt)
            return True

        self._failed(property, payload, status_code, (response.text or "")[:500], attempt, attempts)
        if status_code in RETRYABLE_STATUS_CODES:
            raise TransientHTTPError(response)
        return False

    def _failed(self, property, payload, status_code, error, attempt, attempts) -> None:
        self._log(property, payload, False, status_code, error, attempt)
        logger.warning(
            "Categories extraction call failed for %s (attempt %s/%s, status=%s): %s",
            property.unique_id, attempt, attempts, status_code, error,
        )

    def _log(self, property, payload, success, status_code, error, attempt) -> None:
        ExtractionTriggerLog.objects.create(
            property=property,
            url=self.url,
            payload=payload,
            success=success,
            status_code=status_code,
            error=error,
            attempt=attempt,
        )


def trigger_pending_extractions(trigger: Optional[CategoriesExtractionTrigger] = None) -> Dict[str, int]:
    """
    Sweep every property currently waiting for extraction.
    Used by the batch endpoint, the Celery task and the management command.
    """
    trigger = trigger or CategoriesExtractionTrigger()
    stats = {"eligible": 0, "triggered": 0, "failed": 0}
    if not trigger.is_configured:
        logger.warning("N8N_CATEGORIES_WEBHOOK_URL not configured, extraction sweep skipped")
        return stats

    candidates = (
        Property.objects.filter(reno_phase=RenoPhase.RENO_IN_PROGRESS)
        .exclude(budget_pdf_url__isnull=True)
        .exclude(budget_pdf_url="")
        .filter(dynamic_categories__isnull=True)
        .order_by("id")
    )
    for prop in candidates:
        if not needs_categories_extraction(prop):
            continue
        stats["eligible"] += 1
        try:
            triggered = trigger.trigger_if_needed(prop)
        except Exception:
            logger.error("Categories extraction crashed for %s", prop.unique_id, exc_info=True)
            triggered = False
        if triggered:
            stats["triggered"] += 1
        else:
            stats["failed"] += 1

    logger.info(
        "Categories extraction sweep: %s eligible, %s triggered, %s failed",
        stats["eligible"], stats["triggered"], stats["failed"],
    )
    return stats
