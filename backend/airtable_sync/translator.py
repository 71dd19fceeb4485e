"""
Airtable record -> Property column values.

Airtable field names drift over time (renames, trailing colons, field ids used
directly), so every target column lists the names it accepts; the first one
present on the record wins.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

from properties.models import PROPERTY_TYPES_WITH_PROJECT

from .exceptions import RecordTranslationError
from .services import ExternalRecord
from .utils import (
    extract_urls,
    first_value,
    is_blank,
    parse_date_robust,
    parse_int,
    safe_strip,
    truncate_field,
)

logger = logging.getLogger(__name__)


UNIQUE_ID_FIELDS: Tuple[str, ...] = (
    "UNIQUEID (from Engagements)",
    "Unique ID (From Engagements)",
    "Unique ID From Engagements",
    "Unique ID",
)

SET_UP_STATUS_FIELDS: Tuple[str, ...] = ("Set up status", "Set Up Status")

PROJECT_LINK_FIELDS: Tuple[str, ...] = ("Project", "Project Name", "Projects", "Parent Project")

PROPERTIES_LINK_FIELDS: Tuple[str, ...] = (
    "Properties",
    "Property",
    "Linked Property",
    "Property record",
    "Property Record",
    "Properties linked",
)

# column -> (aliases, max length)
TEXT_FIELDS: Dict[str, Tuple[Tuple[str, ...], int]] = {
    "address": (("Address",), 500),
    "property_type": (("Type",), 50),
    "renovation_type": (("Required reno", "Required Reno"), 100),
    "notes": (("Set up team notes", "SetUp Team Notes", "Setup Status Notes"), 10000),
    "keys_location": (("Keys Location", "Keys Location (If there are)"), 255),
    "stage": (("Stage",), 100),
    "client_name": (("Client Name", "Client name"), 255),
    "client_email": (("Client email", "Client Email"), 255),
    "area_cluster": (("Area Cluster", "Area cluster"), 100),
    "property_unique_id": (("Property Unique ID", "Property UniqueID"), 64),
    "technical_construction": (("fldtTmer8awVKDx7Y", "Technical construction", "Technical Constructor"), 255),
    "responsible_owner": (("Responsible Owner", "Responsible owner"), 255),
    "hubspot_id": (("Hubspot ID", "HubSpot - Engagement ID"), 64),
    "next_reno_steps": (("Next Reno Steps", "Next reno steps"), 10000),
    "renovator_name": (("Renovator Name", "Renovator name"), 255),
}

DATE_FIELDS: Dict[str, Tuple[str, ...]] = {
    "estimated_visit_date": ("Est. visit date", "Estimated Visit Date", "Estimated visit date", "fldIhqPOAFL52MMBn"),
    "estimated_end_date": ("Est. Reno End Date", "Estimated Reno End Date", "Est. Reno End Date:", "Estimated End Date"),
    "start_date": ("fldCnB9pCmpG5khiH", "Reno Start Date", "Reno start date", "Reno Start Date:", "Start Date"),
    "est_reno_start_date": (
        "fldPX58nQYf9HsTRE",
        "Est. reno start date",
        "Est. Reno Start Date",
        "Estimated Reno Start Date",
        "Estimated reno start date",
    ),
    "real_settlement_date": ("Real settlement date", "Real Settlement Date", "fldpQgS6HzhX0nXal"),
}

INT_FIELDS: Dict[str, Tuple[str, ...]] = {
    "days_to_start_reno": (
        "Days to start reno since real settlement date",
        "Days to start reno since settlement date",
        "Days to Start Reno (Since RSD)",
        "Days to Start Reno (Sice RSD)",
        "Days to start reno since RSD",
        "Days to Start Reno Since RSD",
        "Days to Start Reno Since Settlement Date",
        "Days to Start Reno",
        "Days to start reno",
    ),
    "reno_duration": ("Reno Duration",),
    "days_to_property_ready": ("Days to Property Ready",),
    "days_to_visit": ("Days to visit", "Days to Visit"),
}

PICS_FIELDS: Tuple[str, ...] = (
    "pics_urls_from_properties",
    "fldq1FLXBToYEY9W3",
    "pics_url",
    "Pics URLs",
    "Pics URLs:",
    "Pics",
    "Photos URLs",
    "Photos",
    "Property pictures & videos (from properties)",
    "Property pictures & videos",
)

BUDGET_FIELDS: Tuple[str, ...] = (
    "fldVOO4zqx5HUzIjz",
    "TECH - Budget Attachment (URLs)",
    "Budget PDF",
    "Budget Attachment",
)


@dataclass(frozen=True)
class TranslatedRecord:
    """Store-ready values for one Airtable record."""
    unique_id: str
    airtable_record_id: str
    set_up_status: Optional[str]
    values: Dict[str, Any] = field(default_factory=dict)
    project_airtable_id: Optional[str] = None


def get_field(fields: Dict[str, Any], names: Sequence[str]) -> Any:
    """Value of the first alias present on the record (present means the key exists and is not None)."""
    for name in names:
        if name in fields and fields[name] is not None:
            return fields[name]
    return None


def _text(fields: Dict[str, Any], names: Sequence[str], max_len: int) -> Optional[str]:
    value = first_value(get_field(fields, names))
    if isinstance(value, list):
        # attachment list where text was expected
        return None
    if isinstance(value, dict):
        # collaborator cell
        value = value.get("name") or value.get("email")
    return truncate_field(safe_strip(value), max_len)


def _date(record: ExternalRecord, column: str, names: Sequence[str]):
    raw = first_value(get_field(record.fields, names))
    if is_blank(raw):
        return None
    parsed = parse_date_robust(raw)
    if parsed is None:
        raise RecordTranslationError(f"Invalid date for {column}: {raw!r}", record_id=record.record_id)
    return parsed


def _linked_record_id(value: Any) -> Optional[str]:
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def extract_unique_id(fields: Dict[str, Any]) -> Optional[str]:
    value = first_value(get_field(fields, UNIQUE_ID_FIELDS))
    if value is None or isinstance(value, list):
        return None
    return truncate_field(str(value), 64)


def translate_record(record: ExternalRecord) -> Optional[TranslatedRecord]:
    """
    Translate one Airtable record.

    Returns None when the record carries no unique id (it cannot be correlated
    and is skipped). Raises RecordTranslationError for values that are present
    but unusable, such as a date that does not parse.
    """
    fields = record.fields or {}

    unique_id = extract_unique_id(fields)
    if not unique_id:
        return None

    values: Dict[str, Any] = {
        "airtable_record_id": record.record_id or None,
    }

    for column, (names, max_len) in TEXT_FIELDS.items():
        values[column] = _text(fields, names, max_len)
    values["address"] = values["address"] or ""

    for column, names in DATE_FIELDS.items():
        values[column] = _date(record, column, names)

    for column, names in INT_FIELDS.items():
        values[column] = parse_int(first_value(get_field(fields, names)))

    values["pics_urls"] = extract_urls(get_field(fields, PICS_FIELDS))

    budget_urls = extract_urls(get_field(fields, BUDGET_FIELDS))
    values["budget_pdf_url"] = ",".join(budget_urls) if budget_urls else None

    values["airtable_properties_record_id"] = _linked_record_id(get_field(fields, PROPERTIES_LINK_FIELDS))

    project_airtable_id = None
    property_type = values.get("property_type")
    if property_type and property_type.strip() in PROPERTY_TYPES_WITH_PROJECT:
        project_airtable_id = _linked_record_id(get_field(fields, PROJECT_LINK_FIELDS))

    status_value = first_value(get_field(fields, SET_UP_STATUS_FIELDS))
    set_up_status = None if isinstance(status_value, list) else truncate_field(safe_strip(status_value), 255)

    return TranslatedRecord(
        unique_id=unique_id,
        airtable_record_id=record.record_id,
        set_up_status=set_up_status,
        values=values,
        project_airtable_id=project_airtable_id,
    )
