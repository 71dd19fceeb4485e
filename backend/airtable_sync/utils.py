"""
Shared helpers for Airtable parsing and import.
Keep all parsing logic here so services/translator/commands are consistent.
"""
from __future__ import annotations

import re
import unicodedata
from datetime import date, datetime
from typing import Any, Iterable, List, Optional
import logging

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_status(value: Any) -> str:
    """
    Comparison form of a free-text status: lower-cased, accents removed,
    whitespace collapsed. Never stored.
    """
    if value is None:
        return ""
    text = unicodedata.normalize("NFKD", str(value))
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return _WHITESPACE_RE.sub(" ", text.lower()).strip()


def safe_strip(value: Any) -> Any:
    """Safely strip a value, returning None if value is None or empty string."""
    if value is None:
        return None
    if isinstance(value, str):
        v = value.strip()
        return v if v else None
    return value


def truncate_field(value: Optional[str], max_len: int) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    value = value.strip()
    if not value:
        return None
    return value[:max_len]


def first_value(value: Any) -> Any:
    """
    Lookup and rollup fields come back as lists; reduce them to the first element.
    Attachment lists (list of dicts) are returned untouched.
    """
    if isinstance(value, (list, tuple)):
        if not value:
            return None
        if isinstance(value[0], dict):
            return list(value)
        return value[0]
    return value


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def parse_date_robust(date_value: Any) -> Optional[date]:
    """
    Robust date parser for Airtable date and datetime cells.
    Accepts: date/datetime objects, ISO strings, common day-first strings; returns date or None.
    """
    if not date_value:
        return None

    if isinstance(date_value, date) and not isinstance(date_value, datetime):
        return date_value
    if isinstance(date_value, datetime):
        return date_value.date()

    if not isinstance(date_value, str):
        try:
            date_value = str(date_value)
        except Exception:
            return None

    s = date_value.strip()
    if not s or s.lower() == "null":
        return None

    # Airtable returns ISO dates; typed-in text fields are usually day-first
    fmts = (
        "%Y-%m-%d",
        "%d/%m/%Y",
        "%d/%m/%y",
        "%d-%m-%Y",
        "%Y/%m/%d",
        "%d.%m.%Y",
        "%Y-%m-%d %H:%M:%S",
        "%d/%m/%Y %H:%M:%S",
    )
    for fmt in fmts:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue

    # ISO datetime (e.g. 2025-01-15T21:51:41.000Z)
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def parse_int(value: Any) -> Optional[int]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        try:
            return int(value)
        except (ValueError, OverflowError):
            return None
    text = str(value).strip()
    if not text or text.lower() in {"none", "null", "nan"}:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return int(float(text.replace(",", ".")))
    except (ValueError, OverflowError):
        return None


def _is_url(text: str) -> bool:
    return text.startswith("http://") or text.startswith("https://")


def extract_urls(value: Any) -> List[str]:
    """
    Turn an attachment list, a list of strings or a comma-separated string into a list of URLs.
    Non-URL entries are dropped; order is preserved and duplicates removed.
    """
    urls: List[str] = []
    if value is None:
        return urls

    items: Iterable[Any]
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = value
    elif isinstance(value, dict):
        items = [value]
    else:
        return urls

    for item in items:
        if isinstance(item, dict):
            item = item.get("url")
        if not isinstance(item, str):
            continue
        text = item.strip()
        if text and _is_url(text) and text not in urls:
            urls.append(text)
    return urls
