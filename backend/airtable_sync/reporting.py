"""
Result objects returned by every sync entry point (full pass, single view, webhook).
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from django.conf import settings
from django.utils import timezone


STATUS_SUCCESS = "success"
STATUS_PARTIAL = "partial"
STATUS_FAILED = "failed"
STATUS_REJECTED = "rejected"

VIEW_OK = "ok"
VIEW_FAILED = "failed"
VIEW_NOT_RUN = "not_run"


@dataclass(frozen=True)
class ViewResult:
    name: str
    phase: str
    status: str = VIEW_OK
    fetched: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errored: int = 0
    triggered: int = 0
    error: Optional[str] = None

    @property
    def fatal(self) -> bool:
        return self.status == VIEW_FAILED


@dataclass(frozen=True)
class SyncRunResult:
    status: str
    run_type: str
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errored: int = 0
    orphaned: int = 0
    triggered: int = 0
    views: Tuple[ViewResult, ...] = ()
    details: Tuple[str, ...] = ()
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    run_id: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.status in (STATUS_SUCCESS, STATUS_PARTIAL)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["views"] = [asdict(v) for v in self.views]
        data["details"] = list(self.details)
        data["started_at"] = self.started_at.isoformat() if self.started_at else None
        data["finished_at"] = self.finished_at.isoformat() if self.finished_at else None
        data["duration_seconds"] = self.duration_seconds
        return data


class SyncRunReport:
    """
    Mutable accumulator for one invocation. ``build()`` freezes it into a SyncRunResult.
    Details are capped at ``max_details`` lines; the overflow is summarized by one trailing line.
    """

    def __init__(self, run_type: str, max_details: Optional[int] = None) -> None:
        self.run_type = run_type
        self.max_details = max_details if max_details is not None else getattr(settings, "SYNC_MAX_DETAILS", 50)
        self.started_at = timezone.now()
        self.created = 0
        self.updated = 0
        self.skipped = 0
        self.errored = 0
        self.orphaned = 0
        self.triggered = 0
        self.views: List[ViewResult] = []
        self._details: List[str] = []
        self._dropped_details = 0
        self.run_id: Optional[int] = None

    def add_detail(self, line: str) -> None:
        if len(self._details) < self.max_details:
            self._details.append(line)
        else:
            self._dropped_details += 1

    def add_view(self, view_result: ViewResult) -> None:
        self.views.append(view_result)
        self.created += view_result.created
        self.updated += view_result.updated
        self.skipped += view_result.skipped
        self.errored += view_result.errored
        self.triggered += view_result.triggered

    @property
    def details(self) -> Tuple[str, ...]:
        lines = list(self._details)
        if self._dropped_details:
            lines.append(f"... and {self._dropped_details} more")
        return tuple(lines)

    def _derive_status(self) -> str:
        ran = [v for v in self.views if v.status != VIEW_NOT_RUN]
        if self.views and ran and all(v.fatal for v in ran):
            return STATUS_FAILED
        if any(v.status != VIEW_OK for v in self.views) or self.errored:
            return STATUS_PARTIAL
        return STATUS_SUCCESS

    def build(self, status: Optional[str] = None) -> SyncRunResult:
        return SyncRunResult(
            status=status or self._derive_status(),
            run_type=self.run_type,
            created=self.created,
            updated=self.updated,
            skipped=self.skipped,
            errored=self.errored,
            orphaned=self.orphaned,
            triggered=self.triggered,
            views=tuple(self.views),
            details=self.details,
            started_at=self.started_at,
            finished_at=timezone.now(),
            run_id=self.run_id,
        )


def rejected_result(run_type: str, reason: str) -> SyncRunResult:
    now = timezone.now()
    return SyncRunResult(
        status=STATUS_REJECTED,
        run_type=run_type,
        details=(reason,),
        started_at=now,
        finished_at=now,
    )
