"""
Airtable views that feed the kanban, one per phase.

Each view is pre-filtered in Airtable by the operations team. A record can sit
in several views at once while it transitions; the sync processes views by
descending priority and the first (most advanced) view to claim a record wins.

The two entry views (upcoming-settlements, initial-check) overlap in Airtable,
so their records are placed by Stage + Set Up Status instead of by the view
they came from.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Iterable, List, Optional, Tuple

from django.conf import settings

from properties.models import RenoPhase

from .utils import normalize_status


DEFAULT_PROPERTIES_TABLE_ID = "tblmX19OTsj3cTHmA"


@dataclass(frozen=True)
class ForcedOutcome:
    """
    Phase (and optionally Set Up Status) written for every record of a view,
    regardless of its own status text. ``status=None`` keeps the record's text.
    """
    phase: str
    status: Optional[str] = None


@dataclass(frozen=True)
class SyncView:
    name: str
    view_id: str
    phase: str
    priority: float
    forced: Optional[ForcedOutcome] = None
    table_id: str = DEFAULT_PROPERTIES_TABLE_ID
    stage_gated: bool = False


PHASE_VIEWS: Tuple[SyncView, ...] = (
    SyncView(
        name="cleaning",
        view_id="viwLajczYxzQd4UvU",
        phase=RenoPhase.CLEANING,
        priority=6,
        forced=ForcedOutcome(RenoPhase.CLEANING, "Cleaning"),
    ),
    SyncView(
        name="pendiente-suministros",
        view_id="viwCFzKrVQSCc23zc",
        phase=RenoPhase.PENDIENTE_SUMINISTROS,
        priority=5.5,
        forced=ForcedOutcome(RenoPhase.PENDIENTE_SUMINISTROS, "Utilities activation"),
    ),
    SyncView(
        name="final-check",
        view_id="viwnDG5TY6wjZhBL2",
        phase=RenoPhase.FINAL_CHECK,
        priority=5,
        forced=ForcedOutcome(RenoPhase.FINAL_CHECK, "Final Check"),
    ),
    SyncView(
        name="furnishing",
        view_id="viw9NDUaeGIQDvugU",
        phase=RenoPhase.FURNISHING,
        priority=4,
        forced=ForcedOutcome(RenoPhase.FURNISHING, "Furnishing"),
    ),
    SyncView(
        name="reno-in-progress",
        view_id="viwQUOrLzUrScuU4k",
        phase=RenoPhase.RENO_IN_PROGRESS,
        priority=3,
        forced=ForcedOutcome(RenoPhase.RENO_IN_PROGRESS, "Reno in progress"),
    ),
    # The budget view mixes renovator/client/start sub-columns, so the status text decides
    SyncView(
        name="reno-budget",
        view_id="viwKS3iOiyX5iu5zP",
        phase=RenoPhase.RENO_BUDGET,
        priority=2,
    ),
    SyncView(
        name="initial-check",
        view_id="viwFZZ5S3VFCfYP6g",
        phase=RenoPhase.INITIAL_CHECK,
        priority=1,
        stage_gated=True,
    ),
    SyncView(
        name="upcoming-settlements",
        view_id="viwpYQ0hsSSdFrSD1",
        phase=RenoPhase.UPCOMING_SETTLEMENTS,
        priority=0,
        stage_gated=True,
    ),
)


def stage_gated_phase(set_up_status: Any, stage: Any) -> RenoPhase:
    """
    Placement for records of the entry views.

    Pending to visit + Presettlement -> upcoming-settlements
    Pending to visit + Settled -> initial-check
    anything else -> reno-budget
    """
    status = normalize_status(set_up_status)
    stage_text = normalize_status(stage)
    pending_visit = "pending" in status and "visit" in status
    if pending_visit and "presettlement" in stage_text:
        return RenoPhase.UPCOMING_SETTLEMENTS
    if pending_visit and "settled" in stage_text:
        return RenoPhase.INITIAL_CHECK
    return RenoPhase.RENO_BUDGET


def resolve_view_outcome(view: SyncView, set_up_status: Any = None, stage: Any = None) -> Optional[ForcedOutcome]:
    """Outcome a record of ``view`` is written with; None lets the status text decide."""
    if view.stage_gated:
        return ForcedOutcome(stage_gated_phase(set_up_status, stage))
    return view.forced


def get_phase_views(names: Optional[Iterable[str]] = None) -> List[SyncView]:
    """
    Configured views in processing order (descending priority).
    ``names`` restricts the selection; unknown names raise ValueError.
    The table id comes from settings.AIRTABLE_PROPERTIES_TABLE_ID when set.
    """
    table_id = getattr(settings, "AIRTABLE_PROPERTIES_TABLE_ID", "") or DEFAULT_PROPERTIES_TABLE_ID
    views = list(PHASE_VIEWS)

    if names:
        wanted = [str(n).strip() for n in names if str(n).strip()]
        known = {v.name for v in views}
        unknown = [n for n in wanted if n not in known]
        if unknown:
            raise ValueError(f"Unknown sync view(s): {', '.join(unknown)}")
        views = [v for v in views if v.name in wanted]

    if table_id != DEFAULT_PROPERTIES_TABLE_ID:
        views = [replace(v, table_id=table_id) for v in views]

    return sorted(views, key=lambda v: v.priority, reverse=True)
