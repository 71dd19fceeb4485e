"""
Set Up Status <-> kanban phase mapping.

The Set Up Status column in Airtable is free text maintained by the operations
team (English and Spanish variants, stray casing and accents). The kanban works
on the closed RenoPhase enum. Everything that converts between the two lives
here so the reconciler, the webhook path and the reset workflow agree.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from properties.models import RenoPhase

from .utils import normalize_status


STATUS_TO_PHASE: Dict[str, str] = {
    # Upcoming settlements
    "pending to visit": RenoPhase.UPCOMING_SETTLEMENTS,
    "nuevas escrituras": RenoPhase.UPCOMING_SETTLEMENTS,
    # Initial check
    "check inicial": RenoPhase.INITIAL_CHECK,
    "initial check": RenoPhase.INITIAL_CHECK,
    # Budget from renovator
    "pending to validate budget (from renovator)": RenoPhase.RENO_BUDGET_RENOVATOR,
    "pending to budget (from renovator)": RenoPhase.RENO_BUDGET_RENOVATOR,
    "pending to budget from renovator": RenoPhase.RENO_BUDGET_RENOVATOR,
    "pending budget from renovator": RenoPhase.RENO_BUDGET_RENOVATOR,
    # Budget from client
    "pending to validate budget (from client)": RenoPhase.RENO_BUDGET_CLIENT,
    "pending to budget (from client)": RenoPhase.RENO_BUDGET_CLIENT,
    "pending to budget from client": RenoPhase.RENO_BUDGET_CLIENT,
    "pending budget from client": RenoPhase.RENO_BUDGET_CLIENT,
    # Reno to start
    "reno to start": RenoPhase.RENO_BUDGET_START,
    "obra para empezar": RenoPhase.RENO_BUDGET_START,
    "obra a empezar": RenoPhase.RENO_BUDGET_START,
    # Legacy budget columns
    "pending to validate budget (client & renovator) & reno to start": RenoPhase.RENO_BUDGET,
    "upcoming": RenoPhase.RENO_BUDGET,
    "pending to validate budget": RenoPhase.UPCOMING,
    "pending to validate budget & reno to start": RenoPhase.UPCOMING,
    "proximas propiedades": RenoPhase.UPCOMING,
    # Works
    "reno in progress": RenoPhase.RENO_IN_PROGRESS,
    "obras en proceso": RenoPhase.RENO_IN_PROGRESS,
    "cleaning & furnishing": RenoPhase.FURNISHING_CLEANING,
    "limpieza y amoblamiento": RenoPhase.FURNISHING_CLEANING,
    "cleaning and furnishing": RenoPhase.FURNISHING_CLEANING,
    "furnishing": RenoPhase.FURNISHING,
    "cleaning": RenoPhase.CLEANING,
    "utilities activation": RenoPhase.PENDIENTE_SUMINISTROS,
    "final check": RenoPhase.FINAL_CHECK,
    "check final": RenoPhase.FINAL_CHECK,
    "reno fixes": RenoPhase.RENO_FIXES,
    "done": RenoPhase.DONE,
    "orphaned": RenoPhase.ORPHANED,
}

PHASE_TO_STATUS: Dict[str, str] = {
    RenoPhase.UPCOMING_SETTLEMENTS: "Pending to visit",
    RenoPhase.INITIAL_CHECK: "initial check",
    RenoPhase.RENO_BUDGET_RENOVATOR: "Pending to budget (from Renovator)",
    RenoPhase.RENO_BUDGET_CLIENT: "Pending to budget (from Client)",
    RenoPhase.RENO_BUDGET_START: "Reno to start",
    RenoPhase.RENO_BUDGET: "Pending to validate budget",
    RenoPhase.UPCOMING: "Pending to validate budget",
    RenoPhase.RENO_IN_PROGRESS: "Reno in progress",
    RenoPhase.FURNISHING: "Furnishing",
    RenoPhase.FINAL_CHECK: "Final Check",
    RenoPhase.PENDIENTE_SUMINISTROS: "Utilities activation",
    RenoPhase.CLEANING: "Cleaning",
    RenoPhase.FURNISHING_CLEANING: "Cleaning & Furnishing",
    RenoPhase.RENO_FIXES: "Reno Fixes",
    RenoPhase.DONE: "Done",
    RenoPhase.ORPHANED: "Orphaned",
}

_NORMALIZED_TABLE: Dict[str, str] = {normalize_status(k): v for k, v in STATUS_TO_PHASE.items()}

# Longest key first; equal lengths fall back to alphabetical order
_CONTAINMENT_ORDER: List[Tuple[str, str]] = sorted(
    _NORMALIZED_TABLE.items(),
    key=lambda item: (-len(item[0]), item[0]),
)


def map_status_to_phase(raw_status: Any, forced: Any = None) -> Optional[RenoPhase]:
    """
    Resolve a free-text Set Up Status to a kanban phase.

    A forced outcome (anything with a ``phase`` attribute) wins unconditionally.
    Otherwise: exact match, then normalized match, then longest-key containment.
    Returns None when nothing matches; callers must leave the phase untouched.
    """
    if forced is not None:
        return RenoPhase(forced.phase)

    if raw_status is None:
        return None
    raw = str(raw_status).strip()
    if not raw:
        return None

    exact = STATUS_TO_PHASE.get(raw)
    if exact is not None:
        return RenoPhase(exact)

    normalized = normalize_status(raw)
    if not normalized:
        return None

    phase = _NORMALIZED_TABLE.get(normalized)
    if phase is not None:
        return RenoPhase(phase)

    for key, phase in _CONTAINMENT_ORDER:
        if key in normalized:
            return RenoPhase(phase)

    return None


def status_for_phase(phase: Any) -> Optional[str]:
    """Canonical Set Up Status text for a phase, or None for project-only phases."""
    if phase is None:
        return None
    return PHASE_TO_STATUS.get(RenoPhase(phase))


def enforce_phase_consistency(
    current_phase: Optional[str],
    current_status: Optional[str],
    new_phase: Optional[str] = None,
    new_status: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Decide which of reno_phase / set_up_status to persist for one write.

    An explicit phase wins and the status is only written when also given.
    A status alone is written together with its mapped phase (an unmapped
    status leaves the phase as it is). Only columns whose value actually
    changes are returned, so an empty dict means "nothing to save".
    """
    updates: Dict[str, Any] = {}

    if new_phase is not None:
        phase_value = RenoPhase(new_phase).value
        if phase_value != current_phase:
            updates["reno_phase"] = phase_value
        if new_status is not None and new_status != current_status:
            updates["set_up_status"] = new_status
        return updates

    if new_status is not None:
        if new_status != current_status:
            updates["set_up_status"] = new_status
        mapped = map_status_to_phase(new_status)
        if mapped is not None and mapped.value != current_phase:
            updates["reno_phase"] = mapped.value

    return updates
