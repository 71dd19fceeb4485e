"""
Property workflows that touch dependent records.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.db import transaction

from airtable_sync.exceptions import AirtableError
from airtable_sync.locks import PropertyLock
from airtable_sync.phases import enforce_phase_consistency, status_for_phase
from airtable_sync.services import AirtableClient

from .models import InspectionElement, InspectionZone, Property, PropertyInspection, RenoPhase

logger = logging.getLogger(__name__)


# Workflow columns derived from checklists and scheduling, cleared on reset
RESET_FIELD_DEFAULTS = {
    'renovator_name': None,
    'estimated_visit_date': None,
    'start_date': None,
    'estimated_end_date': None,
    'next_reno_steps': None,
    'initial_check_complete': False,
    'final_check_complete': False,
}

# Same reset pushed back to Airtable so the next sync does not move the property forward again
AIRTABLE_RESET_FIELDS = {
    'Renovator Name': None,
    'Estimated Visit Date': None,
    'Reno Start Date': None,
    'Estimated Reno End Date': None,
}


@dataclass(frozen=True)
class CascadeCounts:
    inspections: int = 0
    zones: int = 0
    elements: int = 0
    fields_cleared: int = 0


@dataclass(frozen=True)
class ResetResult:
    property: Property
    cascade: CascadeCounts
    airtable_updated: bool


def find_property(identifier) -> Optional[Property]:
    """Look a property up by unique id first, then by primary key."""
    if identifier is None:
        return None
    text = str(identifier).strip()
    if not text:
        return None
    prop = Property.objects.filter(unique_id=text).first()
    if prop is None and text.isdigit():
        prop = Property.objects.filter(pk=int(text)).first()
    return prop


def reset_dependents(property: Property) -> CascadeCounts:
    """
    Delete every inspection of the property (elements, then zones, then inspections)
    and clear the derived workflow fields. Safe to call repeatedly.
    """
    with transaction.atomic():
        inspection_ids = list(
            PropertyInspection.objects.filter(property=property).values_list('id', flat=True)
        )
        zone_ids = list(
            InspectionZone.objects.filter(inspection_id__in=inspection_ids).values_list('id', flat=True)
        )

        elements_deleted, _ = InspectionElement.objects.filter(zone_id__in=zone_ids).delete()
        zones_deleted, _ = InspectionZone.objects.filter(id__in=zone_ids).delete()
        inspections_deleted, _ = PropertyInspection.objects.filter(id__in=inspection_ids).delete()

        changed = [
            name for name, default in RESET_FIELD_DEFAULTS.items()
            if getattr(property, name) != default
        ]
        for name in changed:
            setattr(property, name, RESET_FIELD_DEFAULTS[name])
        if changed:
            property.save(update_fields=changed + ['updated_at'])

    counts = CascadeCounts(
        inspections=inspections_deleted,
        zones=zones_deleted,
        elements=elements_deleted,
        fields_cleared=len(changed),
    )
    logger.info(
        "Reset dependents of %s: %s inspections, %s zones, %s elements, %s fields cleared",
        property.unique_id, counts.inspections, counts.zones, counts.elements, counts.fields_cleared,
    )
    return counts


def _push_reset_to_airtable(property: Property, status: str, client: Optional[AirtableClient] = None) -> bool:
    if not property.airtable_record_id:
        logger.info("Property %s has no Airtable record id, reset not pushed", property.unique_id)
        return False

    client = client or AirtableClient()
    if not client.is_configured:
        logger.warning("Airtable not configured, reset of %s not pushed", property.unique_id)
        return False

    table_id = getattr(settings, 'AIRTABLE_PROPERTIES_TABLE_ID', '')
    fields = dict(AIRTABLE_RESET_FIELDS)
    fields['Set Up Status'] = status
    try:
        client.update_record(table_id, property.airtable_record_id, fields)
    except AirtableError as e:
        logger.error("Error updating Airtable for %s (non-critical): %s", property.unique_id, e)
        return False
    return True


def reset_property_to_initial_phase(
    property: Property,
    push_to_airtable: bool = True,
    client: Optional[AirtableClient] = None,
) -> ResetResult:
    """
    Send a property back to upcoming-settlements with a clean slate.

    Inspections are deleted, workflow fields cleared and the phase/status reset
    under the per-property lock. Airtable is then updated on a best-effort basis.
    """
    phase = RenoPhase.UPCOMING_SETTLEMENTS
    status = status_for_phase(phase)

    with PropertyLock(property.unique_id):
        with transaction.atomic():
            property.refresh_from_db()
            cascade = reset_dependents(property)
            updates = enforce_phase_consistency(
                property.reno_phase, property.set_up_status, new_phase=phase, new_status=status,
            )
            if updates:
                for name, value in updates.items():
                    setattr(property, name, value)
                property.save(update_fields=list(updates.keys()) + ['updated_at'])

    logger.info("Property %s reset to %s", property.unique_id, phase.value)

    airtable_updated = False
    if push_to_airtable:
        airtable_updated = _push_reset_to_airtable(property, status, client=client)

    return ResetResult(property=property, cascade=cascade, airtable_updated=airtable_updated)
