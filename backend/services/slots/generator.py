"""Persist generated slots for accepted availability windows."""

import logging
import time
from datetime import datetime
from typing import Iterable

from sqlalchemy.orm import Session

from backend.models.slot import Slot

from . import queries
from .builder import generate_slot_data_from_availability, generate_slot_data_for_multiple_availability
from .types import AvailabilityStatus, SlotCreateData, SlotGenerationResult

logger = logging.getLogger(__name__)


def _to_rows(records: Iterable[SlotCreateData]) -> list[Slot]:
    return [
        Slot(
            availability_id=record.availability_id,
            service_id=record.service_id,
            service_config_id=record.service_config_id,
            start_time=record.start_time,
            end_time=record.end_time,
            duration=record.duration,
            price=record.price,
            status=record.status,
            last_calculated=record.last_calculated,
        )
        for record in records
    ]


def generate_slots_for_availability(
    db: Session,
    availability_id: int,
    force_regenerate: bool = False,
    generated_at: datetime | None = None,
) -> SlotGenerationResult:
    """
    Generate and store slots for one ACCEPTED window.

    With ``force_regenerate`` the window's existing slots are replaced; a
    window holding booked slots is never regenerated. Adds to the session
    without committing.
    """
    started = time.perf_counter()
    result = SlotGenerationResult(availability_id=availability_id)

    availability = queries.get_window(db, availability_id)
    if availability is None:
        result.errors.append('Availability not found')
    elif availability.status != AvailabilityStatus.ACCEPTED:
        result.errors.append('Slots are only generated for accepted availability')
    else:
        existing_slots = queries.count_slots(db, availability_id)
        booked_slots = queries.count_booked_slots(db, availability_id)

        if existing_slots and not force_regenerate:
            result.errors.append('Slots already exist. Use force_regenerate to regenerate.')
        elif booked_slots:
            result.errors.append(f'Cannot regenerate slots for availability with {booked_slots} booked slot(s)')
        else:
            if existing_slots:
                queries.delete_window_slots(db, [availability_id])

            slot_data = generate_slot_data_from_availability(availability, generated_at=generated_at)
            db.add_all(_to_rows(slot_data.slot_records))
            db.flush()
            result.slots_generated = slot_data.total_slots
            result.errors.extend(slot_data.errors)

    result.duration_ms = int((time.perf_counter() - started) * 1000)
    return result


def regenerate_slots_for_availability(db: Session, availability_id: int) -> SlotGenerationResult:
    """Throw away a window's slots and rebuild them from its current definition."""
    return generate_slots_for_availability(db, availability_id, force_regenerate=True)


def generate_slots_for_multiple_availability(
    db: Session,
    availabilities: list,
    generated_at: datetime | None = None,
) -> SlotGenerationResult:
    """Store slots for a freshly created batch of windows. Adds to the session without committing."""
    started = time.perf_counter()
    accepted = [window for window in availabilities if window.status == AvailabilityStatus.ACCEPTED]
    result = SlotGenerationResult(availability_id=accepted[0].id if accepted else 0)

    slot_data = generate_slot_data_for_multiple_availability(accepted, generated_at=generated_at)
    db.add_all(_to_rows(slot_data.slot_records))
    db.flush()

    result.slots_generated = slot_data.total_slots
    result.errors.extend(slot_data.errors)
    result.duration_ms = int((time.perf_counter() - started) * 1000)

    if result.errors:
        logger.warning('Slot generation reported %s error(s): %s', len(result.errors), result.errors)

    return result
