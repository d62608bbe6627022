"""Database access used by the slot validator, generator and cleanup service."""

from datetime import datetime
from typing import Iterable

from sqlalchemy.orm import Session, selectinload

from backend.models.availability import Availability
from backend.models.slot import Slot

from .types import AvailabilityStatus, CleanupScope, SeriesScope, SlotStatus


def get_window(db: Session, availability_id: int) -> Availability | None:
    return db.query(Availability).filter(Availability.id == availability_id).first()


def find_existing_windows(
    db: Session,
    provider_id: int,
    statuses: Iterable[AvailabilityStatus],
    exclude_id: int | None = None,
) -> list[Availability]:
    query = db.query(Availability).filter(
        Availability.provider_id == provider_id,
        Availability.status.in_(list(statuses)),
    )

    if exclude_id is not None:
        query = query.filter(Availability.id != exclude_id)

    return query.order_by(Availability.start_time.asc()).all()


def count_booked_slots(db: Session, availability_ids: int | Iterable[int]) -> int:
    ids = [availability_ids] if isinstance(availability_ids, int) else list(availability_ids)
    if not ids:
        return 0

    return db.query(Slot).filter(
        Slot.availability_id.in_(ids),
        Slot.booking_id.is_not(None),
    ).count()


def count_slots(db: Session, availability_id: int) -> int:
    return db.query(Slot).filter(Slot.availability_id == availability_id).count()


def find_slots(db: Session, availability_id: int) -> list[Slot]:
    return db.query(Slot).options(selectinload(Slot.booking)).filter(
        Slot.availability_id == availability_id,
    ).order_by(Slot.service_id.asc(), Slot.start_time.asc()).all()


def find_series_windows(
    db: Session,
    series_id: str,
    scope: CleanupScope,
    now: datetime,
) -> list[Availability]:
    query = db.query(Availability).filter(Availability.series_id == series_id)

    if scope == CleanupScope.FUTURE_ONLY:
        query = query.filter(Availability.start_time >= now)
    elif scope == CleanupScope.CANCELLED_ONLY:
        query = query.filter(Availability.status == AvailabilityStatus.CANCELLED)

    return query.order_by(Availability.start_time.asc()).all()


def find_windows_for_scope(db: Session, availability: Availability, scope: SeriesScope | None) -> list[Availability]:
    """Windows a delete/cancel of ``availability`` touches for the given series scope."""
    if scope is None or scope == SeriesScope.SINGLE or not availability.series_id:
        return [availability]

    query = db.query(Availability).filter(Availability.series_id == availability.series_id)
    if scope == SeriesScope.FUTURE:
        query = query.filter(Availability.start_time >= availability.start_time)

    return query.order_by(Availability.start_time.asc()).all()


def find_orphaned_slots(db: Session) -> list[Slot]:
    return db.query(Slot).join(Availability, Slot.availability_id == Availability.id).options(
        selectinload(Slot.booking),
    ).filter(
        Availability.status.in_([AvailabilityStatus.CANCELLED, AvailabilityStatus.REJECTED]),
    ).all()


def delete_slots(db: Session, slot_ids: list[int]) -> int:
    if not slot_ids:
        return 0
    return db.query(Slot).filter(Slot.id.in_(slot_ids)).delete(synchronize_session=False)


def delete_window_slots(db: Session, availability_ids: list[int]) -> int:
    if not availability_ids:
        return 0
    return db.query(Slot).filter(Slot.availability_id.in_(availability_ids)).delete(synchronize_session=False)


def mark_slots(db: Session, slot_ids: list[int], status: SlotStatus) -> int:
    if not slot_ids:
        return 0
    return db.query(Slot).filter(Slot.id.in_(slot_ids)).update(
        {Slot.status: status},
        synchronize_session=False,
    )
