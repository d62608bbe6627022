"""
Slot lifecycle reconciliation.

When an availability window is deleted, cancelled, rejected or modified, its
generated slots are reconciled:

  unbooked slot  -> deleted
  booked slot    -> status BLOCKED, kept for history, customer notified
                    (the orphan sweep blocks without notifying)

Each public operation runs in one database transaction. Failures are caught,
rolled back and reported in the result's ``errors``; the operation then
returns a zeroed result instead of raising.
"""

import logging
import time
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Iterable

from sqlalchemy.orm import Session

from backend.core import config
from backend.models.slot_cancellation import SlotCancellation
from backend.services.notifications import NotificationError, Notifier, get_notifier

from . import queries
from .types import (
    DESTRUCTIVE_FIELDS,
    AvailabilityStatus,
    CleanupResult,
    CleanupScope,
    SeriesCleanupResult,
    SlotStatus,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CleanupOptions:
    preserve_booked_slots: bool = True
    notify_affected_customers: bool = True
    create_cancellation_records: bool = True
    cleanup_orphaned_slots: bool = True
    # False collects notification failures as warnings and keeps going.
    abort_on_notification_failure: bool = True

    @classmethod
    def from_config(cls, **overrides) -> 'CleanupOptions':
        defaults = cls(
            preserve_booked_slots=config.SLOT_CLEANUP_PRESERVE_BOOKED,
            notify_affected_customers=config.SLOT_CLEANUP_NOTIFY_CUSTOMERS,
            create_cancellation_records=config.SLOT_CLEANUP_CREATE_CANCELLATION_RECORDS,
            cleanup_orphaned_slots=config.SLOT_CLEANUP_ORPHANED,
            abort_on_notification_failure=config.SLOT_CLEANUP_ABORT_ON_NOTIFICATION_FAILURE,
        )
        return replace(defaults, **overrides)


def is_slot_valid_for_modified_availability(slot, availability) -> bool:
    if slot.start_time < availability.start_time or slot.end_time > availability.end_time:
        return False

    return availability.status == AvailabilityStatus.ACCEPTED


class SlotCleanupService:
    def __init__(self, db: Session, options: CleanupOptions | None = None, notifier: Notifier | None = None):
        self.db = db
        self.options = options or CleanupOptions()
        self.notifier = notifier or get_notifier()

    def cleanup_availability_slots(self, availability_id: int) -> CleanupResult:
        """Reconcile every slot of one deleted or cancelled window."""

        def operation(result: CleanupResult) -> None:
            slots = queries.find_slots(self.db, availability_id)
            result.total_slots_processed = len(slots)
            self._dispose(slots, result, reason='availability_removed')

        return self._run(CleanupResult(), operation, f'availability {availability_id}')

    def cleanup_recurring_series_slots(
        self,
        series_id: str,
        scope: CleanupScope | str = CleanupScope.ALL,
        now: datetime | None = None,
    ) -> SeriesCleanupResult:
        """Reconcile slots across a series, then drop windows left without bookings."""
        scope = CleanupScope(scope)
        now = now or datetime.now()

        def operation(result: SeriesCleanupResult) -> None:
            windows = queries.find_series_windows(self.db, series_id, scope, now)
            result.availabilities_processed = len(windows)

            for window in windows:
                slots = queries.find_slots(self.db, window.id)
                result.total_slots_processed += len(slots)
                booked_count = self._dispose(slots, result, reason='series_removed')

                if booked_count and self.options.preserve_booked_slots:
                    continue

                if queries.count_slots(self.db, window.id):
                    result.warnings.append(f'Could not delete availability {window.id}: foreign key constraints')
                    continue

                self.db.delete(window)
                self.db.flush()
                result.availabilities_deleted += 1

        return self._run(SeriesCleanupResult(series_id=series_id), operation, f'series {series_id}')

    def cleanup_orphaned_slots(self) -> CleanupResult:
        """Sweep slots that outlived a CANCELLED or REJECTED window."""
        if not self.options.cleanup_orphaned_slots:
            return CleanupResult(warnings=['Orphaned slot cleanup is disabled'])

        def operation(result: CleanupResult) -> None:
            slots = [slot for slot in queries.find_orphaned_slots(self.db) if slot.status != SlotStatus.BLOCKED]
            result.total_slots_processed = len(slots)
            self._dispose(slots, result, reason='orphaned', always_block=True, notify=False)

        return self._run(CleanupResult(), operation, 'orphaned slots')

    def cleanup_modified_availability_slots(
        self,
        availability_id: int,
        modified_fields: Iterable[str],
    ) -> CleanupResult:
        """Drop or block the slots that no longer fit a modified window."""
        if not DESTRUCTIVE_FIELDS.intersection(modified_fields):
            return CleanupResult(warnings=['No cleanup needed for non-destructive changes'])

        def operation(result: CleanupResult) -> None:
            availability = queries.get_window(self.db, availability_id)
            if availability is None:
                raise LookupError('Availability not found')

            slots = queries.find_slots(self.db, availability_id)
            result.total_slots_processed = len(slots)
            invalid_slots = [
                slot for slot in slots
                if not is_slot_valid_for_modified_availability(slot, availability)
            ]
            self._dispose(invalid_slots, result, reason='availability_modified', always_block=True)

        return self._run(CleanupResult(), operation, f'modified availability {availability_id}')

    def _run(self, result: CleanupResult, operation: Callable[[CleanupResult], None], target: str):
        started = time.perf_counter()

        try:
            operation(result)
            self.db.commit()
        except Exception as exc:
            self.db.rollback()
            logger.exception('Slot cleanup failed for %s', target)
            zeroed = type(result)(errors=[str(exc) or exc.__class__.__name__])
            if isinstance(result, SeriesCleanupResult):
                zeroed.series_id = result.series_id
            result = zeroed
        else:
            logger.info(
                'Slot cleanup for %s: %s processed, %s deleted, %s blocked',
                target,
                result.total_slots_processed,
                result.slots_deleted,
                result.slots_marked_unavailable,
            )

        result.processing_time_ms = int((time.perf_counter() - started) * 1000)
        return result

    def _dispose(
        self,
        slots: list,
        result: CleanupResult,
        reason: str,
        always_block: bool = False,
        notify: bool = True,
    ) -> int:
        """Delete unbooked slots and block booked ones. Returns the booked count.

        ``always_block`` blocks booked slots even when preservation is off.
        """
        booked_slots = [slot for slot in slots if slot.is_booked]
        unbooked_ids = [slot.id for slot in slots if not slot.is_booked]

        result.slots_deleted += queries.delete_slots(self.db, unbooked_ids)

        if not booked_slots:
            return 0

        if not (always_block or self.options.preserve_booked_slots):
            result.warnings.append(f'{len(booked_slots)} booked slots cannot be deleted - bookings exist')
            return len(booked_slots)

        result.slots_marked_unavailable += queries.mark_slots(
            self.db,
            [slot.id for slot in booked_slots],
            SlotStatus.BLOCKED,
        )
        result.bookings_affected += len(booked_slots)

        if self.options.create_cancellation_records:
            self.db.add_all(
                SlotCancellation(
                    slot_id=slot.id,
                    booking_id=slot.booking_id,
                    availability_id=slot.availability_id,
                    reason=reason,
                )
                for slot in booked_slots
            )

        if notify and self.options.notify_affected_customers:
            self._notify_customers(booked_slots, result)

        result.warnings.append(f'{len(booked_slots)} booked slots marked as unavailable instead of deleted')
        return len(booked_slots)

    def _notify_customers(self, booked_slots: list, result: CleanupResult) -> None:
        for slot in booked_slots:
            try:
                delivered = self.notifier.notify_customer(slot.booking, slot)
                failure = None if delivered else 'delivery was not confirmed'
            except NotificationError as exc:
                failure = str(exc)

            if failure is None:
                result.customers_notified += 1
                continue

            message = f'Failed to notify customer for booking {slot.booking_id}: {failure}'
            if self.options.abort_on_notification_failure:
                raise NotificationError(message)
            result.warnings.append(message)


def cleanup_deleted_availability(
    db: Session,
    availability_id: int,
    options: CleanupOptions | None = None,
    notifier: Notifier | None = None,
) -> CleanupResult:
    return SlotCleanupService(db, options, notifier).cleanup_availability_slots(availability_id)


def cleanup_deleted_recurring_series(
    db: Session,
    series_id: str,
    scope: CleanupScope | str = CleanupScope.ALL,
    options: CleanupOptions | None = None,
    notifier: Notifier | None = None,
) -> SeriesCleanupResult:
    return SlotCleanupService(db, options, notifier).cleanup_recurring_series_slots(series_id, scope)


def cleanup_orphaned_slots(
    db: Session,
    options: CleanupOptions | None = None,
    notifier: Notifier | None = None,
) -> CleanupResult:
    return SlotCleanupService(db, options, notifier).cleanup_orphaned_slots()


def cleanup_modified_availability(
    db: Session,
    availability_id: int,
    modified_fields: Iterable[str],
    options: CleanupOptions | None = None,
    notifier: Notifier | None = None,
) -> CleanupResult:
    return SlotCleanupService(db, options, notifier).cleanup_modified_availability_slots(
        availability_id,
        modified_fields,
    )
