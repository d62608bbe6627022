from datetime import datetime, timedelta

import pytest

from backend.models.availability import Availability
from backend.models.slot import Slot
from backend.models.slot_cancellation import SlotCancellation
from backend.services.slots.cleanup import (
    CleanupOptions,
    SlotCleanupService,
    cleanup_deleted_availability,
    cleanup_deleted_recurring_series,
    cleanup_modified_availability,
    cleanup_orphaned_slots,
)
from backend.services.slots.types import AvailabilityStatus, CleanupScope, SlotStatus


def _half_hour_slots(make_slot, availability, count: int, booked_indexes=()):
    slots = []
    for index in range(count):
        start = availability.start_time + timedelta(minutes=30 * index)
        slots.append(make_slot(availability, start, start + timedelta(minutes=30), booked=index in booked_indexes))
    return slots


def _slots_of(db, availability_id: int) -> list[Slot]:
    return db.query(Slot).filter(Slot.availability_id == availability_id).order_by(Slot.start_time).all()


def test_cleanup_deletes_unbooked_and_blocks_booked(scheduling_db, make_availability, make_slot, notifier) -> None:
    availability = make_availability(datetime(2026, 1, 6, 9, 0), datetime(2026, 1, 6, 12, 0))
    _half_hour_slots(make_slot, availability, 6, booked_indexes=(1, 4))

    result = SlotCleanupService(scheduling_db, CleanupOptions(), notifier).cleanup_availability_slots(availability.id)

    remaining = _slots_of(scheduling_db, availability.id)
    assert result.success
    assert result.total_slots_processed == 6
    assert result.slots_deleted == 4
    assert result.slots_marked_unavailable == 2
    assert result.bookings_affected == 2
    assert result.customers_notified == 2
    assert [slot.status for slot in remaining] == [SlotStatus.BLOCKED, SlotStatus.BLOCKED]
    assert all(slot.booking_id is not None for slot in remaining)
    assert result.warnings == ['2 booked slots marked as unavailable instead of deleted']
    assert scheduling_db.query(SlotCancellation).count() == 2


def test_cleanup_without_preservation_leaves_booked_slots_untouched(
    scheduling_db,
    make_availability,
    make_slot,
    notifier,
) -> None:
    availability = make_availability(datetime(2026, 1, 6, 9, 0), datetime(2026, 1, 6, 10, 0))
    _half_hour_slots(make_slot, availability, 2, booked_indexes=(0,))

    options = CleanupOptions(preserve_booked_slots=False)
    result = SlotCleanupService(scheduling_db, options, notifier).cleanup_availability_slots(availability.id)

    remaining = _slots_of(scheduling_db, availability.id)
    assert result.slots_deleted == 1
    assert result.slots_marked_unavailable == 0
    assert result.warnings == ['1 booked slots cannot be deleted - bookings exist']
    assert [slot.status for slot in remaining] == [SlotStatus.AVAILABLE]
    assert notifier.customer_notifications == []


def test_notification_failure_aborts_and_rolls_back(scheduling_db, make_availability, make_slot, make_notifier) -> None:
    availability = make_availability(datetime(2026, 1, 6, 9, 0), datetime(2026, 1, 6, 10, 0))
    booked, _ = _half_hour_slots(make_slot, availability, 2, booked_indexes=(0,))
    failing_notifier = make_notifier(error='smtp down')

    result = SlotCleanupService(scheduling_db, CleanupOptions(), failing_notifier).cleanup_availability_slots(
        availability.id,
    )

    assert not result.success
    assert result.errors == [f'Failed to notify customer for booking {booked.booking_id}: smtp down']
    assert result.slots_deleted == 0
    assert result.warnings == []
    assert len(_slots_of(scheduling_db, availability.id)) == 2
    assert scheduling_db.query(SlotCancellation).count() == 0


def test_notification_failure_can_be_collected_as_warning(
    scheduling_db,
    make_availability,
    make_slot,
    make_notifier,
) -> None:
    availability = make_availability(datetime(2026, 1, 6, 9, 0), datetime(2026, 1, 6, 10, 0))
    booked, _ = _half_hour_slots(make_slot, availability, 2, booked_indexes=(0,))

    options = CleanupOptions(abort_on_notification_failure=False)
    result = SlotCleanupService(scheduling_db, options, make_notifier(fail_customers=True)).cleanup_availability_slots(
        availability.id,
    )

    assert result.success
    assert result.customers_notified == 0
    assert result.slots_marked_unavailable == 1
    assert f'Failed to notify customer for booking {booked.booking_id}: delivery was not confirmed' in result.warnings


def test_series_cleanup_deletes_windows_without_bookings(
    scheduling_db,
    make_availability,
    make_slot,
    notifier,
) -> None:
    first = make_availability(datetime(2026, 1, 6, 9, 0), datetime(2026, 1, 6, 10, 0), series_id='series-1')
    second = make_availability(datetime(2026, 1, 7, 9, 0), datetime(2026, 1, 7, 10, 0), series_id='series-1')
    _half_hour_slots(make_slot, first, 2)
    _half_hour_slots(make_slot, second, 2, booked_indexes=(1,))

    result = SlotCleanupService(scheduling_db, CleanupOptions(), notifier).cleanup_recurring_series_slots(
        'series-1',
        CleanupScope.ALL,
        now=datetime(2026, 1, 5, 8, 0),
    )

    windows = scheduling_db.query(Availability).filter(Availability.series_id == 'series-1').all()
    assert result.success
    assert result.series_id == 'series-1'
    assert result.availabilities_processed == 2
    assert result.availabilities_deleted == 1
    assert result.slots_deleted == 3
    assert result.slots_marked_unavailable == 1
    assert [window.id for window in windows] == [second.id]


@pytest.mark.parametrize(
    ('scope', 'expected_processed'),
    [
        (CleanupScope.ALL, 3),
        (CleanupScope.FUTURE_ONLY, 2),
        (CleanupScope.CANCELLED_ONLY, 1),
    ],
)
def test_series_cleanup_scope_selects_windows(
    scheduling_db,
    make_availability,
    notifier,
    scope: CleanupScope,
    expected_processed: int,
) -> None:
    make_availability(datetime(2026, 1, 2, 9, 0), datetime(2026, 1, 2, 10, 0), series_id='series-2')
    make_availability(
        datetime(2026, 1, 9, 9, 0),
        datetime(2026, 1, 9, 10, 0),
        series_id='series-2',
        status=AvailabilityStatus.CANCELLED,
    )
    make_availability(datetime(2026, 1, 16, 9, 0), datetime(2026, 1, 16, 10, 0), series_id='series-2')

    result = SlotCleanupService(scheduling_db, CleanupOptions(), notifier).cleanup_recurring_series_slots(
        'series-2',
        scope,
        now=datetime(2026, 1, 5, 8, 0),
    )

    assert result.availabilities_processed == expected_processed
    assert result.availabilities_deleted == expected_processed


def test_orphan_sweep_only_touches_cancelled_and_rejected_windows(
    scheduling_db,
    make_availability,
    make_slot,
    notifier,
) -> None:
    active = make_availability(datetime(2026, 1, 6, 9, 0), datetime(2026, 1, 6, 10, 0))
    cancelled = make_availability(
        datetime(2026, 1, 7, 9, 0),
        datetime(2026, 1, 7, 10, 0),
        status=AvailabilityStatus.CANCELLED,
    )
    rejected = make_availability(
        datetime(2026, 1, 8, 9, 0),
        datetime(2026, 1, 8, 10, 0),
        status=AvailabilityStatus.REJECTED,
    )
    _half_hour_slots(make_slot, active, 2)
    _half_hour_slots(make_slot, cancelled, 2, booked_indexes=(0,))
    _half_hour_slots(make_slot, rejected, 2)

    result = cleanup_orphaned_slots(scheduling_db, CleanupOptions(), notifier)

    assert result.total_slots_processed == 4
    assert result.slots_deleted == 3
    assert result.slots_marked_unavailable == 1
    assert len(_slots_of(scheduling_db, active.id)) == 2
    assert len(_slots_of(scheduling_db, rejected.id)) == 0

    second_pass = cleanup_orphaned_slots(scheduling_db, CleanupOptions(), notifier)

    assert second_pass.total_slots_processed == 0
    assert result.customers_notified == 0
    assert notifier.customer_notifications == []


def test_orphan_sweep_blocks_booked_slots_without_preservation(
    scheduling_db,
    make_availability,
    make_slot,
    make_notifier,
) -> None:
    cancelled = make_availability(
        datetime(2026, 1, 7, 9, 0),
        datetime(2026, 1, 7, 10, 0),
        status=AvailabilityStatus.CANCELLED,
    )
    _half_hour_slots(make_slot, cancelled, 2, booked_indexes=(0,))
    failing_notifier = make_notifier(error='mail server down')

    options = CleanupOptions(preserve_booked_slots=False)
    result = cleanup_orphaned_slots(scheduling_db, options, failing_notifier)

    remaining = _slots_of(scheduling_db, cancelled.id)
    assert result.success
    assert result.slots_deleted == 1
    assert result.slots_marked_unavailable == 1
    assert [slot.status for slot in remaining] == [SlotStatus.BLOCKED]
    assert failing_notifier.customer_notifications == []


def test_orphan_sweep_can_be_disabled(scheduling_db, notifier) -> None:
    result = cleanup_orphaned_slots(scheduling_db, CleanupOptions(cleanup_orphaned_slots=False), notifier)

    assert result.total_slots_processed == 0
    assert result.warnings == ['Orphaned slot cleanup is disabled']


def test_modified_window_drops_slots_outside_new_bounds(
    scheduling_db,
    make_availability,
    make_slot,
    notifier,
) -> None:
    availability = make_availability(datetime(2026, 1, 6, 9, 0), datetime(2026, 1, 6, 11, 0))
    _half_hour_slots(make_slot, availability, 4, booked_indexes=(3,))

    availability.end_time = datetime(2026, 1, 6, 10, 0)
    scheduling_db.commit()

    result = cleanup_modified_availability(scheduling_db, availability.id, ['end_time'], CleanupOptions(), notifier)

    remaining = _slots_of(scheduling_db, availability.id)
    assert result.total_slots_processed == 4
    assert result.slots_deleted == 1
    assert result.slots_marked_unavailable == 1
    assert [(slot.start_time.strftime('%H:%M'), slot.status) for slot in remaining] == [
        ('09:00', SlotStatus.AVAILABLE),
        ('09:30', SlotStatus.AVAILABLE),
        ('10:30', SlotStatus.BLOCKED),
    ]


def test_modified_window_blocks_booked_slots_without_preservation(
    scheduling_db,
    make_availability,
    make_slot,
    notifier,
) -> None:
    availability = make_availability(datetime(2026, 1, 6, 9, 0), datetime(2026, 1, 6, 11, 0))
    _half_hour_slots(make_slot, availability, 4, booked_indexes=(3,))

    availability.end_time = datetime(2026, 1, 6, 10, 0)
    scheduling_db.commit()

    options = CleanupOptions(preserve_booked_slots=False)
    result = cleanup_modified_availability(scheduling_db, availability.id, ['end_time'], options, notifier)

    remaining = _slots_of(scheduling_db, availability.id)
    assert result.success
    assert result.slots_deleted == 1
    assert result.slots_marked_unavailable == 1
    assert [(slot.start_time.strftime('%H:%M'), slot.status) for slot in remaining] == [
        ('09:00', SlotStatus.AVAILABLE),
        ('09:30', SlotStatus.AVAILABLE),
        ('10:30', SlotStatus.BLOCKED),
    ]


def test_modified_window_ignores_non_destructive_changes(scheduling_db, make_availability, make_slot, notifier) -> None:
    availability = make_availability(datetime(2026, 1, 6, 9, 0), datetime(2026, 1, 6, 10, 0))
    _half_hour_slots(make_slot, availability, 2)

    result = cleanup_modified_availability(scheduling_db, availability.id, ['billing_entity'], CleanupOptions(), notifier)

    assert result.warnings == ['No cleanup needed for non-destructive changes']
    assert len(_slots_of(scheduling_db, availability.id)) == 2


def test_modified_cleanup_reports_missing_window(scheduling_db, notifier) -> None:
    result = cleanup_modified_availability(scheduling_db, 999, ['start_time'], CleanupOptions(), notifier)

    assert result.errors == ['Availability not found']
    assert result.total_slots_processed == 0


def test_cleanup_options_follow_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('backend.core.config.SLOT_CLEANUP_NOTIFY_CUSTOMERS', False)

    options = CleanupOptions.from_config(preserve_booked_slots=False)

    assert options.notify_affected_customers is False
    assert options.preserve_booked_slots is False
    assert options.create_cancellation_records is True


def test_module_helpers_run_the_service(scheduling_db, make_availability, make_slot, notifier) -> None:
    single = make_availability(datetime(2026, 1, 6, 9, 0), datetime(2026, 1, 6, 10, 0))
    series_window = make_availability(datetime(2026, 1, 7, 9, 0), datetime(2026, 1, 7, 10, 0), series_id='series-3')
    _half_hour_slots(make_slot, single, 2)
    series_window_id = series_window.id

    single_result = cleanup_deleted_availability(scheduling_db, single.id, CleanupOptions(), notifier)
    series_result = cleanup_deleted_recurring_series(scheduling_db, 'series-3', 'all', CleanupOptions(), notifier)

    assert single_result.slots_deleted == 2
    assert series_result.availabilities_deleted == 1
    assert scheduling_db.query(Availability).filter(Availability.id == series_window_id).first() is None
