"""
Availability window validation.

Every check runs and every failure is reported; nothing here raises for a bad
window. "now" is injectable so bounds can be tested against a fixed clock.
"""

from datetime import datetime, timedelta
from typing import Sequence

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from . import queries
from .types import BLOCKING_STATUSES, TimeRange, UpdateEligibility, ValidationResult

MIN_DURATION_MINUTES = 15
MAX_PAST_DAYS = 30
MAX_FUTURE_MONTHS = 3


def has_time_overlap(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    """Open-interval overlap: ranges that only touch do not overlap."""
    return start1 < end2 and end1 > start2


def earliest_allowed_start(now: datetime) -> datetime:
    return now - timedelta(days=MAX_PAST_DAYS)


def latest_allowed_start(now: datetime) -> datetime:
    """Last instant of the current month plus the following two calendar months."""
    start_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return start_of_month + relativedelta(months=MAX_FUTURE_MONTHS) - timedelta(microseconds=1)


def _duration_minutes(start_time: datetime, end_time: datetime) -> int:
    return int((end_time - start_time).total_seconds() / 60)


def _format_range(start_time: datetime, end_time: datetime) -> str:
    return f'{start_time.isoformat()} - {end_time.isoformat()}'


def _window_errors(start_time: datetime, end_time: datetime, now: datetime) -> list[str]:
    errors: list[str] = []

    if end_time <= start_time:
        errors.append('End time must be after start time')

    if _duration_minutes(start_time, end_time) < MIN_DURATION_MINUTES:
        errors.append(f'Availability duration must be at least {MIN_DURATION_MINUTES} minutes')

    if start_time < earliest_allowed_start(now):
        errors.append(f'Cannot create availability more than {MAX_PAST_DAYS} days in the past')

    if start_time > latest_allowed_start(now):
        errors.append(f'Cannot create availability more than {MAX_FUTURE_MONTHS} months in the future')

    return errors


def _overlap_errors(existing_windows: Sequence, instances: Sequence[TimeRange]) -> list[str]:
    errors: list[str] = []

    for instance in instances:
        conflicts = [
            window for window in existing_windows
            if has_time_overlap(instance.start_time, instance.end_time, window.start_time, window.end_time)
        ]
        if conflicts:
            conflicting_times = ', '.join(_format_range(window.start_time, window.end_time) for window in conflicts)
            errors.append(
                f'Availability from {instance.start_time.isoformat()} to {instance.end_time.isoformat()} '
                f'overlaps with existing availability: {conflicting_times}'
            )

    return errors


def _unique(messages: list[str]) -> list[str]:
    return list(dict.fromkeys(messages))


def validate_availability(
    db: Session,
    provider_id: int,
    start_time: datetime,
    end_time: datetime,
    exclude_availability_id: int | None = None,
    instances: Sequence[TimeRange] | None = None,
    now: datetime | None = None,
) -> ValidationResult:
    """
    Validate one proposed window, or a batch of instances sharing its shape.

    Overlap is tested against the provider's ACCEPTED and PENDING windows;
    on update pass the window's own id as ``exclude_availability_id``.
    """
    now = now or datetime.now()
    errors = _window_errors(start_time, end_time, now)

    existing_windows = queries.find_existing_windows(
        db,
        provider_id,
        BLOCKING_STATUSES,
        exclude_id=exclude_availability_id,
    )
    instances_to_check = list(instances) if instances else [TimeRange(start_time, end_time)]
    errors.extend(_overlap_errors(existing_windows, instances_to_check))

    return ValidationResult(errors=errors)


def validate_recurring_availability(
    db: Session,
    provider_id: int,
    instances: Sequence[TimeRange],
    exclude_availability_id: int | None = None,
    now: datetime | None = None,
) -> ValidationResult:
    now = now or datetime.now()
    errors: list[str] = []

    # Existing windows are loaded once for the whole batch.
    existing_windows = queries.find_existing_windows(
        db,
        provider_id,
        BLOCKING_STATUSES,
        exclude_id=exclude_availability_id,
    )

    for instance in instances:
        errors.extend(_window_errors(instance.start_time, instance.end_time, now))
        errors.extend(_overlap_errors(existing_windows, [instance]))

    for index, first in enumerate(instances):
        for second in instances[index + 1:]:
            if has_time_overlap(first.start_time, first.end_time, second.start_time, second.end_time):
                errors.append(
                    'Recurring instances overlap with each other: '
                    f'{_format_range(first.start_time, first.end_time)} and '
                    f'{_format_range(second.start_time, second.end_time)}'
                )

    return ValidationResult(errors=_unique(errors))


def validate_availability_update(
    db: Session,
    availability_id: int,
    provider_id: int,
    start_time: datetime,
    end_time: datetime,
    now: datetime | None = None,
) -> ValidationResult:
    return validate_availability(
        db,
        provider_id,
        start_time,
        end_time,
        exclude_availability_id=availability_id,
        now=now,
    )


def can_update_availability(db: Session, availability_id: int) -> UpdateEligibility:
    booked_slots = queries.count_booked_slots(db, availability_id)

    if booked_slots > 0:
        return UpdateEligibility(
            can_update=False,
            reason=f'Cannot update availability with {booked_slots} existing booking(s)',
            booked_slots_count=booked_slots,
        )

    return UpdateEligibility(can_update=True)


def get_validation_constraints() -> dict:
    return {
        'min_duration_minutes': MIN_DURATION_MINUTES,
        'max_past_days': MAX_PAST_DAYS,
        'max_future_months': MAX_FUTURE_MONTHS,
        'rules': [
            f'Minimum duration: {MIN_DURATION_MINUTES} minutes',
            f'Cannot create availability more than {MAX_PAST_DAYS} days in the past',
            f'Cannot create availability more than {MAX_FUTURE_MONTHS} months in the future',
            'Cannot overlap with existing availability',
        ],
    }
