"""
Scheduling rule engine.

Turns one availability window and one service duration into the ordered list
of bookable time slots allowed by the window's scheduling rule:

  CONTINUOUS        back-to-back slots from the window start
  ON_THE_HOUR       slots start only at :00
  ON_THE_HALF_HOUR  slots start only at :00 or :30

A trailing period shorter than the service duration never yields a slot.
"""

import math
from datetime import datetime, timedelta
from typing import Callable

from .types import SchedulingRule, TimeSlot, TimeSlotGenerationResult

HOUR_INTERVAL_MINUTES = 60
HALF_HOUR_INTERVAL_MINUTES = 30
MIN_CUSTOM_INTERVAL_MINUTES = 5

# Fixed reference day for arithmetic that only depends on window length.
_REFERENCE_DAY = datetime(2000, 1, 3)


def generate_time_slots(
    availability_start: datetime,
    availability_end: datetime,
    service_duration: int,
    scheduling_rule: SchedulingRule | str,
    scheduling_interval: int | None = None,
) -> TimeSlotGenerationResult:
    """
    Generate the slots one service can occupy inside an availability window.

    Input problems are reported in ``errors`` with an empty slot list rather
    than raised. ``scheduling_interval`` is accepted for stored windows that
    carry one; none of the current rules step by it.
    """
    del scheduling_interval
    errors: list[str] = []

    if availability_end <= availability_start:
        errors.append('Availability end time must be after start time')

    if service_duration <= 0:
        errors.append('Service duration must be positive')

    if errors:
        return TimeSlotGenerationResult(slots=[], errors=errors)

    rule = _coerce_rule(scheduling_rule)
    generator = _RULE_GENERATORS.get(rule) if rule else None
    if generator is None:
        return TimeSlotGenerationResult(
            slots=[],
            errors=[f'Unsupported scheduling rule: {_rule_label(scheduling_rule)}'],
        )

    slots = generator(availability_start, availability_end, service_duration)
    slots = [slot for slot in slots if slot.end_time <= availability_end]

    return TimeSlotGenerationResult(slots=slots, errors=errors)


def get_next_aligned_time(value: datetime, interval_minutes: int) -> datetime:
    """Smallest minute boundary that is a multiple of ``interval_minutes`` past the hour."""
    start_of_hour = value.replace(minute=0, second=0, microsecond=0)
    next_interval = math.ceil(value.minute / interval_minutes) * interval_minutes

    if next_interval >= 60:
        return start_of_hour + timedelta(minutes=60) + timedelta(minutes=next_interval - 60)

    return start_of_hour + timedelta(minutes=next_interval)


def _clean(value: datetime) -> datetime:
    return value.replace(second=0, microsecond=0)


def _generate_continuous_slots(start: datetime, end: datetime, duration: int) -> list[TimeSlot]:
    slots: list[TimeSlot] = []
    step = timedelta(minutes=duration)
    current_start = _clean(start)

    while current_start < end:
        current_end = current_start + step
        if current_end > end:
            break

        slots.append(TimeSlot(start_time=current_start, end_time=current_end, duration=duration))
        current_start = current_end

    return slots


def _aligned_step(duration: int, interval_minutes: int) -> int:
    return max(1, math.ceil(duration / interval_minutes)) * interval_minutes


def _generate_aligned_slots(
    start: datetime,
    end: datetime,
    duration: int,
    interval_minutes: int,
) -> list[TimeSlot]:
    slots: list[TimeSlot] = []
    length = timedelta(minutes=duration)

    current_start = get_next_aligned_time(_clean(start), interval_minutes)
    if current_start < start:
        current_start += timedelta(minutes=interval_minutes)

    # The next start is the first boundary at or after the previous slot's end.
    step = timedelta(minutes=_aligned_step(duration, interval_minutes))

    while current_start < end:
        current_end = current_start + length
        if current_end > end:
            break

        slots.append(TimeSlot(start_time=current_start, end_time=current_end, duration=duration))
        current_start += step

    return slots


def _generate_on_the_hour_slots(start: datetime, end: datetime, duration: int) -> list[TimeSlot]:
    return _generate_aligned_slots(start, end, duration, HOUR_INTERVAL_MINUTES)


def _generate_on_the_half_hour_slots(start: datetime, end: datetime, duration: int) -> list[TimeSlot]:
    return _generate_aligned_slots(start, end, duration, HALF_HOUR_INTERVAL_MINUTES)


_RULE_GENERATORS: dict[SchedulingRule, Callable[[datetime, datetime, int], list[TimeSlot]]] = {
    SchedulingRule.CONTINUOUS: _generate_continuous_slots,
    SchedulingRule.ON_THE_HOUR: _generate_on_the_hour_slots,
    SchedulingRule.ON_THE_HALF_HOUR: _generate_on_the_half_hour_slots,
}

_RULE_INTERVALS = {
    SchedulingRule.ON_THE_HOUR: HOUR_INTERVAL_MINUTES,
    SchedulingRule.ON_THE_HALF_HOUR: HALF_HOUR_INTERVAL_MINUTES,
}


def _coerce_rule(value: SchedulingRule | str | None) -> SchedulingRule | None:
    if isinstance(value, SchedulingRule):
        return value
    try:
        return SchedulingRule(value)
    except ValueError:
        return None


def _rule_label(value: SchedulingRule | str | None) -> str:
    return value.value if isinstance(value, SchedulingRule) else str(value)


def validate_scheduling_rule_config(
    scheduling_rule: SchedulingRule | str,
    scheduling_interval: int | None = None,
) -> tuple[bool, list[str]]:
    errors: list[str] = []

    if _coerce_rule(scheduling_rule) is None:
        errors.append('Invalid scheduling rule')

    if scheduling_interval is not None and scheduling_interval <= 0:
        errors.append('Scheduling interval must be positive')

    return not errors, errors


def calculate_optimal_interval(
    service_duration: int,
    scheduling_rule: SchedulingRule | str,
    buffer_minutes: int = 0,
) -> int:
    """Suggested spacing between slot starts for a service and its buffer."""
    rule = _coerce_rule(scheduling_rule)
    total = service_duration + buffer_minutes

    if rule == SchedulingRule.ON_THE_HOUR:
        return max(1, math.ceil(total / HOUR_INTERVAL_MINUTES)) * HOUR_INTERVAL_MINUTES
    if rule == SchedulingRule.ON_THE_HALF_HOUR:
        return max(1, math.ceil(total / HALF_HOUR_INTERVAL_MINUTES)) * HALF_HOUR_INTERVAL_MINUTES
    if rule == SchedulingRule.CONTINUOUS:
        return max(total, MIN_CUSTOM_INTERVAL_MINUTES)

    return service_duration


def is_slot_valid_for_scheduling_rule(slot_start: datetime, scheduling_rule: SchedulingRule | str) -> bool:
    rule = _coerce_rule(scheduling_rule)

    if rule == SchedulingRule.CONTINUOUS:
        return True

    interval = _RULE_INTERVALS.get(rule)
    if interval is None:
        return False

    return slot_start.second == 0 and slot_start.microsecond == 0 and slot_start.minute % interval == 0


def get_next_valid_slot_time(from_time: datetime, scheduling_rule: SchedulingRule | str) -> datetime:
    rule = _coerce_rule(scheduling_rule)
    interval = _RULE_INTERVALS.get(rule)

    if interval is None:
        return from_time

    aligned = get_next_aligned_time(_clean(from_time), interval)
    if aligned < from_time:
        aligned += timedelta(minutes=interval)
    return aligned


def calculate_schedule_efficiency(
    availability_minutes: int,
    service_duration: int,
    scheduling_rule: SchedulingRule | str,
) -> dict[str, float | int]:
    """
    Compare a rule's slot count with back-to-back packing of the same window.

    The window is assumed to start on an hour boundary.
    """
    if availability_minutes <= 0 or service_duration <= 0:
        return {'max_possible_slots': 0, 'actual_slots': 0, 'utilization_rate': 0.0, 'average_gap_minutes': 0}

    max_possible_slots = availability_minutes // service_duration
    result = generate_time_slots(
        _REFERENCE_DAY,
        _REFERENCE_DAY + timedelta(minutes=availability_minutes),
        service_duration,
        scheduling_rule,
    )
    actual_slots = result.total_slots

    rule = _coerce_rule(scheduling_rule)
    interval = _RULE_INTERVALS.get(rule)
    step = _aligned_step(service_duration, interval) if interval else service_duration

    return {
        'max_possible_slots': max_possible_slots,
        'actual_slots': actual_slots,
        'utilization_rate': actual_slots / max_possible_slots if max_possible_slots else 0.0,
        'average_gap_minutes': step - service_duration,
    }
