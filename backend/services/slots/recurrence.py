"""
Recurring availability expansion.

A pattern is a plain dict (as stored in ``availability.recurrence_pattern``):

    {"option": "none" | "daily" | "weekly" | "custom",
     "custom_days": [0, 2, 4],   # Monday = 0, custom only
     "end_date": "2026-11-30"}   # inclusive, optional

The first instance is always the original window.
"""

from datetime import date, datetime, time
from itertools import islice

from dateutil.rrule import DAILY as RRULE_DAILY, WEEKLY as RRULE_WEEKLY, rrule

from .types import TimeRange

NONE = 'none'
DAILY = 'daily'
WEEKLY = 'weekly'
CUSTOM = 'custom'

RECURRENCE_OPTIONS = (NONE, DAILY, WEEKLY, CUSTOM)
DAY_NAMES = ('Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday')


def parse_end_date(value) -> date | None:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def is_valid_recurrence_pattern(pattern: dict | None) -> bool:
    if not pattern:
        return False

    option = pattern.get('option')
    if option in (NONE, DAILY, WEEKLY):
        return True
    if option == CUSTOM:
        days = pattern.get('custom_days') or []
        return bool(days) and all(isinstance(day, int) and 0 <= day <= 6 for day in days)
    return False


def describe_recurrence_pattern(pattern: dict, start_time: datetime) -> str:
    end_date = parse_end_date(pattern.get('end_date'))
    until = f' until {end_date.strftime("%b %d, %Y")}' if end_date else ''
    option = pattern.get('option')

    if option == NONE:
        return 'Does not repeat'
    if option == DAILY:
        return f'Daily{until}'
    if option == WEEKLY:
        return f'Weekly on {DAY_NAMES[start_time.weekday()]}{until}'
    if option == CUSTOM:
        days = sorted(set(pattern.get('custom_days') or []))
        if days:
            return f'Weekly on {", ".join(DAY_NAMES[day][:3] for day in days)}{until}'
        return f'Custom weekly{until}'
    return 'Unknown'


def _recurrence_rule(option: str, start_time: datetime, custom_days: list[int], until: datetime | None) -> rrule | None:
    if option == DAILY:
        return rrule(RRULE_DAILY, dtstart=start_time, until=until)
    if option == WEEKLY:
        return rrule(RRULE_WEEKLY, dtstart=start_time, until=until)
    if option == CUSTOM and custom_days:
        return rrule(RRULE_WEEKLY, dtstart=start_time, byweekday=sorted(set(custom_days)), until=until)
    return None


def generate_recurring_instances(
    pattern: dict | None,
    start_time: datetime,
    end_time: datetime,
    max_count: int = 365,
) -> list[TimeRange]:
    instances = [TimeRange(start_time, end_time)]

    if not pattern or pattern.get('option', NONE) == NONE:
        return instances

    end_date = parse_end_date(pattern.get('end_date'))
    until = datetime.combine(end_date, time.max) if end_date else None
    rule = _recurrence_rule(pattern['option'], start_time, pattern.get('custom_days') or [], until)
    if rule is None:
        return instances

    # The rule yields the original start too when it falls on a matching day.
    later_days = (occurrence.date() for occurrence in rule if occurrence.date() > start_time.date())
    duration = end_time - start_time
    for day in islice(later_days, max(max_count - 1, 0)):
        next_start = datetime.combine(day, start_time.time())
        instances.append(TimeRange(next_start, next_start + duration))

    return instances
