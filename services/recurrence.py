"""
Weekly recurrence expansion.

Day numbering follows the client calendars: 0 = Sunday through 6 = Saturday.
Python's ``date.weekday()`` counts Monday as 0, hence the shift below.
"""
from datetime import datetime, timedelta
from typing import List

from services.errors import ValidationError
from services.records import RecurrenceRule, SlotSpec


def _sunday_based_weekday(day) -> int:
    return (day.weekday() + 1) % 7


def expand(rule: RecurrenceRule, duration: timedelta) -> List[SlotSpec]:
    """Turn ``rule`` into chronologically ordered slots of ``duration``.

    An inverted range yields no slots rather than an error.
    """
    bad_days = [d for d in rule.days_of_week if not 0 <= d <= 6]
    if bad_days:
        raise ValidationError(f"days_of_week must be within 0-6, got {sorted(bad_days)}")
    if duration <= timedelta(0):
        raise ValidationError("Lesson duration must be positive")

    slots: List[SlotSpec] = []
    if rule.range_end < rule.range_start:
        return slots

    day = rule.range_start
    while day <= rule.range_end:
        if _sunday_based_weekday(day) in rule.days_of_week:
            start = datetime.combine(day, rule.time_of_day)
            slots.append(SlotSpec(start=start, end=start + duration))
        day += timedelta(days=1)
    return slots
