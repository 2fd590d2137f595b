from datetime import date, datetime, time, timedelta

import pytest

from services.errors import ValidationError
from services.records import RecurrenceRule
from services.recurrence import expand

HOUR = timedelta(hours=1)


def _rule(days, start, end, at=time(9, 0)):
    return RecurrenceRule(
        teacher_id=1,
        days_of_week=frozenset(days),
        time_of_day=at,
        range_start=start,
        range_end=end,
    )


def test_monday_and_wednesday_across_eight_days():
    # 2024-01-07 is a Sunday, 2024-01-14 the following Sunday
    slots = expand(_rule({1, 3}, date(2024, 1, 7), date(2024, 1, 14)), HOUR)

    assert [s.start for s in slots] == [datetime(2024, 1, 8, 9, 0), datetime(2024, 1, 10, 9, 0)]
    assert [s.start.strftime("%A") for s in slots] == ["Monday", "Wednesday"]


def test_inverted_range_is_empty_not_an_error():
    assert expand(_rule({1, 3}, date(2024, 1, 14), date(2024, 1, 7)), HOUR) == []


def test_first_slot_is_next_matching_day_after_range_start():
    # range starts on a Tuesday, only Mondays requested
    slots = expand(_rule({1}, date(2024, 1, 2), date(2024, 1, 20)), HOUR)

    assert slots[0].start.date() == date(2024, 1, 8)
    assert all(s.start.date() >= date(2024, 1, 2) for s in slots)


def test_zero_is_sunday_and_range_end_is_inclusive():
    slots = expand(_rule({0}, date(2024, 1, 1), date(2024, 1, 14)), HOUR)

    assert [s.start.date() for s in slots] == [date(2024, 1, 7), date(2024, 1, 14)]


def test_slots_are_chronological_and_last_one_lesson():
    slots = expand(_rule({5, 1, 3}, date(2024, 1, 1), date(2024, 1, 31), at=time(17, 30)), HOUR)

    starts = [s.start for s in slots]
    assert starts == sorted(starts)
    assert all(s.end - s.start == HOUR for s in slots)
    assert all(s.start.time() == time(17, 30) for s in slots)


def test_single_day_range():
    slots = expand(_rule({1}, date(2024, 1, 8), date(2024, 1, 8)), HOUR)

    assert len(slots) == 1


def test_out_of_range_weekday_is_rejected():
    with pytest.raises(ValidationError):
        expand(_rule({7}, date(2024, 1, 1), date(2024, 1, 7)), HOUR)
