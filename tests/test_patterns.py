from __future__ import annotations

from datetime import date, time

import pytest

from beautybook.errors import ValidationError
from beautybook.scheduling import patterns
from beautybook.scheduling.overlap import Interval

TEMPLATE = patterns.DayTemplate(time(9, 0), time(17, 0), (Interval(time(12, 0), time(13, 0)),))


def test_rotation_two_on_one_off() -> None:
    days = patterns.from_rotation(date(2024, 6, 1), date(2024, 6, 7), 2, 1, TEMPLATE)
    assert [d.date.day for d in days] == [1, 2, 4, 5, 7]
    assert days[0].breaks == [Interval(time(12, 0), time(13, 0))]


def test_weekly_uses_sunday_zero() -> None:
    # 2024-06-02 is a Sunday
    days = patterns.from_weekly(date(2024, 6, 1), date(2024, 6, 14), [0, 3], TEMPLATE)
    assert [d.date.isoformat() for d in days] == [
        "2024-06-02", "2024-06-05", "2024-06-09", "2024-06-12",
    ]


def test_bulk_deduplicates_and_sorts() -> None:
    days = patterns.from_bulk([date(2024, 6, 9), date(2024, 6, 3), date(2024, 6, 9)], TEMPLATE)
    assert [d.date.day for d in days] == [3, 9]


def test_exclude_existing() -> None:
    days = patterns.from_bulk([date(2024, 6, 3), date(2024, 6, 4)], TEMPLATE)
    remaining = patterns.exclude_existing(days, [date(2024, 6, 3)])
    assert [d.date.day for d in remaining] == [4]


def test_to_dict_formats_times() -> None:
    payload = patterns.from_bulk([date(2024, 6, 3)], TEMPLATE)[0].to_dict()
    assert payload == {
        "date": "2024-06-03",
        "start_time": "09:00",
        "end_time": "17:00",
        "breaks": [{"start_time": "12:00", "end_time": "13:00"}],
    }


@pytest.mark.parametrize("kwargs", [
    {"start_time": time(17, 0), "end_time": time(9, 0)},
    {"start_time": time(9, 0), "end_time": time(12, 0), "breaks": (Interval(time(11, 0), time(13, 0)),)},
])
def test_invalid_template(kwargs) -> None:
    with pytest.raises(ValidationError):
        patterns.DayTemplate(**kwargs)


def test_range_guards() -> None:
    with pytest.raises(ValidationError):
        patterns.from_rotation(date(2024, 6, 7), date(2024, 6, 1), 1, 1, TEMPLATE)
    with pytest.raises(ValidationError):
        patterns.from_weekly(date(2024, 1, 1), date(2025, 6, 1), [1], TEMPLATE)
    with pytest.raises(ValidationError):
        patterns.from_weekly(date(2024, 6, 1), date(2024, 6, 7), [7], TEMPLATE)
