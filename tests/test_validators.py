from __future__ import annotations

from datetime import time

import pytest

from beautybook.errors import ValidationError
from beautybook.scheduling.overlap import Interval
from beautybook.validators import (parse_breaks, parse_hours_entry, require_int,
                                   validate_slot_interval)


def test_closed_day_needs_no_times() -> None:
    assert parse_hours_entry({"day_of_week": 0, "is_open": False}) == {
        "day_of_week": 0, "is_open": False, "open_time": None, "close_time": None,
    }


def test_parse_breaks_inside_window() -> None:
    breaks = parse_breaks([{"start_time": "12:00", "end_time": "12:30"}], time(9, 0), time(17, 0))
    assert breaks == [Interval(time(12, 0), time(12, 30))]


@pytest.mark.parametrize("raw", [
    "12:00-13:00",
    [{"start_time": "13:00", "end_time": "12:00"}],
    [{"start_time": "08:30", "end_time": "09:30"}],
])
def test_parse_breaks_rejects(raw) -> None:
    with pytest.raises(ValidationError):
        parse_breaks(raw, time(9, 0), time(17, 0))


def test_require_int_rejects_bool() -> None:
    with pytest.raises(ValidationError):
        require_int({"days_on": True}, "days_on")


@pytest.mark.parametrize("value", [5, 10, 15, 30, 60])
def test_slot_intervals_allowed(value: int) -> None:
    assert validate_slot_interval(value) == value


def test_slot_interval_rejects_others() -> None:
    with pytest.raises(ValidationError):
        validate_slot_interval(20)
