"""Slot generation."""
from __future__ import annotations

from datetime import date, datetime, time

import pytest

from beautybook.scheduling.overlap import Interval, overlaps_any
from beautybook.scheduling.slots import (REASON_BOOKED, REASON_BREAK, REASON_PAST,
                                         available_only, generate_slots)

DAY = date(2024, 6, 5)


def test_full_open_day_yields_eighteen_half_hour_slots() -> None:
    slots = generate_slots(time(9, 0), time(18, 0), 30, duration_minutes=30)

    assert len(slots) == 18
    assert slots[0].start == time(9, 0)
    assert slots[-1].start == time(17, 30)
    assert all(slot.available for slot in slots)


def test_available_slots_never_overlap_breaks_or_bookings() -> None:
    breaks = [Interval(time(12, 0), time(12, 45)), Interval(time(12, 30), time(13, 0))]
    booked = [Interval(time(10, 0), time(11, 0)), Interval(time(15, 15), time(15, 45))]

    slots = generate_slots(time(9, 0), time(18, 0), 15, breaks, booked, duration_minutes=45)

    for slot in available_only(slots):
        candidate = Interval(slot.start, slot.end)
        assert not overlaps_any(candidate, breaks)
        assert not overlaps_any(candidate, booked)
    assert any(slot.reason == REASON_BREAK for slot in slots)
    assert any(slot.reason == REASON_BOOKED for slot in slots)


def test_generation_is_idempotent() -> None:
    args = (time(9, 0), time(17, 0), 30, [Interval(time(13, 0), time(14, 0))],
            [Interval(time(9, 30), time(10, 0))], datetime(2024, 6, 5, 9, 10))
    first = [s.to_dict() for s in generate_slots(*args, target_date=DAY)]
    second = [s.to_dict() for s in generate_slots(*args, target_date=DAY)]
    assert first == second


def test_back_to_back_booking_leaves_neighbours_free() -> None:
    slots = generate_slots(time(9, 0), time(11, 0), 30, appointments=[Interval(time(9, 30), time(10, 0))])
    flags = {slot.start: slot.available for slot in slots}
    assert flags == {time(9, 0): True, time(9, 30): False, time(10, 0): True, time(10, 30): True}


def test_slot_straddling_close_is_excluded() -> None:
    slots = generate_slots(time(9, 0), time(10, 0), 30, duration_minutes=45)
    assert [slot.start for slot in slots] == [time(9, 0)]


def test_past_slots_are_flagged_including_the_current_instant() -> None:
    now = datetime(2024, 6, 5, 10, 0)
    slots = generate_slots(time(9, 0), time(12, 0), 60, now=now, target_date=DAY)
    reasons = [(slot.start, slot.reason) for slot in slots]
    assert reasons == [(time(9, 0), REASON_PAST), (time(10, 0), REASON_PAST), (time(11, 0), None)]


def test_min_notice_extends_the_past_cutoff() -> None:
    now = datetime(2024, 6, 5, 8, 0)
    slots = generate_slots(
        time(9, 0), time(12, 0), 60, now=now, target_date=DAY, min_notice_minutes=120
    )
    assert [slot.available for slot in slots] == [False, False, True]


def test_future_date_is_not_affected_by_now() -> None:
    now = datetime(2024, 6, 4, 23, 0)
    slots = generate_slots(time(9, 0), time(10, 0), 30, now=now, target_date=DAY)
    assert all(slot.available for slot in slots)


def test_service_time_window_narrows_the_day() -> None:
    slots = generate_slots(time(9, 0), time(18, 0), 60, time_windows=[("14:00", "16:00")])
    assert [slot.start for slot in slots] == [time(14, 0), time(15, 0)]


def test_disjoint_service_window_yields_nothing() -> None:
    assert generate_slots(time(9, 0), time(12, 0), 30, time_windows=[("13:00", "15:00")]) == []


def test_invalid_interval_raises() -> None:
    with pytest.raises(ValueError):
        generate_slots(time(9, 0), time(12, 0), 0)
