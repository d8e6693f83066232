from __future__ import annotations

from datetime import time

from beautybook.scheduling.overlap import Interval, merge_intervals, overlaps, overlaps_any


def iv(start: str, end: str) -> Interval:
    sh, sm = map(int, start.split(":"))
    eh, em = map(int, end.split(":"))
    return Interval(time(sh, sm), time(eh, em))


def test_touching_intervals_do_not_overlap() -> None:
    assert not overlaps(iv("09:00", "10:00"), iv("10:00", "11:00"))
    assert not overlaps(iv("10:00", "11:00"), iv("09:00", "10:00"))


def test_partial_and_contained_overlap() -> None:
    assert overlaps(iv("09:00", "10:00"), iv("09:30", "10:30"))
    assert overlaps(iv("09:00", "12:00"), iv("10:00", "10:15"))
    assert overlaps(iv("10:00", "10:15"), iv("09:00", "12:00"))


def test_overlaps_any_empty() -> None:
    assert not overlaps_any(iv("09:00", "10:00"), [])


def test_merge_intervals_coalesces_overlapping_and_adjacent() -> None:
    merged = merge_intervals([
        iv("13:00", "13:30"),
        iv("12:00", "12:30"),
        iv("12:15", "13:00"),
        iv("15:00", "15:15"),
    ])
    assert merged == [iv("12:00", "13:30"), iv("15:00", "15:15")]


def test_merge_intervals_drops_inverted() -> None:
    assert merge_intervals([iv("12:00", "11:00"), iv("12:00", "12:00")]) == []
