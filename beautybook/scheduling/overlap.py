"""Half-open interval overlap and merging."""
from __future__ import annotations

from datetime import time
from typing import Iterable, List, NamedTuple


class Interval(NamedTuple):
    start: time
    end: time


def overlaps(a: Interval, b: Interval) -> bool:
    """``[a.start, a.end)`` and ``[b.start, b.end)`` share at least one instant.

    Touching boundaries do not overlap, so back-to-back bookings are allowed.
    """
    return a.start < b.end and b.start < a.end


def overlaps_any(candidate: Interval, intervals: Iterable[Interval]) -> bool:
    return any(overlaps(candidate, other) for other in intervals)


def merge_intervals(intervals: Iterable[Interval]) -> List[Interval]:
    """Sort and coalesce overlapping or adjacent intervals.

    Empty and inverted intervals are dropped.
    """
    ordered = sorted(i for i in intervals if i.start < i.end)
    if not ordered:
        return []

    merged = [ordered[0]]
    for current in ordered[1:]:
        last = merged[-1]
        if current.start <= last.end:
            if current.end > last.end:
                merged[-1] = Interval(last.start, current.end)
        else:
            merged.append(current)
    return merged
