"""
Slot Generation

Turns an open interval into discrete candidate slots and flags each one
available or not, considering:
- breaks (coalesced before testing)
- active appointments
- the current time plus minimum notice
- optional service time windows
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Tuple

from ..timeutils import format_time, from_minutes, parse_time_of_day, to_minutes
from .overlap import Interval, merge_intervals, overlaps_any

REASON_PAST = "past"
REASON_BREAK = "break"
REASON_BOOKED = "booked"


@dataclass(frozen=True)
class Slot:
    start: time
    end: time
    available: bool
    reason: Optional[str] = None

    def to_dict(self) -> dict[str, object]:
        payload = {
            "start": format_time(self.start),
            "end": format_time(self.end),
            "available": self.available,
        }
        if self.reason:
            payload["reason"] = self.reason
        return payload


def effective_window(
    open_time: time,
    close_time: time,
    time_windows: Iterable[Tuple[Optional[object], Optional[object]]] = (),
) -> Optional[Interval]:
    """Intersect the open interval with every service time window.

    A window with a missing bound does not restrict. Returns ``None`` when the
    intersection is empty.
    """
    start, end = open_time, close_time
    for available_from, available_to in time_windows:
        if not available_from or not available_to:
            continue
        start = max(start, parse_time_of_day(available_from))
        end = min(end, parse_time_of_day(available_to))
    if start >= end:
        return None
    return Interval(start, end)


def generate_slots(
    open_time: time,
    close_time: time,
    slot_interval_minutes: int,
    breaks: Iterable[Interval] = (),
    appointments: Iterable[Interval] = (),
    now: Optional[datetime] = None,
    *,
    target_date: Optional[date] = None,
    duration_minutes: Optional[int] = None,
    min_notice_minutes: int = 0,
    time_windows: Iterable[Tuple[Optional[object], Optional[object]]] = (),
) -> List[Slot]:
    """Generate candidate slots between ``open_time`` and ``close_time``.

    Args:
        slot_interval_minutes: step between consecutive slot starts
        breaks: break intervals for the day, in any order
        appointments: intervals of *active* appointments only
        now: provider-local current time; ``None`` disables past filtering
        target_date: the date being generated; defaults to ``now``'s date
        duration_minutes: slot length, defaults to the interval
        min_notice_minutes: extra lead time added to ``now``

    Slots whose end would pass closing time are left out rather than
    truncated. A slot starting at or before ``now`` (+ notice) is ``past``.
    Output is ascending by start and depends only on the arguments.
    """
    if slot_interval_minutes <= 0:
        raise ValueError("slot_interval_minutes must be positive")
    duration = duration_minutes or slot_interval_minutes
    if duration <= 0:
        raise ValueError("duration_minutes must be positive")

    window = effective_window(open_time, close_time, time_windows)
    if window is None:
        return []

    merged_breaks = merge_intervals(breaks)
    booked = list(appointments)

    threshold = None
    if now is not None:
        threshold = now.replace(tzinfo=None) + timedelta(minutes=min_notice_minutes)
        target_date = target_date or now.date()

    window_start = to_minutes(window.start)
    window_end = to_minutes(window.end)

    slots = []
    slot_start = window_start
    while slot_start + duration <= window_end:
        start = from_minutes(slot_start)
        end = from_minutes(slot_start + duration)
        candidate = Interval(start, end)

        if threshold is not None and datetime.combine(target_date, start) <= threshold:
            slots.append(Slot(start, end, False, REASON_PAST))
        elif overlaps_any(candidate, merged_breaks):
            slots.append(Slot(start, end, False, REASON_BREAK))
        elif overlaps_any(candidate, booked):
            slots.append(Slot(start, end, False, REASON_BOOKED))
        else:
            slots.append(Slot(start, end, True))

        slot_start += slot_interval_minutes

    return slots


def available_only(slots: Iterable[Slot]) -> List[Slot]:
    return [slot for slot in slots if slot.available]
