"""
Effective Hours

Resolves whether a provider is open on a concrete date, and when.

Precedence, first match wins:
    1. special hours for the exact date
    2. weekly business hours for the date's weekday
    3. the built-in default week (used only when nothing is configured)
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Iterable, Optional

from ..timeutils import (FRIDAY, MONDAY, SATURDAY, SUNDAY, THURSDAY, TUESDAY,
                         WEDNESDAY, normalize_time, parse_time_of_day, to_minutes,
                         weekday_of)
from .overlap import Interval

# (is_open, open_time, close_time) keyed by stored weekday
DEFAULT_BUSINESS_HOURS = {
    SUNDAY: (False, "09:00", "18:00"),
    MONDAY: (True, "09:00", "18:00"),
    TUESDAY: (True, "09:00", "18:00"),
    WEDNESDAY: (True, "09:00", "18:00"),
    THURSDAY: (True, "09:00", "18:00"),
    FRIDAY: (True, "09:00", "18:00"),
    SATURDAY: (True, "10:00", "16:00"),
}


@dataclass(frozen=True)
class EffectiveHours:
    is_open: bool
    open_time: Optional[str]
    close_time: Optional[str]
    is_special_day: bool = False
    special_day_name: Optional[str] = None

    def open_interval(self) -> Optional[Interval]:
        """The bookable window, or ``None`` when closed or times are missing."""
        if not self.is_open or not self.open_time or not self.close_time:
            return None
        start = parse_time_of_day(self.open_time)
        end = parse_time_of_day(self.close_time)
        if start >= end:
            return None
        return Interval(start, end)

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


def default_hours_for(day_of_week: int) -> EffectiveHours:
    is_open, open_time, close_time = DEFAULT_BUSINESS_HOURS[day_of_week]
    return EffectiveHours(is_open=is_open, open_time=open_time, close_time=close_time)


def resolve_effective_hours(
    target_date: date,
    business_hours: Iterable,
    special_hours=None,
) -> EffectiveHours:
    """Apply override precedence for one date.

    ``business_hours`` is the provider's weekly rows (anything with
    ``day_of_week``/``is_open``/``open_time``/``close_time``); ``special_hours``
    is the row for ``target_date`` or ``None``. Deterministic: no clock, no I/O.
    """
    if special_hours is not None:
        return EffectiveHours(
            is_open=bool(special_hours.is_open),
            open_time=normalize_time(special_hours.open_time),
            close_time=normalize_time(special_hours.close_time),
            is_special_day=True,
            special_day_name=special_hours.name,
        )

    day_of_week = weekday_of(target_date)
    row = next((r for r in business_hours if r.day_of_week == day_of_week), None)
    if row is not None:
        return EffectiveHours(
            is_open=bool(row.is_open),
            open_time=normalize_time(row.open_time),
            close_time=normalize_time(row.close_time),
        )

    return default_hours_for(day_of_week)


@dataclass(frozen=True)
class OpenStatus:
    is_open: bool
    message: str
    next_change_time: Optional[str]

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


def open_status(business_hours: Iterable, now_local: datetime) -> OpenStatus:
    """Open/closed right now, and the time the status next flips.

    Uses the weekly template (or the default week when nothing is configured).
    ``now_local`` must already be in the provider's timezone.
    """
    rows = list(business_hours)
    week = {}
    for day in DEFAULT_BUSINESS_HOURS:
        row = next((r for r in rows if r.day_of_week == day), None)
        if row is not None:
            week[day] = EffectiveHours(
                is_open=bool(row.is_open),
                open_time=normalize_time(row.open_time),
                close_time=normalize_time(row.close_time),
            )
        elif not rows:
            week[day] = default_hours_for(day)
        else:
            week[day] = EffectiveHours(is_open=False, open_time=None, close_time=None)

    today = weekday_of(now_local.date())
    current = now_local.hour * 60 + now_local.minute
    window = week[today].open_interval()

    if window is not None:
        if current < to_minutes(window.start):
            return OpenStatus(False, "closed", normalize_time(window.start))
        if current < to_minutes(window.end):
            return OpenStatus(True, "open", normalize_time(window.end))

    return OpenStatus(False, "closed", _next_opening(week, (today + 1) % 7))


def _next_opening(week: dict, start_day: int) -> Optional[str]:
    for offset in range(7):
        window = week[(start_day + offset) % 7].open_interval()
        if window is not None:
            return normalize_time(window.start)
    return None
