"""Time-of-day, weekday and timezone helpers.

Weekdays are stored Sunday=0 .. Saturday=6 everywhere in this package.
Python's ``date.weekday()`` (Monday=0) and Monday-first UI pickers are
converted at the boundary with the helpers below.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union

import pytz

from .errors import ValidationError

logger = logging.getLogger(__name__)

SUNDAY = 0
MONDAY = 1
TUESDAY = 2
WEDNESDAY = 3
THURSDAY = 4
FRIDAY = 5
SATURDAY = 6

DAY_LABELS = {
    SUNDAY: "sunday",
    MONDAY: "monday",
    TUESDAY: "tuesday",
    WEDNESDAY: "wednesday",
    THURSDAY: "thursday",
    FRIDAY: "friday",
    SATURDAY: "saturday",
}

MINUTES_PER_DAY = 24 * 60


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


# --- weekdays ---------------------------------------------------------------

def weekday_of(value: date) -> int:
    """Stored (Sunday=0) weekday for a calendar date."""
    return (value.weekday() + 1) % 7


def from_python_weekday(index: int) -> int:
    """Convert ``date.weekday()`` numbering (Monday=0) to the stored form."""
    _check_weekday(index)
    return (index + 1) % 7


def to_python_weekday(day_of_week: int) -> int:
    _check_weekday(day_of_week)
    return (day_of_week - 1) % 7


def from_monday_first(index: int) -> int:
    """Convert a Monday-first UI column index to the stored weekday."""
    return from_python_weekday(index)


def to_monday_first(day_of_week: int) -> int:
    return to_python_weekday(day_of_week)


def validate_weekday(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("day_of_week must be an integer between 0 (Sunday) and 6 (Saturday)")
    _check_weekday(value)
    return value


def _check_weekday(value: int) -> None:
    if not 0 <= value <= 6:
        raise ValidationError(f"day_of_week out of range: {value}")


# --- time of day ------------------------------------------------------------

def parse_time_of_day(value: Union[time, timedelta, str]) -> time:
    """Accept ``HH:MM`` / ``HH:MM:SS`` strings, ``time`` or a timedelta since midnight.

    Seconds are dropped; the engine works at minute granularity.
    """
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)
    if isinstance(value, timedelta):
        return (datetime.min + value).time().replace(second=0, microsecond=0)
    if isinstance(value, str):
        parts = value.strip().split(":")
        if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
            raise ValidationError(f"Time format must be HH:MM, got {value!r}")
        hours, minutes = int(parts[0]), int(parts[1])
        if not (0 <= hours <= 23 and 0 <= minutes <= 59):
            raise ValidationError(f"Time out of range: {value!r}")
        return time(hours, minutes)
    raise ValidationError(f"Cannot convert {type(value).__name__} to a time of day")


def format_time(value: Optional[time]) -> Optional[str]:
    if value is None:
        return None
    return f"{value.hour:02d}:{value.minute:02d}"


def normalize_time(value: Optional[Union[time, str]]) -> Optional[str]:
    """Normalize to ``HH:MM``; ``None`` stays ``None``."""
    if value is None or value == "":
        return None
    return format_time(parse_time_of_day(value))


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def from_minutes(total: int) -> time:
    if not 0 <= total < MINUTES_PER_DAY:
        raise ValueError(f"minutes since midnight out of range: {total}")
    return time(total // 60, total % 60)


def parse_date(value: Union[date, str]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError("date must be in YYYY-MM-DD format") from None


# --- timezones --------------------------------------------------------------

def get_timezone(name: Optional[str], default: str = "UTC") -> pytz.BaseTzInfo:
    try:
        return pytz.timezone(name or default)
    except pytz.UnknownTimeZoneError:
        logger.warning("Unknown timezone %r, using %s", name, default)
        return pytz.timezone(default)


def is_valid_timezone(name: str) -> bool:
    return name in pytz.all_timezones_set


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stored timestamps without tzinfo are UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_local(now: datetime, tz: pytz.BaseTzInfo) -> datetime:
    return ensure_utc(now).astimezone(tz)


def local_midnight(value: date, tz: pytz.BaseTzInfo) -> datetime:
    return tz.localize(datetime.combine(value, time.min))
