"""
Write-boundary validators

Hours, policies and schedules are checked here when a provider saves them.
Reads never re-validate stored rows.
"""
from __future__ import annotations

from datetime import datetime, time
from typing import Optional

from .errors import ValidationError
from .models import SLOT_INTERVALS
from .scheduling.overlap import Interval
from .timeutils import ensure_utc, parse_time_of_day, validate_weekday


def require_bool(payload: dict, field: str, default: Optional[bool] = None) -> bool:
    value = payload.get(field, default)
    if not isinstance(value, bool):
        raise ValidationError(f"{field} must be true or false")
    return value


def require_int(
    payload: dict, field: str, default: Optional[int] = None, minimum: int = 0
) -> int:
    value = payload.get(field, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    if value < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    return value


def require_number(
    payload: dict, field: str, default: Optional[float] = None, minimum: float = 0
) -> float:
    value = payload.get(field, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{field} must be a number")
    if value < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    return float(value)


def optional_time(payload: dict, field: str) -> Optional[time]:
    value = payload.get(field)
    if value in (None, ""):
        return None
    return parse_time_of_day(value)


def optional_datetime(payload: dict, field: str) -> Optional[datetime]:
    """ISO 8601 timestamp as aware UTC; a value without an offset is UTC."""
    value = payload.get(field)
    if value in (None, ""):
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO 8601 timestamp")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"{field} must be an ISO 8601 timestamp") from None
    return ensure_utc(parsed)


def validate_open_close(is_open: bool, open_time: Optional[time], close_time: Optional[time]) -> None:
    """An open day needs both times and ``open_time < close_time``."""
    if not is_open:
        return
    if open_time is None or close_time is None:
        raise ValidationError("open_time and close_time are required when is_open is true")
    if open_time >= close_time:
        raise ValidationError("open_time must be before close_time")


def parse_hours_entry(entry: object) -> dict:
    if not isinstance(entry, dict):
        raise ValidationError("each hours entry must be an object")
    day_of_week = validate_weekday(entry.get("day_of_week"))
    is_open = require_bool(entry, "is_open")
    open_time = optional_time(entry, "open_time")
    close_time = optional_time(entry, "close_time")
    validate_open_close(is_open, open_time, close_time)
    return {
        "day_of_week": day_of_week,
        "is_open": is_open,
        "open_time": open_time,
        "close_time": close_time,
    }


def parse_breaks(raw: object, start: time, end: time) -> list[Interval]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("breaks must be a list")
    breaks = []
    for item in raw:
        if not isinstance(item, dict):
            raise ValidationError("each break must be an object")
        brk_start = parse_time_of_day(item.get("start_time", ""))
        brk_end = parse_time_of_day(item.get("end_time", ""))
        if brk_start >= brk_end:
            raise ValidationError("break start_time must be before end_time")
        if brk_start < start or brk_end > end:
            raise ValidationError("breaks must fall inside working hours")
        breaks.append(Interval(brk_start, brk_end))
    return breaks


def validate_slot_interval(value: object) -> int:
    if value not in SLOT_INTERVALS or isinstance(value, bool):
        allowed = ", ".join(str(v) for v in SLOT_INTERVALS)
        raise ValidationError(f"slot_interval_minutes must be one of {allowed}")
    return value
