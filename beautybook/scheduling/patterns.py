"""Generate working days in bulk from rotation, weekly or explicit-date patterns."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time, timedelta
from typing import Iterable, Iterator, List, Sequence

from ..errors import ValidationError
from ..timeutils import format_time, weekday_of
from .overlap import Interval

PATTERN_TYPES = ("rotation", "weekly", "bulk")

# Guard against runaway requests from the settings screen
MAX_PATTERN_DAYS = 366


@dataclass(frozen=True)
class DayTemplate:
    start_time: time
    end_time: time
    breaks: Sequence[Interval] = ()

    def __post_init__(self) -> None:
        if self.start_time >= self.end_time:
            raise ValidationError("start_time must be before end_time")
        for brk in self.breaks:
            if brk.start >= brk.end:
                raise ValidationError("break start must be before break end")
            if brk.start < self.start_time or brk.end > self.end_time:
                raise ValidationError("breaks must fall inside working hours")


@dataclass(frozen=True)
class GeneratedWorkingDay:
    date: date
    start_time: time
    end_time: time
    breaks: List[Interval] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "date": self.date.isoformat(),
            "start_time": format_time(self.start_time),
            "end_time": format_time(self.end_time),
            "breaks": [
                {"start_time": format_time(b.start), "end_time": format_time(b.end)}
                for b in self.breaks
            ],
        }


def _days(start: date, end: date) -> Iterator[date]:
    if end < start:
        raise ValidationError("end_date must not be before start_date")
    if (end - start).days + 1 > MAX_PATTERN_DAYS:
        raise ValidationError(f"patterns may span at most {MAX_PATTERN_DAYS} days")
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def _make(day: date, template: DayTemplate) -> GeneratedWorkingDay:
    return GeneratedWorkingDay(day, template.start_time, template.end_time, list(template.breaks))


def from_rotation(
    start: date, end: date, days_on: int, days_off: int, template: DayTemplate
) -> List[GeneratedWorkingDay]:
    """Work ``days_on`` days, rest ``days_off`` days, repeat from ``start``."""
    if days_on < 1 or days_off < 0:
        raise ValidationError("days_on must be at least 1 and days_off not negative")
    cycle = days_on + days_off
    return [
        _make(day, template)
        for index, day in enumerate(_days(start, end))
        if index % cycle < days_on
    ]


def from_weekly(
    start: date, end: date, weekdays: Iterable[int], template: DayTemplate
) -> List[GeneratedWorkingDay]:
    """Every date whose stored weekday (0=Sunday) is in ``weekdays``."""
    selected = set(weekdays)
    if not selected or not selected <= set(range(7)):
        raise ValidationError("weekdays must be a non-empty list of values 0-6")
    return [_make(day, template) for day in _days(start, end) if weekday_of(day) in selected]


def from_bulk(dates: Iterable[date], template: DayTemplate) -> List[GeneratedWorkingDay]:
    unique = sorted(set(dates))
    if len(unique) > MAX_PATTERN_DAYS:
        raise ValidationError(f"at most {MAX_PATTERN_DAYS} dates per request")
    return [_make(day, template) for day in unique]


def exclude_existing(
    generated: Iterable[GeneratedWorkingDay], existing: Iterable[date]
) -> List[GeneratedWorkingDay]:
    taken = set(existing)
    return [day for day in generated if day.date not in taken]
