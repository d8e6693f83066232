"""
Cancellation Statistics

Counts a client's cancellations and no-shows inside the policy's rolling
window and weights them into a single effective count.

Cancellations are filtered by ``cancelled_at`` (a timestamp); no-shows by
the appointment ``date``. The two counts deliberately use different fields.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

import pytz

from ..timeutils import ensure_utc, local_midnight


@dataclass(frozen=True)
class CancellationStats:
    cancellations: int
    no_shows: int
    effective_count: float
    last_cancelled_at: Optional[datetime] = None
    last_no_show_at: Optional[datetime] = None

    @property
    def most_recent_event(self) -> Optional[datetime]:
        events = [e for e in (self.last_cancelled_at, self.last_no_show_at) if e is not None]
        return max(events) if events else None

    def to_dict(self) -> dict[str, object]:
        payload = asdict(self)
        for key in ("last_cancelled_at", "last_no_show_at"):
            if payload[key] is not None:
                payload[key] = payload[key].isoformat()
        return payload


def window_cutoff(now: datetime, period_days: int) -> datetime:
    return ensure_utc(now) - timedelta(days=period_days)


def aggregate(
    history: Iterable,
    period_days: int,
    no_show_multiplier: float,
    now: datetime,
    tz: pytz.BaseTzInfo = pytz.UTC,
) -> CancellationStats:
    """Aggregate one client's appointment history against a rolling window.

    Args:
        history: the client's appointments with this provider (any status)
        period_days: rolling window length
        no_show_multiplier: weight of a no-show relative to a cancellation
        now: the evaluation instant, sampled once by the caller
        tz: provider timezone, used to place no-show dates on the timeline

    A no-show's event time is local midnight of its appointment date.
    """
    cutoff = window_cutoff(now, period_days)
    cutoff_date = cutoff.astimezone(tz).date()

    cancellations = 0
    no_shows = 0
    last_cancelled_at = None
    last_no_show_at = None

    for appointment in history:
        if appointment.status == "cancelled":
            cancelled_at = ensure_utc(appointment.cancelled_at)
            if cancelled_at is None or cancelled_at < cutoff:
                continue
            cancellations += 1
            if last_cancelled_at is None or cancelled_at > last_cancelled_at:
                last_cancelled_at = cancelled_at
        elif appointment.status == "no_show":
            if appointment.date < cutoff_date:
                continue
            no_shows += 1
            event_at = local_midnight(appointment.date, tz).astimezone(pytz.UTC)
            if last_no_show_at is None or event_at > last_no_show_at:
                last_no_show_at = event_at

    return CancellationStats(
        cancellations=cancellations,
        no_shows=no_shows,
        effective_count=cancellations + no_shows * no_show_multiplier,
        last_cancelled_at=last_cancelled_at,
        last_no_show_at=last_no_show_at,
    )
