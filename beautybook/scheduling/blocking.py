"""
Client Blocking

Decides whether a client may currently book with a provider under the
provider's cancellation policy. Nothing is stored: the decision is rebuilt
from live appointment history on every call.

States:
    clear    policy disabled, or no counted events
    warned   counted events below the threshold
    blocked  threshold reached and the block has not lapsed
    expired  threshold reached but the block already lapsed
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

import pytz

from ..timeutils import ensure_utc
from .cancellations import CancellationStats, aggregate

STATE_CLEAR = "clear"
STATE_WARNED = "warned"
STATE_BLOCKED = "blocked"
STATE_EXPIRED = "expired"


@dataclass(frozen=True)
class ClientBlockStatus:
    blocked: bool
    state: str
    unblocks_at: Optional[datetime] = None
    stats: Optional[CancellationStats] = None
    max_cancellations: Optional[int] = None

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"blocked": self.blocked, "state": self.state}
        if self.unblocks_at is not None:
            payload["unblocks_at"] = self.unblocks_at.isoformat()
        if self.stats is not None:
            payload["stats"] = {
                "effective_count": self.stats.effective_count,
                "max": self.max_cancellations,
                "cancellations": self.stats.cancellations,
                "no_shows": self.stats.no_shows,
            }
        return payload


def evaluate(
    policy,
    history: Iterable,
    now: datetime,
    tz: pytz.BaseTzInfo = pytz.UTC,
) -> ClientBlockStatus:
    """Evaluate the blocking state machine.

    Args:
        policy: the provider's cancellation policy row, or ``None``
        history: the client's appointments with this provider
        now: evaluation instant, sampled once by the caller

    The threshold is inclusive: ``effective_count == max_cancellations`` blocks.
    A block lasts ``block_duration_days`` from the most recent counted event.
    """
    if policy is None or not policy.is_enabled:
        return ClientBlockStatus(blocked=False, state=STATE_CLEAR)

    now = ensure_utc(now)
    stats = aggregate(history, policy.period_days, policy.no_show_multiplier, now, tz)
    threshold = policy.max_cancellations

    if stats.effective_count < threshold:
        state = STATE_WARNED if stats.effective_count > 0 else STATE_CLEAR
        return ClientBlockStatus(False, state, stats=stats, max_cancellations=threshold)

    last_event = stats.most_recent_event
    if last_event is None:
        return ClientBlockStatus(False, STATE_CLEAR, stats=stats, max_cancellations=threshold)

    unblocks_at = last_event + timedelta(days=policy.block_duration_days)
    if unblocks_at <= now:
        return ClientBlockStatus(False, STATE_EXPIRED, stats=stats, max_cancellations=threshold)

    return ClientBlockStatus(
        blocked=True,
        state=STATE_BLOCKED,
        unblocks_at=unblocks_at,
        stats=stats,
        max_cancellations=threshold,
    )
