"""Query and booking surface over the scheduling engine.

Each public function takes a store and a ``now`` sampled once by the caller,
and returns ``Ok``/``Err``. Store failures surface as ``Err`` and are never
replaced with an "open" or "not blocked" default.
"""
from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Tuple

from .errors import (BookingError, BookingRefusedError, DataSourceError,
                     NotFoundError, ResolutionError, ValidationError)
from .models import ACTIVE_STATUSES
from .results import Err, Ok
from .scheduling import blocking
from .scheduling.hours import EffectiveHours, open_status, resolve_effective_hours
from .scheduling.overlap import Interval, overlaps_any
from .scheduling.slots import effective_window, generate_slots
from .store import AppointmentCandidate, ClientRef
from .timeutils import (MINUTES_PER_DAY, ensure_utc, from_minutes, get_timezone,
                        to_local, to_minutes)

logger = logging.getLogger(__name__)

HISTORY_STATUSES = ("cancelled", "no_show")

STATUS_TRANSITIONS = {
    "pending": ("confirmed", "cancelled", "no_show", "completed"),
    "confirmed": ("cancelled", "no_show", "completed"),
}


@dataclass(frozen=True)
class DefaultBookingSettings:
    auto_confirm: bool = False
    min_booking_notice_hours: int = 0
    max_booking_days_ahead: int = 30
    allow_client_cancellation: bool = True
    cancellation_notice_hours: int = 24


DEFAULT_BOOKING_SETTINGS = DefaultBookingSettings()


@dataclass(frozen=True)
class DaySchedule:
    window: Interval
    breaks: List[Interval]
    slot_interval_minutes: int
    time_windows: Tuple[Tuple[time, time], ...] = ()


@dataclass(frozen=True)
class BookingRequest:
    date: date
    start_time: time
    duration_minutes: int
    client: ClientRef
    client_name: Optional[str] = None
    service_name: Optional[str] = None
    notes: Optional[str] = None


class _Context:
    """Provider, timezone, local now and booking settings for one evaluation."""

    def __init__(self, store, provider_id: int, now: datetime, default_timezone: str = "UTC"):
        provider = store.fetch_provider(provider_id).unwrap()
        if provider is None:
            raise NotFoundError("Provider not found")
        self.store = store
        self.provider = provider
        self.tz = get_timezone(provider.timezone, default_timezone)
        self.now = now
        self.now_local = to_local(now, self.tz)
        self._settings = None

    @property
    def settings(self):
        if self._settings is None:
            row = self.store.fetch_booking_settings(self.provider.provider_id).unwrap()
            self._settings = row if row is not None else DEFAULT_BOOKING_SETTINGS
        return self._settings

    @property
    def today(self) -> date:
        return self.now_local.date()

    @property
    def horizon(self) -> date:
        return self.today + timedelta(days=self.settings.max_booking_days_ahead)


def _as_result(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return Ok(func(*args, **kwargs))
        except BookingError as exc:
            return Err(exc)

    return wrapper


def _resolve(store, provider_id: int, target_date: date) -> EffectiveHours:
    try:
        special = store.fetch_special_hours(provider_id, target_date).unwrap()
        weekly = store.fetch_business_hours(provider_id).unwrap()
    except DataSourceError as exc:
        raise ResolutionError(f"Could not resolve hours for {target_date}: {exc.message}") from exc
    return resolve_effective_hours(target_date, weekly, special)


@_as_result
def get_effective_hours(store, provider_id: int, target_date: date) -> EffectiveHours:
    """Effective hours for one date; ``Err(ResolutionError)`` if the store fails."""
    try:
        provider = store.fetch_provider(provider_id).unwrap()
    except DataSourceError as exc:
        raise ResolutionError(f"Could not resolve hours for {target_date}: {exc.message}") from exc
    if provider is None:
        raise NotFoundError("Provider not found")
    return _resolve(store, provider_id, target_date)


@_as_result
def get_open_status(store, provider_id: int, now: datetime, default_timezone: str = "UTC"):
    ctx = _Context(store, provider_id, now, default_timezone)
    weekly = store.fetch_business_hours(provider_id).unwrap()
    return open_status(weekly, ctx.now_local)


def _day_schedule(ctx: _Context, target_date: date) -> Optional[DaySchedule]:
    """Bookable window for a date, or ``None`` when closed.

    A configured working day wins over the weekly template. With
    ``restrict_to_business_hours`` the working day is clipped to the
    effective business hours, and a closed business day stays closed.
    """
    provider = ctx.provider
    working_day = ctx.store.fetch_working_day(provider.provider_id, target_date).unwrap()

    if working_day is None:
        hours = _resolve(ctx.store, provider.provider_id, target_date)
        window = hours.open_interval()
        if window is None:
            return None
        return DaySchedule(window, [], provider.slot_interval_minutes)

    time_windows: Tuple[Tuple[time, time], ...] = ()
    if provider.restrict_to_business_hours:
        hours = _resolve(ctx.store, provider.provider_id, target_date)
        business = hours.open_interval()
        if business is None:
            return None
        time_windows = ((business.start, business.end),)

    return DaySchedule(
        window=Interval(working_day.start_time, working_day.end_time),
        breaks=[Interval(b.start_time, b.end_time) for b in working_day.breaks],
        slot_interval_minutes=working_day.slot_interval_minutes or provider.slot_interval_minutes,
        time_windows=time_windows,
    )


@_as_result
def get_available_slots(
    store,
    provider_id: int,
    target_date: date,
    duration_minutes: Optional[int],
    now: datetime,
    *,
    default_timezone: str = "UTC",
    service_time_windows: Iterable[Tuple[Optional[object], Optional[object]]] = (),
):
    """Candidate slots for ``target_date`` with availability flags.

    The result is advisory; ``book_appointment`` re-checks at write time.
    Dates past the booking horizon have no slots.
    """
    if duration_minutes is not None and duration_minutes <= 0:
        raise ValidationError("duration_minutes must be a positive integer")

    ctx = _Context(store, provider_id, now, default_timezone)
    if target_date > ctx.horizon:
        logger.info("Date %s is past the booking horizon for provider %s", target_date, provider_id)
        return []

    schedule = _day_schedule(ctx, target_date)
    if schedule is None:
        return []

    active = store.fetch_appointments(provider_id, target_date, target_date, ACTIVE_STATUSES).unwrap()
    return generate_slots(
        schedule.window.start,
        schedule.window.end,
        schedule.slot_interval_minutes,
        breaks=schedule.breaks,
        appointments=[Interval(a.start_time, a.end_time) for a in active],
        now=ctx.now_local,
        target_date=target_date,
        duration_minutes=duration_minutes,
        min_notice_minutes=ctx.settings.min_booking_notice_hours * 60,
        time_windows=tuple(schedule.time_windows) + tuple(service_time_windows),
    )


def _block_status(store, client: ClientRef, provider_id: int, now: datetime, tz):
    policy = store.fetch_cancellation_policy(provider_id).unwrap()
    if policy is None or not policy.is_enabled:
        return blocking.evaluate(policy, [], now, tz)
    history = store.fetch_client_appointments(provider_id, client, HISTORY_STATUSES).unwrap()
    return blocking.evaluate(policy, history, now, tz)


@_as_result
def is_client_blocked(
    store, client: ClientRef, provider_id: int, now: datetime, default_timezone: str = "UTC"
):
    """Policy block status for a client, rebuilt from live history."""
    ctx = _Context(store, provider_id, now, default_timezone)
    return _block_status(store, client, provider_id, now, ctx.tz)


@_as_result
def book_appointment(
    store, provider_id: int, request: BookingRequest, now: datetime, default_timezone: str = "UTC"
) -> int:
    """Validate a booking request and insert it atomically.

    Order of checks: manual blocklist, policy block, booking window, opening
    hours and breaks, then the serialized overlap check in the store.
    """
    if not request.client.has_identifier:
        raise ValidationError("client_id or client_phone is required")
    if request.duration_minutes <= 0:
        raise ValidationError("duration_minutes must be a positive integer")

    end_minutes = to_minutes(request.start_time) + request.duration_minutes
    if end_minutes >= MINUTES_PER_DAY:
        raise ValidationError("appointment must end on the same day")
    end_time = from_minutes(end_minutes)

    ctx = _Context(store, provider_id, now, default_timezone)

    entry = store.fetch_blocklist_entry(provider_id, request.client, now).unwrap()
    if entry is not None:
        details = {}
        if entry.blocked_until is not None:
            details["unblocks_at"] = ensure_utc(entry.blocked_until).isoformat()
        raise BookingRefusedError(
            "blocked", "You are not able to book appointments with this provider", **details
        )

    status = _block_status(store, request.client, provider_id, now, ctx.tz)
    if status.blocked:
        raise BookingRefusedError(
            "policy_blocked",
            "Booking temporarily restricted due to cancellations or missed appointments",
            unblocks_at=status.unblocks_at.isoformat(),
        )

    starts_at = datetime.combine(request.date, request.start_time)
    earliest = ctx.now_local.replace(tzinfo=None) + timedelta(
        hours=ctx.settings.min_booking_notice_hours
    )
    if starts_at <= earliest:
        raise BookingRefusedError("too_soon", "This time can no longer be booked")
    if request.date > ctx.horizon:
        raise BookingRefusedError("too_far_ahead", "This date is not open for booking yet")

    schedule = _day_schedule(ctx, request.date)
    requested = Interval(request.start_time, end_time)
    window = None
    if schedule is not None:
        window = effective_window(schedule.window.start, schedule.window.end, schedule.time_windows)
    if window is None or requested.start < window.start or requested.end > window.end:
        raise BookingRefusedError("outside_hours", "Requested time is outside working hours")
    if overlaps_any(requested, schedule.breaks):
        raise BookingRefusedError("outside_hours", "Requested time overlaps a break")

    candidate = AppointmentCandidate(
        provider_id=provider_id,
        date=request.date,
        start_time=request.start_time,
        end_time=end_time,
        client=request.client,
        status="confirmed" if ctx.settings.auto_confirm else "pending",
        client_name=request.client_name,
        service_name=request.service_name,
        notes=request.notes,
    )
    return store.insert_appointment(candidate).unwrap()


@_as_result
def change_status(
    store,
    appointment_id: int,
    new_status: str,
    now: datetime,
    *,
    by_client: bool = False,
    default_timezone: str = "UTC",
):
    """Move an appointment to a new status, stamping ``cancelled_at`` on cancel."""
    appointment = store.fetch_appointment(appointment_id).unwrap()
    if appointment is None:
        raise NotFoundError("Appointment not found")

    allowed = STATUS_TRANSITIONS.get(appointment.status, ())
    if new_status not in allowed:
        raise ValidationError(
            f"Cannot change status from '{appointment.status}' to '{new_status}'"
        )

    cancelled_at = None
    if new_status == "cancelled":
        if by_client:
            ctx = _Context(store, appointment.provider_id, now, default_timezone)
            settings = ctx.settings
            if not settings.allow_client_cancellation:
                raise BookingRefusedError(
                    "cancellation_disabled", "This provider does not accept online cancellations"
                )
            starts_at = datetime.combine(appointment.date, appointment.start_time)
            deadline = starts_at - timedelta(hours=settings.cancellation_notice_hours)
            if ctx.now_local.replace(tzinfo=None) > deadline:
                raise BookingRefusedError(
                    "cancellation_too_late",
                    "It is too late to cancel this appointment online",
                    cancellation_notice_hours=settings.cancellation_notice_hours,
                )
        cancelled_at = now
    elif by_client:
        raise BookingRefusedError("not_permitted", "Clients may only cancel appointments")

    return store.update_appointment_status(appointment, new_status, cancelled_at).unwrap()
