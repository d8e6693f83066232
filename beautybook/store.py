"""SQLAlchemy-backed data access for the scheduling engine.

Every read returns ``Ok(value)`` or ``Err(DataSourceError)``; "no row" is
``Ok(None)`` or ``Ok([])``, never an error. Failures are logged here once and
handed back to the caller instead of being replaced with empty data.
"""
from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Iterable, Optional

from sqlalchemy import or_, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .errors import ConflictError, DataSourceError, ValidationError
from .models import (ACTIVE_STATUSES, Appointment, BlockedClient, BookingSettings,
                     BusinessHours, CancellationPolicy, Provider, SpecialHours,
                     WorkingDay)
from .results import Err, Ok
from .scheduling.overlap import Interval, overlaps_any
from .timeutils import ensure_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientRef:
    """Identifies a client by account id, by phone for guests, or both."""

    client_id: Optional[int] = None
    client_phone: Optional[str] = None

    @property
    def has_identifier(self) -> bool:
        return self.client_id is not None or bool(self.client_phone)

    def conditions(self, model) -> list:
        clauses = []
        if self.client_id is not None:
            clauses.append(model.client_id == self.client_id)
        if self.client_phone:
            clauses.append(model.client_phone == self.client_phone)
        return clauses


@dataclass(frozen=True)
class AppointmentCandidate:
    provider_id: int
    date: date
    start_time: time
    end_time: time
    client: ClientRef
    status: str = "pending"
    client_name: Optional[str] = None
    service_name: Optional[str] = None
    notes: Optional[str] = None

    @property
    def interval(self) -> Interval:
        return Interval(self.start_time, self.end_time)


def _guarded(operation: str):
    """Translate store exceptions into ``Err(DataSourceError)``."""

    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except SQLAlchemyError as exc:
                self.session.rollback()
                logger.exception("Store operation %s failed", operation)
                return Err(DataSourceError(f"Failed to {operation}: {exc.__class__.__name__}"))

        return wrapper

    return decorator


class SqlAlchemyStore:
    def __init__(self, session) -> None:
        self.session = session

    @_guarded("fetch provider")
    def fetch_provider(self, provider_id: int):
        return Ok(self.session.get(Provider, provider_id))

    @_guarded("fetch business hours")
    def fetch_business_hours(self, provider_id: int):
        rows = (
            self.session.query(BusinessHours)
            .filter_by(provider_id=provider_id)
            .order_by(BusinessHours.day_of_week)
            .all()
        )
        return Ok(rows)

    @_guarded("fetch special hours")
    def fetch_special_hours(self, provider_id: int, target_date: date):
        row = (
            self.session.query(SpecialHours)
            .filter_by(provider_id=provider_id, date=target_date)
            .one_or_none()
        )
        return Ok(row)

    @_guarded("fetch working day")
    def fetch_working_day(self, provider_id: int, target_date: date):
        row = (
            self.session.query(WorkingDay)
            .filter_by(provider_id=provider_id, date=target_date)
            .one_or_none()
        )
        return Ok(row)

    @_guarded("fetch appointments")
    def fetch_appointments(
        self,
        provider_id: int,
        start_date: date,
        end_date: date,
        statuses: Optional[Iterable[str]] = None,
    ):
        query = self.session.query(Appointment).filter(
            Appointment.provider_id == provider_id,
            Appointment.date >= start_date,
            Appointment.date <= end_date,
        )
        if statuses is not None:
            query = query.filter(Appointment.status.in_(list(statuses)))
        return Ok(query.order_by(Appointment.date, Appointment.start_time).all())

    @_guarded("fetch client appointments")
    def fetch_client_appointments(
        self,
        provider_id: int,
        client: ClientRef,
        statuses: Optional[Iterable[str]] = None,
    ):
        if not client.has_identifier:
            return Ok([])
        query = self.session.query(Appointment).filter(
            Appointment.provider_id == provider_id,
            or_(*client.conditions(Appointment)),
        )
        if statuses is not None:
            query = query.filter(Appointment.status.in_(list(statuses)))
        return Ok(query.all())

    @_guarded("fetch appointment")
    def fetch_appointment(self, appointment_id: int):
        return Ok(self.session.get(Appointment, appointment_id))

    @_guarded("fetch cancellation policy")
    def fetch_cancellation_policy(self, provider_id: int):
        return Ok(self.session.get(CancellationPolicy, provider_id))

    @_guarded("fetch booking settings")
    def fetch_booking_settings(self, provider_id: int):
        return Ok(self.session.get(BookingSettings, provider_id))

    @_guarded("fetch blocklist entry")
    def fetch_blocklist_entry(
        self, provider_id: int, client: ClientRef, now: Optional[datetime] = None
    ):
        """Manual block for ``client``; with ``now``, entries whose
        ``blocked_until`` has passed are ignored."""
        if not client.has_identifier:
            return Ok(None)
        query = self.session.query(BlockedClient).filter(
            BlockedClient.provider_id == provider_id,
            or_(*client.conditions(BlockedClient)),
        )
        if now is not None:
            query = query.filter(
                or_(
                    BlockedClient.blocked_until.is_(None),
                    BlockedClient.blocked_until > ensure_utc(now),
                )
            )
        permanent_first = BlockedClient.blocked_until.is_(None).desc()
        return Ok(query.order_by(permanent_first, BlockedClient.blocked_until.desc()).first())

    def _lock_provider(self, provider_id: int) -> None:
        connection = self.session.connection()
        if connection.dialect.name == "sqlite":
            # SQLite ignores FOR UPDATE; take the database write lock before
            # reading. A driver transaction already open has written, so it
            # holds that lock.
            if not connection.connection.dbapi_connection.in_transaction:
                self.session.execute(text("BEGIN IMMEDIATE"))
        self.session.query(Provider).filter_by(provider_id=provider_id).with_for_update().one()

    def insert_appointment(self, candidate: AppointmentCandidate):
        """Check-and-insert under a per-provider lock.

        Returns ``Ok(appointment_id)``, ``Err(ConflictError)`` when an active
        appointment overlaps, or ``Err(DataSourceError)``.
        """
        if candidate.start_time >= candidate.end_time:
            return Err(ValidationError("start_time must be before end_time"))

        try:
            # Held until commit or rollback; concurrent writers for the
            # provider wait here and then see this insert.
            self._lock_provider(candidate.provider_id)

            active = (
                self.session.query(Appointment)
                .filter(
                    Appointment.provider_id == candidate.provider_id,
                    Appointment.date == candidate.date,
                    Appointment.status.in_(ACTIVE_STATUSES),
                )
                .all()
            )
            booked = [Interval(a.start_time, a.end_time) for a in active]
            if overlaps_any(candidate.interval, booked):
                self.session.rollback()
                return Err(ConflictError("Time slot is no longer available"))

            appointment = Appointment(
                provider_id=candidate.provider_id,
                client_id=candidate.client.client_id,
                client_phone=candidate.client.client_phone,
                client_name=candidate.client_name,
                service_name=candidate.service_name,
                notes=candidate.notes,
                date=candidate.date,
                start_time=candidate.start_time,
                end_time=candidate.end_time,
                status=candidate.status,
            )
            self.session.add(appointment)
            self.session.commit()
            return Ok(appointment.appointment_id)

        except IntegrityError:
            self.session.rollback()
            logger.info(
                "Insert for provider %s on %s lost a race",
                candidate.provider_id,
                candidate.date,
            )
            return Err(ConflictError("Time slot is no longer available"))
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Store operation insert appointment failed")
            return Err(DataSourceError(f"Failed to insert appointment: {exc.__class__.__name__}"))

    @_guarded("update appointment status")
    def update_appointment_status(
        self, appointment, status: str, cancelled_at: Optional[datetime] = None
    ):
        appointment.status = status
        if cancelled_at is not None:
            appointment.cancelled_at = cancelled_at
        self.session.commit()
        return Ok(appointment)
