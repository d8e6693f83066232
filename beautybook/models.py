"""Database models for the booking backend."""
from __future__ import annotations

from flask import current_app, has_app_context

from .extensions import db
from .timeutils import ensure_utc, format_time, utc_now

ACTIVE_STATUSES = ("pending", "confirmed")
TERMINAL_STATUSES = ("completed", "cancelled", "no_show")
APPOINTMENT_STATUSES = ACTIVE_STATUSES + TERMINAL_STATUSES

SLOT_INTERVALS = (5, 10, 15, 30, 60)


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def _default_slot_interval() -> int:
    if has_app_context():
        return int(current_app.config.get("DEFAULT_SLOT_INTERVAL_MINUTES", 30))
    return 30


class Provider(db.Model):
    """A solo beauty-service provider with a public booking page."""

    __tablename__ = "providers"

    provider_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    timezone = db.Column(db.String(64), nullable=False, server_default="UTC")
    slot_interval_minutes = db.Column(
        db.Integer, nullable=False, default=_default_slot_interval, server_default="30"
    )
    # When set, per-day working schedules are clipped to the effective business hours
    restrict_to_business_hours = db.Column(db.Boolean, nullable=False, server_default="0")
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.provider_id,
            "name": self.name,
            "timezone": self.timezone,
            "slot_interval_minutes": self.slot_interval_minutes,
            "restrict_to_business_hours": bool(self.restrict_to_business_hours),
        }


class BusinessHours(db.Model):
    """Weekly opening hours, one row per provider and weekday (0=Sunday)."""

    __tablename__ = "business_hours"
    __table_args__ = (
        db.UniqueConstraint("provider_id", "day_of_week", name="uq_business_hours_day"),
    )

    hours_id = db.Column(db.Integer, primary_key=True)
    provider_id = db.Column(db.Integer, db.ForeignKey("providers.provider_id"), nullable=False)
    day_of_week = db.Column(db.Integer, nullable=False)
    is_open = db.Column(db.Boolean, nullable=False, server_default="1")
    open_time = db.Column(db.Time, nullable=True)
    close_time = db.Column(db.Time, nullable=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    def to_dict(self) -> dict[str, object]:
        return {
            "day_of_week": self.day_of_week,
            "is_open": bool(self.is_open),
            "open_time": format_time(self.open_time),
            "close_time": format_time(self.close_time),
        }


class SpecialHours(db.Model):
    """Per-date override of the weekly hours (holiday, short day)."""

    __tablename__ = "special_hours"
    __table_args__ = (
        db.UniqueConstraint("provider_id", "date", name="uq_special_hours_date"),
    )

    special_id = db.Column(db.Integer, primary_key=True)
    provider_id = db.Column(db.Integer, db.ForeignKey("providers.provider_id"), nullable=False)
    date = db.Column(db.Date, nullable=False)
    name = db.Column(db.String(150))
    is_open = db.Column(db.Boolean, nullable=False, server_default="0")
    open_time = db.Column(db.Time, nullable=True)
    close_time = db.Column(db.Time, nullable=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.special_id,
            "date": _iso(self.date),
            "name": self.name,
            "is_open": bool(self.is_open),
            "open_time": format_time(self.open_time),
            "close_time": format_time(self.close_time),
        }


class WorkingDay(db.Model):
    """A concrete schedule for one date, with its own breaks and slot interval."""

    __tablename__ = "working_days"
    __table_args__ = (
        db.UniqueConstraint("provider_id", "date", name="uq_working_days_date"),
    )

    working_day_id = db.Column(db.Integer, primary_key=True)
    provider_id = db.Column(db.Integer, db.ForeignKey("providers.provider_id"), nullable=False)
    date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    slot_interval_minutes = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    breaks = db.relationship(
        "WorkingDayBreak",
        back_populates="working_day",
        cascade="all, delete-orphan",
        order_by="WorkingDayBreak.start_time",
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.working_day_id,
            "date": _iso(self.date),
            "start_time": format_time(self.start_time),
            "end_time": format_time(self.end_time),
            "slot_interval_minutes": self.slot_interval_minutes,
            "breaks": [brk.to_dict() for brk in self.breaks],
        }


class WorkingDayBreak(db.Model):
    __tablename__ = "working_day_breaks"

    break_id = db.Column(db.Integer, primary_key=True)
    working_day_id = db.Column(
        db.Integer, db.ForeignKey("working_days.working_day_id"), nullable=False
    )
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)

    working_day = db.relationship("WorkingDay", back_populates="breaks")

    def to_dict(self) -> dict[str, object]:
        return {
            "start_time": format_time(self.start_time),
            "end_time": format_time(self.end_time),
        }


class Appointment(db.Model):
    """A client booking. Rows are never deleted, only moved between statuses."""

    __tablename__ = "appointments"
    __table_args__ = (
        # Backstop for the serialized check-and-insert in the store
        db.Index(
            "uq_appointments_active_start",
            "provider_id",
            "date",
            "start_time",
            unique=True,
            sqlite_where=db.text("status IN ('pending', 'confirmed')"),
            postgresql_where=db.text("status IN ('pending', 'confirmed')"),
        ),
        db.Index("ix_appointments_client", "provider_id", "client_id", "client_phone"),
    )

    appointment_id = db.Column(db.Integer, primary_key=True)
    provider_id = db.Column(db.Integer, db.ForeignKey("providers.provider_id"), nullable=False)
    client_id = db.Column(db.Integer, nullable=True)
    client_phone = db.Column(db.String(30), nullable=True)
    client_name = db.Column(db.String(100))
    service_name = db.Column(db.String(150))
    date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    status = db.Column(
        db.Enum(
            *APPOINTMENT_STATUSES,
            name="appointment_status",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        server_default="pending",
    )
    notes = db.Column(db.Text)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.appointment_id,
            "provider_id": self.provider_id,
            "client_id": self.client_id,
            "client_phone": self.client_phone,
            "client_name": self.client_name,
            "service_name": self.service_name,
            "date": _iso(self.date),
            "start_time": format_time(self.start_time),
            "end_time": format_time(self.end_time),
            "status": self.status,
            "notes": self.notes,
            "cancelled_at": _iso(ensure_utc(self.cancelled_at)),
            "created_at": _iso(self.created_at),
        }


class CancellationPolicy(db.Model):
    """Rolling-window cancellation/no-show policy, one row per provider."""

    __tablename__ = "cancellation_policies"

    provider_id = db.Column(db.Integer, db.ForeignKey("providers.provider_id"), primary_key=True)
    is_enabled = db.Column(db.Boolean, nullable=False, server_default="0")
    period_days = db.Column(db.Integer, nullable=False, server_default="30")
    max_cancellations = db.Column(db.Integer, nullable=False, server_default="3")
    no_show_multiplier = db.Column(db.Float, nullable=False, server_default="1")
    block_duration_days = db.Column(db.Integer, nullable=False, server_default="7")
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    def to_dict(self) -> dict[str, object]:
        return {
            "provider_id": self.provider_id,
            "is_enabled": bool(self.is_enabled),
            "period_days": self.period_days,
            "max_cancellations": self.max_cancellations,
            "no_show_multiplier": self.no_show_multiplier,
            "block_duration_days": self.block_duration_days,
        }


class BookingSettings(db.Model):
    __tablename__ = "booking_settings"

    provider_id = db.Column(db.Integer, db.ForeignKey("providers.provider_id"), primary_key=True)
    auto_confirm = db.Column(db.Boolean, nullable=False, server_default="0")
    min_booking_notice_hours = db.Column(db.Integer, nullable=False, server_default="0")
    max_booking_days_ahead = db.Column(db.Integer, nullable=False, server_default="30")
    allow_client_cancellation = db.Column(db.Boolean, nullable=False, server_default="1")
    cancellation_notice_hours = db.Column(db.Integer, nullable=False, server_default="24")
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    def to_dict(self) -> dict[str, object]:
        return {
            "provider_id": self.provider_id,
            "auto_confirm": bool(self.auto_confirm),
            "min_booking_notice_hours": self.min_booking_notice_hours,
            "max_booking_days_ahead": self.max_booking_days_ahead,
            "allow_client_cancellation": bool(self.allow_client_cancellation),
            "cancellation_notice_hours": self.cancellation_notice_hours,
        }


class BlockedClient(db.Model):
    """Manual blocklist entry set by the provider."""

    __tablename__ = "blocked_clients"

    block_id = db.Column(db.Integer, primary_key=True)
    provider_id = db.Column(db.Integer, db.ForeignKey("providers.provider_id"), nullable=False)
    client_id = db.Column(db.Integer, nullable=True)
    client_phone = db.Column(db.String(30), nullable=True)
    reason = db.Column(db.String(255))
    # NULL blocks until removed
    blocked_until = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.block_id,
            "provider_id": self.provider_id,
            "client_id": self.client_id,
            "client_phone": self.client_phone,
            "reason": self.reason,
            "blocked_until": _iso(ensure_utc(self.blocked_until)),
            "created_at": _iso(self.created_at),
        }
