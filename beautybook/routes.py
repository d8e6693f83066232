"""HTTP routes for the booking backend."""
from __future__ import annotations

from dataclasses import asdict
from datetime import date

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from . import engine
from .errors import BookingError, BookingRefusedError, ValidationError
from .extensions import db
from .models import (BlockedClient, BookingSettings, BusinessHours, CancellationPolicy,
                     Provider, SpecialHours, WorkingDay, WorkingDayBreak)
from .scheduling import patterns
from .scheduling.slots import available_only
from .store import ClientRef, SqlAlchemyStore
from .timeutils import is_valid_timezone, parse_date, parse_time_of_day, utc_now
from .validators import (optional_datetime, optional_time, parse_breaks, parse_hours_entry,
                         require_bool, require_int, require_number, validate_open_close,
                         validate_slot_interval)

bp = Blueprint("api", __name__)

ERROR_STATUS = {
    "invalid_payload": 400,
    "not_found": 404,
    "conflict": 409,
    "data_source_error": 503,
    "resolution_failed": 503,
}

BLOCK_REASONS = ("blocked", "policy_blocked")


def register_routes(app) -> None:
    app.register_blueprint(bp)


def _store() -> SqlAlchemyStore:
    return SqlAlchemyStore(db.session)


def _default_timezone() -> str:
    return current_app.config.get("DEFAULT_TIMEZONE", "UTC")


def _error_response(exc: BookingError):
    if isinstance(exc, BookingRefusedError):
        status = 403 if exc.reason in BLOCK_REASONS else 422
    else:
        status = ERROR_STATUS.get(exc.code, 500)
    if status >= 500:
        current_app.logger.error("Engine call failed: %s", exc.message)
    return jsonify(exc.to_dict()), status


def _invalid(message: str):
    return jsonify({"error": "invalid_payload", "message": message}), 400


def _provider_or_404(provider_id: int):
    provider = db.session.get(Provider, provider_id)
    if not provider:
        return None, (jsonify({"error": "not_found", "message": "Provider not found"}), 404)
    return provider, None


def _client_from(source) -> ClientRef:
    client_id = source.get("client_id")
    if client_id is not None and not isinstance(client_id, int):
        try:
            client_id = int(client_id)
        except (TypeError, ValueError):
            raise ValidationError("client_id must be an integer") from None
    phone = source.get("client_phone")
    phone = str(phone).strip() if phone not in (None, "") else None
    return ClientRef(client_id=client_id, client_phone=phone or None)


@bp.get("/health")
def health_check() -> tuple[dict[str, str], int]:
    """
    Expose a simple uptime check endpoint.
    ---
    tags:
      - Health
    responses:
      200:
        description: Service is healthy and running.
    """
    return jsonify({"status": "ok"}), 200


@bp.get("/db-health")
def database_health() -> tuple[dict[str, str], int]:
    """Check connectivity to the configured database.
    ---
    tags:
      - Health
    responses:
      200:
        description: Database connection is ok.
      500:
        description: Database connection failed.
    """
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        current_app.logger.exception("Database connectivity check failed", exc_info=exc)
        return jsonify({"database": "unavailable"}), 500

    return jsonify({"database": "ok"}), 200


# --- BEGIN: Schedule configuration ---

@bp.get("/providers/<int:provider_id>/schedule-config")
def get_schedule_config(provider_id: int) -> tuple[dict[str, object], int]:
    try:
        provider, error = _provider_or_404(provider_id)
        if error:
            return error
        return jsonify({"provider": provider.to_dict()}), 200

    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch schedule config", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp.put("/providers/<int:provider_id>/schedule-config")
def update_schedule_config(provider_id: int) -> tuple[dict[str, object], int]:
    """Update timezone, default slot interval and the business-hours restriction.
    ---
    tags:
      - Schedule
    parameters:
      - in: body
        name: body
        schema:
          properties:
            timezone:
              type: string
            slot_interval_minutes:
              type: integer
              enum: [5, 10, 15, 30, 60]
            restrict_to_business_hours:
              type: boolean
    responses:
      200:
        description: Configuration saved
      400:
        description: Invalid input
      404:
        description: Provider not found
    """
    payload = request.get_json(silent=True) or {}
    try:
        provider, error = _provider_or_404(provider_id)
        if error:
            return error

        if "timezone" in payload:
            if not isinstance(payload["timezone"], str) or not is_valid_timezone(payload["timezone"]):
                return _invalid("timezone must be a valid IANA timezone name")
            provider.timezone = payload["timezone"]
        if "slot_interval_minutes" in payload:
            provider.slot_interval_minutes = validate_slot_interval(payload["slot_interval_minutes"])
        if "restrict_to_business_hours" in payload:
            provider.restrict_to_business_hours = require_bool(payload, "restrict_to_business_hours")

        db.session.commit()
        return jsonify({"provider": provider.to_dict()}), 200

    except ValidationError as exc:
        db.session.rollback()
        return _invalid(exc.message)
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update schedule config", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

# --- END: Schedule configuration ---


# --- BEGIN: Business hours ---

@bp.get("/providers/<int:provider_id>/business-hours")
def get_business_hours(provider_id: int) -> tuple[dict[str, object], int]:
    """Return the weekly hours (0=Sunday) configured by the provider.
    ---
    tags:
      - Business Hours
    responses:
      200:
        description: Weekly hours, empty when nothing is configured
      404:
        description: Provider not found
    """
    try:
        provider, error = _provider_or_404(provider_id)
        if error:
            return error
        rows = (
            BusinessHours.query.filter_by(provider_id=provider_id)
            .order_by(BusinessHours.day_of_week)
            .all()
        )
        return jsonify({"business_hours": [row.to_dict() for row in rows]}), 200

    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch business hours", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp.put("/providers/<int:provider_id>/business-hours")
def update_business_hours(provider_id: int) -> tuple[dict[str, object], int]:
    """Upsert weekly hours, one entry per weekday.
    ---
    tags:
      - Business Hours
    parameters:
      - in: body
        name: body
        required: true
        schema:
          properties:
            hours:
              type: array
              items:
                properties:
                  day_of_week:
                    type: integer
                  is_open:
                    type: boolean
                  open_time:
                    type: string
                  close_time:
                    type: string
    responses:
      200:
        description: Hours saved
      400:
        description: Invalid input
      404:
        description: Provider not found
    """
    payload = request.get_json(silent=True) or {}
    entries = payload.get("hours")
    if not isinstance(entries, list) or not entries:
        return _invalid("hours must be a non-empty list")

    try:
        parsed = [parse_hours_entry(entry) for entry in entries]
    except ValidationError as exc:
        current_app.logger.warning(f"Rejected business hours for provider {provider_id}: {exc.message}")
        return _invalid(exc.message)

    days = [entry["day_of_week"] for entry in parsed]
    if len(days) != len(set(days)):
        return _invalid("each day_of_week may appear only once")

    try:
        provider, error = _provider_or_404(provider_id)
        if error:
            return error

        existing = {
            row.day_of_week: row
            for row in BusinessHours.query.filter_by(provider_id=provider_id).all()
        }
        for entry in parsed:
            row = existing.get(entry["day_of_week"])
            if row is None:
                row = BusinessHours(provider_id=provider_id, day_of_week=entry["day_of_week"])
                db.session.add(row)
            row.is_open = entry["is_open"]
            row.open_time = entry["open_time"]
            row.close_time = entry["close_time"]

        db.session.commit()
        rows = (
            BusinessHours.query.filter_by(provider_id=provider_id)
            .order_by(BusinessHours.day_of_week)
            .all()
        )
        return jsonify({"business_hours": [row.to_dict() for row in rows]}), 200

    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update business hours", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp.get("/providers/<int:provider_id>/special-hours")
def list_special_hours(provider_id: int) -> tuple[dict[str, object], int]:
    try:
        provider, error = _provider_or_404(provider_id)
        if error:
            return error
        rows = SpecialHours.query.filter_by(provider_id=provider_id).order_by(SpecialHours.date).all()
        return jsonify({"special_hours": [row.to_dict() for row in rows]}), 200

    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch special hours", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp.put("/providers/<int:provider_id>/special-hours/<date_str>")
def upsert_special_hours(provider_id: int, date_str: str) -> tuple[dict[str, object], int]:
    """Create or replace the override for one date (holiday, short day).
    ---
    tags:
      - Business Hours
    parameters:
      - in: path
        name: date_str
        required: true
        type: string
        description: YYYY-MM-DD
      - in: body
        name: body
        schema:
          properties:
            name:
              type: string
            is_open:
              type: boolean
            open_time:
              type: string
            close_time:
              type: string
    responses:
      200:
        description: Override saved
      400:
        description: Invalid input
    """
    payload = request.get_json(silent=True) or {}
    try:
        target_date = parse_date(date_str)
        is_open = require_bool(payload, "is_open", default=False)
        open_time = optional_time(payload, "open_time")
        close_time = optional_time(payload, "close_time")
        validate_open_close(is_open, open_time, close_time)
    except ValidationError as exc:
        return _invalid(exc.message)

    try:
        provider, error = _provider_or_404(provider_id)
        if error:
            return error

        row = SpecialHours.query.filter_by(provider_id=provider_id, date=target_date).first()
        if row is None:
            row = SpecialHours(provider_id=provider_id, date=target_date)
            db.session.add(row)
        row.name = (payload.get("name") or "").strip() or None
        row.is_open = is_open
        row.open_time = open_time
        row.close_time = close_time
        db.session.commit()

        return jsonify({"special_hours": row.to_dict()}), 200

    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to save special hours", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp.delete("/providers/<int:provider_id>/special-hours/<date_str>")
def delete_special_hours(provider_id: int, date_str: str) -> tuple[dict[str, object], int]:
    try:
        target_date = parse_date(date_str)
    except ValidationError as exc:
        return _invalid(exc.message)

    try:
        row = SpecialHours.query.filter_by(provider_id=provider_id, date=target_date).first()
        if not row:
            return jsonify({"error": "not_found", "message": "Special hours not found"}), 404
        db.session.delete(row)
        db.session.commit()
        return jsonify({"message": "Special hours removed"}), 200

    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to delete special hours", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

# --- END: Business hours ---


# --- BEGIN: Policies and booking settings ---

@bp.get("/providers/<int:provider_id>/cancellation-policy")
def get_cancellation_policy(provider_id: int) -> tuple[dict[str, object], int]:
    try:
        provider, error = _provider_or_404(provider_id)
        if error:
            return error
        policy = db.session.get(CancellationPolicy, provider_id)
        if policy is None:
            return jsonify({"cancellation_policy": None}), 200
        return jsonify({"cancellation_policy": policy.to_dict()}), 200

    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch cancellation policy", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp.put("/providers/<int:provider_id>/cancellation-policy")
def update_cancellation_policy(provider_id: int) -> tuple[dict[str, object], int]:
    """Upsert the rolling-window cancellation policy.
    ---
    tags:
      - Policies
    parameters:
      - in: body
        name: body
        schema:
          properties:
            is_enabled:
              type: boolean
            period_days:
              type: integer
            max_cancellations:
              type: integer
            no_show_multiplier:
              type: number
            block_duration_days:
              type: integer
    responses:
      200:
        description: Policy saved
      400:
        description: Invalid input
      404:
        description: Provider not found
    """
    payload = request.get_json(silent=True) or {}
    try:
        provider, error = _provider_or_404(provider_id)
        if error:
            return error

        policy = db.session.get(CancellationPolicy, provider_id)
        current = policy.to_dict() if policy else {
            "is_enabled": False,
            "period_days": 30,
            "max_cancellations": 3,
            "no_show_multiplier": 1.0,
            "block_duration_days": 7,
        }
        merged = {**current, **payload}

        values = {
            "is_enabled": require_bool(merged, "is_enabled"),
            "period_days": require_int(merged, "period_days", minimum=1),
            "max_cancellations": require_int(merged, "max_cancellations", minimum=1),
            "no_show_multiplier": require_number(merged, "no_show_multiplier", minimum=0),
            "block_duration_days": require_int(merged, "block_duration_days", minimum=1),
        }

        if policy is None:
            policy = CancellationPolicy(provider_id=provider_id)
            db.session.add(policy)
        for key, value in values.items():
            setattr(policy, key, value)
        db.session.commit()

        return jsonify({"cancellation_policy": policy.to_dict()}), 200

    except ValidationError as exc:
        db.session.rollback()
        return _invalid(exc.message)
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update cancellation policy", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp.get("/providers/<int:provider_id>/booking-settings")
def get_booking_settings(provider_id: int) -> tuple[dict[str, object], int]:
    try:
        provider, error = _provider_or_404(provider_id)
        if error:
            return error
        settings = db.session.get(BookingSettings, provider_id)
        if settings is None:
            payload = {"provider_id": provider_id, **asdict(engine.DEFAULT_BOOKING_SETTINGS)}
            return jsonify({"booking_settings": payload, "is_default": True}), 200
        return jsonify({"booking_settings": settings.to_dict(), "is_default": False}), 200

    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch booking settings", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp.put("/providers/<int:provider_id>/booking-settings")
def update_booking_settings(provider_id: int) -> tuple[dict[str, object], int]:
    payload = request.get_json(silent=True) or {}
    try:
        provider, error = _provider_or_404(provider_id)
        if error:
            return error

        settings = db.session.get(BookingSettings, provider_id)
        current = settings.to_dict() if settings else asdict(engine.DEFAULT_BOOKING_SETTINGS)
        merged = {**current, **payload}
        values = {
            "auto_confirm": require_bool(merged, "auto_confirm"),
            "min_booking_notice_hours": require_int(merged, "min_booking_notice_hours"),
            "max_booking_days_ahead": require_int(merged, "max_booking_days_ahead", minimum=1),
            "allow_client_cancellation": require_bool(merged, "allow_client_cancellation"),
            "cancellation_notice_hours": require_int(merged, "cancellation_notice_hours"),
        }

        if settings is None:
            settings = BookingSettings(provider_id=provider_id)
            db.session.add(settings)
        for key, value in values.items():
            setattr(settings, key, value)
        db.session.commit()

        return jsonify({"booking_settings": settings.to_dict(), "is_default": False}), 200

    except ValidationError as exc:
        db.session.rollback()
        return _invalid(exc.message)
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update booking settings", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

# --- END: Policies and booking settings ---


# --- BEGIN: Working days ---

def _save_working_day(provider_id: int, target_date: date, start, end, breaks, interval=None):
    row = WorkingDay.query.filter_by(provider_id=provider_id, date=target_date).first()
    if row is None:
        row = WorkingDay(provider_id=provider_id, date=target_date)
        db.session.add(row)
    row.start_time = start
    row.end_time = end
    row.slot_interval_minutes = interval
    row.breaks = [WorkingDayBreak(start_time=b.start, end_time=b.end) for b in breaks]
    return row


@bp.get("/providers/<int:provider_id>/working-days/<date_str>")
def get_working_day(provider_id: int, date_str: str) -> tuple[dict[str, object], int]:
    try:
        target_date = parse_date(date_str)
    except ValidationError as exc:
        return _invalid(exc.message)

    try:
        row = WorkingDay.query.filter_by(provider_id=provider_id, date=target_date).first()
        if not row:
            return jsonify({"error": "not_found", "message": "Working day not found"}), 404
        return jsonify({"working_day": row.to_dict()}), 200

    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch working day", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp.put("/providers/<int:provider_id>/working-days/<date_str>")
def upsert_working_day(provider_id: int, date_str: str) -> tuple[dict[str, object], int]:
    """Create or replace a concrete schedule for one date.
    ---
    tags:
      - Schedule
    parameters:
      - in: body
        name: body
        required: true
        schema:
          properties:
            start_time:
              type: string
            end_time:
              type: string
            slot_interval_minutes:
              type: integer
            breaks:
              type: array
              items:
                properties:
                  start_time:
                    type: string
                  end_time:
                    type: string
    responses:
      200:
        description: Working day saved
      400:
        description: Invalid input
      404:
        description: Provider not found
    """
    payload = request.get_json(silent=True) or {}
    if not payload.get("start_time") or not payload.get("end_time"):
        return _invalid("start_time and end_time are required")

    try:
        target_date = parse_date(date_str)
        start = parse_time_of_day(payload["start_time"])
        end = parse_time_of_day(payload["end_time"])
        if start >= end:
            raise ValidationError("start_time must be before end_time")
        breaks = parse_breaks(payload.get("breaks"), start, end)
        interval = payload.get("slot_interval_minutes")
        if interval is not None:
            interval = validate_slot_interval(interval)
    except ValidationError as exc:
        return _invalid(exc.message)

    try:
        provider, error = _provider_or_404(provider_id)
        if error:
            return error
        row = _save_working_day(provider_id, target_date, start, end, breaks, interval)
        db.session.commit()
        return jsonify({"working_day": row.to_dict()}), 200

    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to save working day", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp.delete("/providers/<int:provider_id>/working-days/<date_str>")
def delete_working_day(provider_id: int, date_str: str) -> tuple[dict[str, object], int]:
    try:
        target_date = parse_date(date_str)
    except ValidationError as exc:
        return _invalid(exc.message)

    try:
        row = WorkingDay.query.filter_by(provider_id=provider_id, date=target_date).first()
        if not row:
            return jsonify({"error": "not_found", "message": "Working day not found"}), 404
        db.session.delete(row)
        db.session.commit()
        return jsonify({"message": "Working day removed"}), 200

    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to delete working day", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


def _pattern_days(payload: dict) -> list:
    hours = payload.get("working_hours")
    if not isinstance(hours, dict):
        raise ValidationError("working_hours is required")
    start = parse_time_of_day(hours.get("start", ""))
    end = parse_time_of_day(hours.get("end", ""))
    if start >= end:
        raise ValidationError("working_hours start must be before end")
    template = patterns.DayTemplate(start, end, tuple(parse_breaks(hours.get("breaks"), start, end)))

    kind = payload.get("type")
    if kind == "rotation":
        return patterns.from_rotation(
            parse_date(payload.get("start_date")),
            parse_date(payload.get("end_date")),
            require_int(payload, "days_on", minimum=1),
            require_int(payload, "days_off"),
            template,
        )
    if kind == "weekly":
        weekdays = payload.get("weekdays")
        if not isinstance(weekdays, list):
            raise ValidationError("weekdays must be a list of values 0-6")
        return patterns.from_weekly(
            parse_date(payload.get("start_date")),
            parse_date(payload.get("end_date")),
            weekdays,
            template,
        )
    if kind == "bulk":
        dates = payload.get("dates")
        if not isinstance(dates, list) or not dates:
            raise ValidationError("dates must be a non-empty list")
        return patterns.from_bulk([parse_date(d) for d in dates], template)

    raise ValidationError(f"type must be one of {', '.join(patterns.PATTERN_TYPES)}")


@bp.post("/providers/<int:provider_id>/working-days/generate")
def generate_working_days(provider_id: int) -> tuple[dict[str, object], int]:
    """Create working days from a rotation, weekly or bulk pattern.
    ---
    tags:
      - Schedule
    parameters:
      - in: body
        name: body
        required: true
        schema:
          properties:
            type:
              type: string
              enum: [rotation, weekly, bulk]
            start_date:
              type: string
            end_date:
              type: string
            days_on:
              type: integer
            days_off:
              type: integer
            weekdays:
              type: array
              items:
                type: integer
            dates:
              type: array
              items:
                type: string
            working_hours:
              type: object
            overwrite:
              type: boolean
    responses:
      201:
        description: Working days created
      400:
        description: Invalid input
    """
    payload = request.get_json(silent=True) or {}
    try:
        generated = _pattern_days(payload)
        overwrite = require_bool(payload, "overwrite", default=False)
    except ValidationError as exc:
        return _invalid(exc.message)

    try:
        provider, error = _provider_or_404(provider_id)
        if error:
            return error

        if not overwrite:
            existing = [
                row.date
                for row in WorkingDay.query.filter(
                    WorkingDay.provider_id == provider_id,
                    WorkingDay.date.in_([day.date for day in generated]),
                ).all()
            ]
            generated = patterns.exclude_existing(generated, existing)

        for day in generated:
            _save_working_day(provider_id, day.date, day.start_time, day.end_time, day.breaks)
        db.session.commit()

        return jsonify({"created": [day.to_dict() for day in generated]}), 201

    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to generate working days", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

# --- END: Working days ---


# --- BEGIN: Availability ---

@bp.get("/providers/<int:provider_id>/effective-hours")
def get_effective_hours(provider_id: int) -> tuple[dict[str, object], int]:
    """Resolved open/closed state and hours for one date.
    ---
    tags:
      - Availability
    parameters:
      - in: query
        name: date
        required: true
        type: string
    responses:
      200:
        description: Effective hours
      400:
        description: Invalid date
      503:
        description: Hours could not be resolved, retry
    """
    date_str = request.args.get("date")
    if not date_str:
        return _invalid("date (YYYY-MM-DD) is required")
    try:
        target_date = parse_date(date_str)
    except ValidationError as exc:
        return _invalid(exc.message)

    result = engine.get_effective_hours(_store(), provider_id, target_date)
    if not result.is_ok:
        return _error_response(result.error)
    return jsonify({"date": target_date.isoformat(), "hours": result.value.to_dict()}), 200


@bp.get("/providers/<int:provider_id>/open-status")
def get_open_status(provider_id: int) -> tuple[dict[str, object], int]:
    result = engine.get_open_status(
        _store(), provider_id, utc_now(), default_timezone=_default_timezone()
    )
    if not result.is_ok:
        return _error_response(result.error)
    return jsonify({"open_status": result.value.to_dict()}), 200


@bp.get("/providers/<int:provider_id>/availability")
def get_availability(provider_id: int) -> tuple[dict[str, object], int]:
    """Candidate slots for a date, flagged available or not.
    ---
    tags:
      - Availability
    parameters:
      - in: query
        name: date
        required: true
        type: string
      - in: query
        name: duration_minutes
        type: integer
      - in: query
        name: available_only
        type: boolean
    responses:
      200:
        description: Slots in ascending order
      400:
        description: Invalid input
      404:
        description: Provider not found
      503:
        description: Store unavailable, retry
    """
    date_str = request.args.get("date")
    duration_minutes = request.args.get("duration_minutes", type=int)
    if not date_str:
        return _invalid("date (YYYY-MM-DD) is required")
    try:
        target_date = parse_date(date_str)
    except ValidationError as exc:
        return _invalid(exc.message)
    if "duration_minutes" in request.args and duration_minutes is None:
        return _invalid("duration_minutes must be an integer")

    result = engine.get_available_slots(
        _store(),
        provider_id,
        target_date,
        duration_minutes,
        utc_now(),
        default_timezone=_default_timezone(),
    )
    if not result.is_ok:
        return _error_response(result.error)

    slots = result.value
    if request.args.get("available_only") in {"1", "true", "True"}:
        slots = available_only(slots)
    return jsonify({"date": target_date.isoformat(), "slots": [s.to_dict() for s in slots]}), 200

# --- END: Availability ---


# --- BEGIN: Client restrictions ---

@bp.get("/providers/<int:provider_id>/clients/block-status")
def get_client_block_status(provider_id: int) -> tuple[dict[str, object], int]:
    """Whether a client is currently blocked by the cancellation policy.
    ---
    tags:
      - Clients
    parameters:
      - in: query
        name: client_id
        type: integer
      - in: query
        name: client_phone
        type: string
    responses:
      200:
        description: Block status with stats when the policy is enabled
      400:
        description: Missing client identifier
      503:
        description: Store unavailable; do not accept the booking
    """
    try:
        client = _client_from(request.args)
    except ValidationError as exc:
        return _invalid(exc.message)
    if not client.has_identifier:
        return _invalid("client_id or client_phone is required")

    result = engine.is_client_blocked(
        _store(), client, provider_id, utc_now(), default_timezone=_default_timezone()
    )
    if not result.is_ok:
        return _error_response(result.error)
    return jsonify({"block_status": result.value.to_dict()}), 200


@bp.get("/providers/<int:provider_id>/blocked-clients")
def list_blocked_clients(provider_id: int) -> tuple[dict[str, object], int]:
    try:
        rows = (
            BlockedClient.query.filter_by(provider_id=provider_id)
            .order_by(BlockedClient.created_at.desc())
            .all()
        )
        return jsonify({"blocked_clients": [row.to_dict() for row in rows]}), 200

    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch blocked clients", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp.post("/providers/<int:provider_id>/blocked-clients")
def block_client(provider_id: int) -> tuple[dict[str, object], int]:
    """Block a client manually, permanently or until ``blocked_until``.
    ---
    tags:
      - Clients
    parameters:
      - in: body
        name: body
        required: true
        schema:
          properties:
            client_id:
              type: integer
            client_phone:
              type: string
            reason:
              type: string
            blocked_until:
              type: string
              description: ISO 8601 timestamp, UTC when no offset is given
    responses:
      201:
        description: Client blocked
      200:
        description: Client was already blocked; expiry and reason updated
      400:
        description: Invalid input
    """
    payload = request.get_json(silent=True) or {}
    now = utc_now()
    try:
        client = _client_from(payload)
        blocked_until = optional_datetime(payload, "blocked_until")
    except ValidationError as exc:
        return _invalid(exc.message)
    if not client.has_identifier:
        return _invalid("client_id or client_phone is required")
    if blocked_until is not None and blocked_until <= now:
        return _invalid("blocked_until must be in the future")

    try:
        provider, error = _provider_or_404(provider_id)
        if error:
            return error

        existing = _store().fetch_blocklist_entry(provider_id, client, now).unwrap()
        if existing is not None:
            if "blocked_until" in payload:
                existing.blocked_until = blocked_until
            if payload.get("reason"):
                existing.reason = payload["reason"]
            db.session.commit()
            return jsonify({"blocked_client": existing.to_dict()}), 200

        row = BlockedClient(
            provider_id=provider_id,
            client_id=client.client_id,
            client_phone=client.client_phone,
            reason=payload.get("reason"),
            blocked_until=blocked_until,
        )
        db.session.add(row)
        db.session.commit()
        return jsonify({"blocked_client": row.to_dict()}), 201

    except BookingError as exc:
        return _error_response(exc)
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to block client", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp.delete("/providers/<int:provider_id>/blocked-clients/<int:block_id>")
def unblock_client(provider_id: int, block_id: int) -> tuple[dict[str, object], int]:
    try:
        row = BlockedClient.query.filter_by(block_id=block_id, provider_id=provider_id).first()
        if not row:
            return jsonify({"error": "not_found", "message": "Blocked client not found"}), 404
        db.session.delete(row)
        db.session.commit()
        return jsonify({"message": "Client unblocked"}), 200

    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to unblock client", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

# --- END: Client restrictions ---


# --- BEGIN: Appointments ---

@bp.post("/providers/<int:provider_id>/appointments")
def create_appointment(provider_id: int) -> tuple[dict[str, object], int]:
    """Book a slot.
    ---
    tags:
      - Appointments
    parameters:
      - in: body
        name: body
        required: true
        schema:
          properties:
            date:
              type: string
            start_time:
              type: string
            duration_minutes:
              type: integer
            client_id:
              type: integer
            client_phone:
              type: string
            client_name:
              type: string
            service_name:
              type: string
            notes:
              type: string
    responses:
      201:
        description: Appointment created
      400:
        description: Invalid input
      403:
        description: Client is blocked
      409:
        description: Slot taken meanwhile, pick another
      422:
        description: Outside bookable hours
      503:
        description: Store unavailable, retry
    """
    payload = request.get_json(silent=True) or {}
    if not payload.get("date") or not payload.get("start_time") or "duration_minutes" not in payload:
        return _invalid("date, start_time and duration_minutes are required")

    try:
        booking = engine.BookingRequest(
            date=parse_date(payload["date"]),
            start_time=parse_time_of_day(payload["start_time"]),
            duration_minutes=require_int(payload, "duration_minutes", minimum=1),
            client=_client_from(payload),
            client_name=payload.get("client_name"),
            service_name=payload.get("service_name"),
            notes=payload.get("notes"),
        )
    except ValidationError as exc:
        return _invalid(exc.message)

    result = engine.book_appointment(
        _store(), provider_id, booking, utc_now(), default_timezone=_default_timezone()
    )
    if not result.is_ok:
        if result.error.code in ("conflict", "booking_refused"):
            current_app.logger.info(
                f"Booking refused for provider {provider_id}: {result.error.message}"
            )
        return _error_response(result.error)

    fetched = _store().fetch_appointment(result.value)
    if not fetched.is_ok:
        return _error_response(fetched.error)
    return jsonify({"appointment": fetched.value.to_dict()}), 201


@bp.patch("/appointments/<int:appointment_id>/status")
def update_appointment_status(appointment_id: int) -> tuple[dict[str, object], int]:
    """Confirm, cancel, complete or mark an appointment as a no-show.
    ---
    tags:
      - Appointments
    parameters:
      - in: body
        name: body
        required: true
        schema:
          properties:
            status:
              type: string
              enum: [confirmed, cancelled, completed, no_show]
            by_client:
              type: boolean
    responses:
      200:
        description: Status updated
      400:
        description: Invalid transition
      404:
        description: Appointment not found
      422:
        description: Cancellation not permitted
    """
    payload = request.get_json(silent=True) or {}
    new_status = payload.get("status")
    if not new_status:
        return _invalid("status is required")
    try:
        by_client = require_bool(payload, "by_client", default=False)
    except ValidationError as exc:
        return _invalid(exc.message)

    result = engine.change_status(
        _store(),
        appointment_id,
        new_status,
        utc_now(),
        by_client=by_client,
        default_timezone=_default_timezone(),
    )
    if not result.is_ok:
        return _error_response(result.error)
    return jsonify({"appointment": result.value.to_dict()}), 200

# --- END: Appointments ---
