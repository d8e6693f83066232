"""Error taxonomy shared by the engine, the store and the HTTP layer."""
from __future__ import annotations


class BookingError(Exception):
    """Base class for every error raised by the booking engine."""

    code = "booking_error"
    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, object]:
        return {"error": self.code, "message": self.message, "retryable": self.retryable}


class ValidationError(BookingError):
    """Malformed input rejected at the write boundary."""

    code = "invalid_payload"


class ConflictError(BookingError):
    """The requested slot is no longer free."""

    code = "conflict"
    retryable = True


class DataSourceError(BookingError):
    """The backing store could not be reached or failed mid-query."""

    code = "data_source_error"
    retryable = True


class ResolutionError(DataSourceError):
    """Effective hours could not be resolved for a date."""

    code = "resolution_failed"


class NotFoundError(BookingError):
    """The provider or appointment addressed by the caller does not exist."""

    code = "not_found"


class BookingRefusedError(BookingError):
    """The booking or status change is not permitted for this client right now."""

    code = "booking_refused"

    def __init__(self, reason: str, message: str, **details: object) -> None:
        super().__init__(message)
        self.reason = reason
        self.details = details

    def to_dict(self) -> dict[str, object]:
        payload = super().to_dict()
        payload["reason"] = self.reason
        payload.update(self.details)
        return payload
