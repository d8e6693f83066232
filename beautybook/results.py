"""Tagged success/failure results.

Store reads and engine queries return ``Ok`` or ``Err`` so callers can tell
"nothing configured" (``Ok(None)``) apart from "could not find out" (``Err``).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from .errors import BookingError

T = TypeVar("T")
E = TypeVar("E", bound=BookingError)


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

    @property
    def is_ok(self) -> bool:
        return False

    def unwrap(self):
        raise self.error


Result = Union[Ok[T], Err[E]]
