"""Errors raised by the booking engine.

A conflicting request is not an error: admission returns a ``ConflictInfo``
value for it. Everything here is per-request and safe for the caller to
retry with a new request.
"""

from __future__ import annotations

from datetime import datetime


class BookingError(Exception):
    pass


class InvalidInterval(BookingError):
    def __init__(self, start: datetime, end: datetime) -> None:
        super().__init__(
            f"end time must be after start time (got {start.isoformat()} .. {end.isoformat()})"
        )
        self.start = start
        self.end = end


class ResourceNotFound(BookingError):
    def __init__(self, resource_id: str) -> None:
        super().__init__(f"Resource not found: {resource_id}")
        self.resource_id = resource_id


class ResourceUnavailable(BookingError):
    def __init__(self, resource_id: str) -> None:
        super().__init__(f"Resource is not accepting bookings: {resource_id}")
        self.resource_id = resource_id


class BookingNotFound(BookingError):
    def __init__(self, booking_id: str) -> None:
        super().__init__(f"Booking not found: {booking_id}")
        self.booking_id = booking_id


class InvalidTransition(BookingError):
    def __init__(self, booking_id: str, current: str, target: str) -> None:
        super().__init__(f"Booking {booking_id} is already {current}; cannot move to {target}")
        self.booking_id = booking_id
        self.current = current
        self.target = target


class StoreError(BookingError):
    """Infrastructure failure in the booking store."""


class StoreUnavailable(StoreError):
    pass


class StoreTimeout(StoreError):
    pass


class ConcurrentModification(StoreError):
    """The store refused a write that would overlap an active booking."""

    def __init__(self, resource_id: str, booking_id: str) -> None:
        super().__init__(
            f"Booking {booking_id} overlaps an active booking on resource {resource_id}"
        )
        self.resource_id = resource_id
        self.booking_id = booking_id
