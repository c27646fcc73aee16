"""Service for detecting booking conflicts on a resource."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from booking_engine.domain.models import Booking
from booking_engine.repos.memory import BookingRepository


class ConflictCheck(BaseModel):
    has_conflict: bool
    conflicts: list[Booking] = Field(default_factory=list)


def find_conflicts(
    new_start: datetime,
    new_end: datetime,
    existing_bookings: list[Booking],
    exclude_booking_id: str | None = None,
) -> list[Booking]:
    """Return active bookings that overlap with the given time range.

    Overlap rule: conflict if new_start < existing.end_time AND existing.start_time < new_end.
    Exact boundary touches (end == start) are NOT considered conflicts.
    Results come back in ascending start order.
    """
    overlapping = [
        booking
        for booking in existing_bookings
        if booking.is_active
        and booking.id != exclude_booking_id
        and booking.overlaps(new_start, new_end)
    ]
    return sorted(overlapping, key=lambda b: (b.start_time, b.id))


def check_conflicts(
    repo: BookingRepository,
    resource_id: str,
    start: datetime,
    end: datetime,
    exclude_booking_id: str | None = None,
) -> ConflictCheck:
    """Query the store for every active booking on ``resource_id`` overlapping ``[start, end)``.

    ``exclude_booking_id`` lets an edited booking be checked without
    colliding with its own current interval. The caller guarantees
    ``start < end``.
    """
    conflicts = find_conflicts(
        start, end, repo.list_active(resource_id), exclude_booking_id=exclude_booking_id
    )
    return ConflictCheck(has_conflict=bool(conflicts), conflicts=conflicts)
