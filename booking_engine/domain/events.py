"""Domain events emitted after booking decisions and status changes."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from booking_engine.domain.models import BookingStatus


class BookingCreated(BaseModel):
    """Fired when admission persists a new booking."""

    booking_id: str
    resource_id: str
    requester_id: str
    status: BookingStatus


class BookingApproved(BaseModel):
    booking_id: str
    approved_by: str


class BookingRejected(BaseModel):
    booking_id: str
    reason: str


class BookingCancelled(BaseModel):
    booking_id: str
    cancelled_by: str | None = None


class BookingRescheduled(BaseModel):
    """Fired when a pending booking is moved to a new interval."""

    booking_id: str
    start_time: datetime
    end_time: datetime
