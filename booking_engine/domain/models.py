"""Domain models for the resource booking engine."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

try:
    from enum import StrEnum
except ImportError:  # pragma: no cover - fallback for older Python runtimes

    class StrEnum(str, Enum):
        pass


class BookingStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


# Only these statuses block a time range on a resource.
ACTIVE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.APPROVED})


class ResourceType(StrEnum):
    ROOM = "room"
    HALL = "hall"
    LAB = "lab"
    EQUIPMENT = "equipment"


class NotificationType(StrEnum):
    BOOKING_PENDING = "booking_pending"
    BOOKING_APPROVED = "booking_approved"
    BOOKING_REJECTED = "booking_rejected"
    BOOKING_CANCELLED = "booking_cancelled"
    BOOKING_RESCHEDULED = "booking_rescheduled"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def as_utc(value: datetime) -> datetime:
    """Pin a timestamp to the absolute timeline; naive values are read as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ---------------------------------------------------------------------------
# Booking status variants
# ---------------------------------------------------------------------------


class Pending(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal[BookingStatus.PENDING] = BookingStatus.PENDING


class Approved(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal[BookingStatus.APPROVED] = BookingStatus.APPROVED
    approved_by: str
    approved_at: datetime = Field(default_factory=_utcnow)


class Rejected(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal[BookingStatus.REJECTED] = BookingStatus.REJECTED
    reason: str


class Cancelled(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal[BookingStatus.CANCELLED] = BookingStatus.CANCELLED
    cancelled_by: str | None = None
    cancelled_at: datetime = Field(default_factory=_utcnow)


BookingState = Annotated[
    Union[Pending, Approved, Rejected, Cancelled],
    Field(discriminator="status"),
]


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class Resource(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    type: ResourceType = ResourceType.ROOM
    capacity: int | None = Field(default=None, ge=0)
    description: str | None = None
    location: str | None = None
    features: list[str] = Field(default_factory=list)
    auto_approve: bool = False
    is_available: bool = True


class Booking(BaseModel):
    id: str = Field(frozen=True)
    resource_id: str = Field(frozen=True)
    requester_id: str = Field(frozen=True)
    requester_name: str = Field(frozen=True)
    start_time: datetime
    end_time: datetime
    purpose: str
    state: BookingState = Field(default_factory=Pending)
    event_id: str | None = None
    event_title: str | None = None
    notes: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("start_time", "end_time")
    @classmethod
    def _absolute(cls, value: datetime) -> datetime:
        return as_utc(value)

    @model_validator(mode="after")
    def _end_after_start(self) -> Booking:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    @computed_field
    @property
    def status(self) -> BookingStatus:
        return self.state.status

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Half-open test: [start_time, end_time) intersects [start, end)."""
        return self.start_time < end and start < self.end_time


class Notification(BaseModel):
    id: str = Field(default_factory=_new_id)
    user_id: str
    type: NotificationType
    title: str
    message: str
    link: str | None = None
    booking_id: str | None = None
    read: bool = False
    created_at: datetime = Field(default_factory=_utcnow)


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class TimeSlot(BaseModel):
    start: datetime
    end: datetime


class ConflictSummary(BaseModel):
    """The caller-facing view of a booking that blocks a request."""

    start_time: datetime
    end_time: datetime
    purpose: str

    @classmethod
    def from_booking(cls, booking: Booking) -> ConflictSummary:
        return cls(
            start_time=booking.start_time,
            end_time=booking.end_time,
            purpose=booking.purpose,
        )


class ConflictInfo(BaseModel):
    conflicts: list[ConflictSummary] = Field(default_factory=list)
    suggestions: list[TimeSlot] = Field(default_factory=list)


class AvailabilityRequest(BaseModel):
    resource_id: str
    start_time: datetime
    end_time: datetime


class AvailabilityResponse(BaseModel):
    available: bool
    conflicts: list[ConflictSummary] | None = None
    suggestions: list[TimeSlot] | None = None


class BookingRequest(BaseModel):
    resource_id: str
    requester_id: str
    requester_name: str
    start_time: datetime
    end_time: datetime
    purpose: str = Field(min_length=1)
    event_id: str | None = None
    event_title: str | None = None
    notes: str | None = None


class ApproveRequest(BaseModel):
    approver_id: str


class RejectRequest(BaseModel):
    reason: str = Field(min_length=1)


class CancelRequest(BaseModel):
    actor_id: str | None = None


class RescheduleRequest(BaseModel):
    start_time: datetime
    end_time: datetime


class AmendPurposeRequest(BaseModel):
    purpose: str = Field(min_length=1)
