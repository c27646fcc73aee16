"""Status changes on existing bookings: approve, reject, cancel, amend."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from booking_engine.domain.bus import EventBus
from booking_engine.domain.errors import BookingNotFound, InvalidTransition
from booking_engine.domain.events import BookingApproved, BookingCancelled, BookingRejected
from booking_engine.domain.models import (
    Approved,
    Booking,
    BookingState,
    BookingStatus,
    Cancelled,
    Rejected,
)
from booking_engine.repos.memory import BookingRepository

logger = logging.getLogger(__name__)

# approved, rejected and cancelled never go back to pending.
ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset(
        {BookingStatus.APPROVED, BookingStatus.REJECTED, BookingStatus.CANCELLED}
    ),
    BookingStatus.APPROVED: frozenset({BookingStatus.CANCELLED}),
    BookingStatus.REJECTED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookingTransitions:
    """Applies the booking status state machine and announces each change."""

    def __init__(
        self,
        bookings: BookingRepository,
        bus: EventBus,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.bookings = bookings
        self.bus = bus
        self.clock = clock

    def approve(self, booking_id: str, approver_id: str) -> Booking:
        booking = self._move(
            booking_id, Approved(approved_by=approver_id, approved_at=self.clock())
        )
        self.bus.publish(BookingApproved(booking_id=booking.id, approved_by=approver_id))
        return booking

    def reject(self, booking_id: str, reason: str) -> Booking:
        booking = self._move(booking_id, Rejected(reason=reason))
        self.bus.publish(BookingRejected(booking_id=booking.id, reason=reason))
        return booking

    def cancel(self, booking_id: str, actor_id: str | None = None) -> Booking:
        booking = self._move(
            booking_id, Cancelled(cancelled_by=actor_id, cancelled_at=self.clock())
        )
        self.bus.publish(BookingCancelled(booking_id=booking.id, cancelled_by=actor_id))
        return booking

    def amend_purpose(self, booking_id: str, purpose: str) -> Booking:
        """Change the free-text purpose; only allowed while the booking is pending."""
        booking = self._get(booking_id)
        with self.bookings.lock_for(booking.resource_id):
            booking = self._get(booking_id)
            if booking.status != BookingStatus.PENDING:
                raise InvalidTransition(booking_id, booking.status, "amended")
            updated = booking.model_copy(
                update={"purpose": purpose, "updated_at": self.clock()}
            )
            self.bookings.replace(updated)
        return updated

    def _get(self, booking_id: str) -> Booking:
        booking = self.bookings.get(booking_id)
        if booking is None:
            raise BookingNotFound(booking_id)
        return booking

    def _move(self, booking_id: str, state: BookingState) -> Booking:
        booking = self._get(booking_id)
        with self.bookings.lock_for(booking.resource_id):
            booking = self._get(booking_id)
            if not can_transition(booking.status, state.status):
                raise InvalidTransition(booking_id, booking.status, state.status)
            updated = booking.model_copy(update={"state": state, "updated_at": self.clock()})
            self.bookings.replace(updated)
        logger.info(
            "Booking moved %s -> %s",
            booking.status,
            updated.status,
            extra={"booking_id": booking_id, "resource_id": booking.resource_id},
        )
        return updated
