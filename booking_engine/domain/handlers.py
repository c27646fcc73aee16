"""Notification handlers, wired to the bus at application startup."""

from __future__ import annotations

import logging

from booking_engine.domain.bus import EventBus
from booking_engine.domain.events import (
    BookingApproved,
    BookingCancelled,
    BookingCreated,
    BookingRejected,
    BookingRescheduled,
)
from booking_engine.domain.models import (
    Booking,
    BookingStatus,
    Notification,
    NotificationType,
)
from booking_engine.repos.memory import (
    BookingRepository,
    NotificationRepository,
    ResourceRepository,
)

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Turns booking events into notifications for the requester."""

    def __init__(
        self,
        bus: EventBus,
        booking_repo: BookingRepository,
        resource_repo: ResourceRepository,
        notification_repo: NotificationRepository,
    ) -> None:
        self.bus = bus
        self.booking_repo = booking_repo
        self.resource_repo = resource_repo
        self.notification_repo = notification_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(BookingCreated, self.on_booking_created)
        self.bus.subscribe(BookingApproved, self.on_booking_approved)
        self.bus.subscribe(BookingRejected, self.on_booking_rejected)
        self.bus.subscribe(BookingCancelled, self.on_booking_cancelled)
        self.bus.subscribe(BookingRescheduled, self.on_booking_rescheduled)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_booking_created(self, event: BookingCreated) -> None:
        booking = self.booking_repo.get(event.booking_id)
        if booking is None:
            return

        resource = self.resource_repo.get(booking.resource_id)
        resource_name = resource.name if resource else booking.resource_id

        if event.status == BookingStatus.APPROVED:
            self._notify(
                booking,
                NotificationType.BOOKING_APPROVED,
                "Booking Approved",
                f"Your booking for {resource_name} has been automatically approved",
            )
        else:
            self._notify(
                booking,
                NotificationType.BOOKING_PENDING,
                "Booking Pending",
                f"Your booking for {resource_name} is pending approval",
            )

    def on_booking_approved(self, event: BookingApproved) -> None:
        booking = self.booking_repo.get(event.booking_id)
        if booking is None:
            return
        self._notify(
            booking,
            NotificationType.BOOKING_APPROVED,
            "Booking Approved",
            "Your booking has been approved",
        )

    def on_booking_rejected(self, event: BookingRejected) -> None:
        booking = self.booking_repo.get(event.booking_id)
        if booking is None:
            return
        self._notify(
            booking,
            NotificationType.BOOKING_REJECTED,
            "Booking Rejected",
            f"Your booking has been rejected: {event.reason}",
        )

    def on_booking_cancelled(self, event: BookingCancelled) -> None:
        booking = self.booking_repo.get(event.booking_id)
        if booking is None:
            return
        # Requesters cancelling their own booking don't need telling.
        if event.cancelled_by == booking.requester_id:
            return
        self._notify(
            booking,
            NotificationType.BOOKING_CANCELLED,
            "Booking Cancelled",
            "Your booking has been cancelled",
        )

    def on_booking_rescheduled(self, event: BookingRescheduled) -> None:
        booking = self.booking_repo.get(event.booking_id)
        if booking is None:
            return
        self._notify(
            booking,
            NotificationType.BOOKING_RESCHEDULED,
            "Booking Rescheduled",
            f"Your booking now runs {event.start_time.isoformat()} to {event.end_time.isoformat()}",
        )

    def _notify(
        self,
        booking: Booking,
        type: NotificationType,
        title: str,
        message: str,
    ) -> Notification:
        notification = Notification(
            user_id=booking.requester_id,
            type=type,
            title=title,
            message=message,
            link=f"/bookings/{booking.id}",
            booking_id=booking.id,
        )
        self.notification_repo.add(notification)
        logger.debug(
            "Queued %s notification", type, extra={"booking_id": booking.id}
        )
        return notification
