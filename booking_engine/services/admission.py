"""Booking admission: validate, check conflicts, then persist or explain."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Union

from booking_engine.domain.bus import EventBus
from booking_engine.domain.errors import (
    BookingNotFound,
    ConcurrentModification,
    InvalidInterval,
    InvalidTransition,
    ResourceNotFound,
    ResourceUnavailable,
)
from booking_engine.domain.events import BookingCreated, BookingRescheduled
from booking_engine.domain.models import (
    Approved,
    AvailabilityResponse,
    Booking,
    BookingRequest,
    BookingStatus,
    ConflictInfo,
    ConflictSummary,
    Pending,
    Resource,
    as_utc,
)
from booking_engine.repos.memory import BookingRepository, ResourceRepository
from booking_engine.services.availability import (
    DEFAULT_MAX_RESULTS,
    OperatingWindow,
    find_alternatives,
)
from booking_engine.services.conflicts import check_conflicts
from booking_engine.services.ids import IdGenerator, uuid_ids

logger = logging.getLogger(__name__)

# A request either becomes a stored booking or is turned away with details.
AdmissionResult = Union[Booking, ConflictInfo]

AUTO_APPROVER = "system"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookingAdmission:
    """Admits booking requests so that active bookings of a resource never overlap.

    The conflict check and the insert run under the resource's lock from
    the booking store; requests for different resources proceed in
    parallel. If the store still refuses the insert (another writer got
    there first) the whole check is repeated, up to ``max_attempts`` times.
    """

    def __init__(
        self,
        bookings: BookingRepository,
        resources: ResourceRepository,
        bus: EventBus,
        window: OperatingWindow | None = None,
        id_generator: IdGenerator = uuid_ids,
        max_suggestions: int = DEFAULT_MAX_RESULTS,
        max_attempts: int = 3,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.bookings = bookings
        self.resources = resources
        self.bus = bus
        self.window = window or OperatingWindow()
        self.id_generator = id_generator
        self.max_suggestions = max_suggestions
        self.max_attempts = max_attempts
        self.clock = clock

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def check_availability(
        self, resource_id: str, start: datetime, end: datetime
    ) -> AvailabilityResponse:
        """Read-only probe: same answer admission would give, nothing is stored."""
        start, end = self._validated_interval(start, end)
        self._get_resource(resource_id)

        conflict = self._conflict_info(resource_id, start, end)
        if conflict is None:
            return AvailabilityResponse(available=True)
        return AvailabilityResponse(
            available=False,
            conflicts=conflict.conflicts,
            suggestions=conflict.suggestions,
        )

    def request_booking(self, request: BookingRequest) -> AdmissionResult:
        """Run the full admission flow for a new booking.

        Raises ``InvalidInterval``, ``ResourceNotFound`` or
        ``ResourceUnavailable`` before touching bookings; store failures
        propagate unchanged and leave nothing behind.
        """
        start, end = self._validated_interval(request.start_time, request.end_time)
        resource = self._get_resource(request.resource_id)
        if not resource.is_available:
            raise ResourceUnavailable(resource.id)

        for attempt in range(1, self.max_attempts + 1):
            with self.bookings.lock_for(resource.id):
                conflict = self._conflict_info(resource.id, start, end)
                if conflict is not None:
                    logger.info(
                        "Booking request conflicts with %d booking(s)",
                        len(conflict.conflicts),
                        extra={"resource_id": resource.id},
                    )
                    return conflict

                booking = self._new_booking(request, resource, start, end)
                try:
                    self.bookings.add(booking)
                except ConcurrentModification:
                    logger.warning(
                        "Concurrent booking on resource; retrying admission",
                        extra={"resource_id": resource.id, "attempt": attempt},
                    )
                    continue

            logger.info(
                "Booking admitted as %s",
                booking.status,
                extra={"booking_id": booking.id, "resource_id": resource.id},
            )
            self.bus.publish(
                BookingCreated(
                    booking_id=booking.id,
                    resource_id=booking.resource_id,
                    requester_id=booking.requester_id,
                    status=booking.status,
                )
            )
            return booking

        # Retries exhausted: whoever won the race now shows up as a conflict.
        with self.bookings.lock_for(resource.id):
            conflict = self._conflict_info(resource.id, start, end)
        return conflict or ConflictInfo()

    def reschedule(self, booking_id: str, start: datetime, end: datetime) -> AdmissionResult:
        """Move a pending booking to a new interval, ignoring its own current slot."""
        start, end = self._validated_interval(start, end)
        current = self.bookings.get(booking_id)
        if current is None:
            raise BookingNotFound(booking_id)

        with self.bookings.lock_for(current.resource_id):
            # Re-read under the lock; a concurrent transition may have landed.
            current = self.bookings.get(booking_id)
            if current is None:
                raise BookingNotFound(booking_id)
            if current.status != BookingStatus.PENDING:
                raise InvalidTransition(booking_id, current.status, "rescheduled")

            conflict = self._conflict_info(
                current.resource_id, start, end, exclude_booking_id=booking_id
            )
            if conflict is not None:
                return conflict

            moved = current.model_copy(
                update={"start_time": start, "end_time": end, "updated_at": self.clock()}
            )
            try:
                self.bookings.replace(moved)
            except ConcurrentModification:
                return self._conflict_info(
                    current.resource_id, start, end, exclude_booking_id=booking_id
                ) or ConflictInfo()

        self.bus.publish(
            BookingRescheduled(booking_id=moved.id, start_time=start, end_time=end)
        )
        return moved

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validated_interval(start: datetime, end: datetime) -> tuple[datetime, datetime]:
        start, end = as_utc(start), as_utc(end)
        if start >= end:
            raise InvalidInterval(start, end)
        return start, end

    def _get_resource(self, resource_id: str) -> Resource:
        resource = self.resources.get(resource_id)
        if resource is None:
            raise ResourceNotFound(resource_id)
        return resource

    def _conflict_info(
        self,
        resource_id: str,
        start: datetime,
        end: datetime,
        exclude_booking_id: str | None = None,
    ) -> ConflictInfo | None:
        check = check_conflicts(
            self.bookings, resource_id, start, end, exclude_booking_id=exclude_booking_id
        )
        if not check.has_conflict:
            return None
        suggestions = find_alternatives(
            self.bookings,
            resource_id,
            end - start,
            start,
            self.window,
            max_results=self.max_suggestions,
            exclude_booking_id=exclude_booking_id,
        )
        return ConflictInfo(
            conflicts=[ConflictSummary.from_booking(b) for b in check.conflicts],
            suggestions=suggestions,
        )

    def _new_booking(
        self, request: BookingRequest, resource: Resource, start: datetime, end: datetime
    ) -> Booking:
        now = self.clock()
        if resource.auto_approve:
            state = Approved(approved_by=AUTO_APPROVER, approved_at=now)
        else:
            state = Pending()
        return Booking(
            id=self.id_generator(),
            resource_id=resource.id,
            requester_id=request.requester_id,
            requester_name=request.requester_name,
            start_time=start,
            end_time=end,
            purpose=request.purpose,
            state=state,
            event_id=request.event_id,
            event_title=request.event_title,
            notes=request.notes,
            created_at=now,
            updated_at=now,
        )
