"""In-memory repositories for bookings, resources and notifications."""

from __future__ import annotations

import threading
from datetime import datetime

from booking_engine.domain.errors import ConcurrentModification
from booking_engine.domain.models import (
    ACTIVE_STATUSES,
    Booking,
    BookingStatus,
    Notification,
    Resource,
    ResourceType,
    as_utc,
)


def _by_start(booking: Booking) -> tuple[datetime, str]:
    return booking.start_time, booking.id


class BookingRepository:
    """Dict-backed booking store, keyed by id.

    Writes of active bookings are checked against the other active bookings
    of the same resource inside the store's own lock, so an overlapping
    insert is refused with ``ConcurrentModification`` even when callers skip
    the per-resource lock.
    """

    def __init__(self) -> None:
        self._store: dict[str, Booking] = {}
        self._write_lock = threading.Lock()
        self._resource_locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def lock_for(self, resource_id: str) -> threading.Lock:
        """Return the admission lock for one resource, creating it on first use."""
        with self._locks_guard:
            lock = self._resource_locks.get(resource_id)
            if lock is None:
                lock = self._resource_locks[resource_id] = threading.Lock()
            return lock

    def add(self, booking: Booking) -> None:
        with self._write_lock:
            self._ensure_no_overlap(booking)
            self._store[booking.id] = booking

    def replace(self, booking: Booking) -> None:
        """Overwrite a stored booking (status change or new interval)."""
        with self._write_lock:
            self._ensure_no_overlap(booking)
            self._store[booking.id] = booking

    def get(self, booking_id: str) -> Booking | None:
        return self._store.get(booking_id)

    def list_all(self) -> list[Booking]:
        return sorted(self._store.values(), key=_by_start)

    def list_for_resource(
        self,
        resource_id: str,
        statuses: frozenset[BookingStatus] | None = None,
    ) -> list[Booking]:
        """Bookings of one resource in ascending start order."""
        return sorted(
            (
                b
                for b in list(self._store.values())
                if b.resource_id == resource_id
                and (statuses is None or b.status in statuses)
            ),
            key=_by_start,
        )

    def list_active(self, resource_id: str) -> list[Booking]:
        return self.list_for_resource(resource_id, ACTIVE_STATUSES)

    def list_for_requester(self, requester_id: str) -> list[Booking]:
        """Return a requester's bookings, latest start first."""
        return sorted(
            (b for b in list(self._store.values()) if b.requester_id == requester_id),
            key=_by_start,
            reverse=True,
        )

    def query(
        self,
        resource_id: str | None = None,
        status: BookingStatus | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Booking]:
        """Filter bookings; ``start``/``end`` bound the booking's start time inclusively."""
        start = as_utc(start) if start is not None else None
        end = as_utc(end) if end is not None else None
        results = []
        for booking in list(self._store.values()):
            if resource_id is not None and booking.resource_id != resource_id:
                continue
            if status is not None and booking.status != status:
                continue
            if start is not None and booking.start_time < start:
                continue
            if end is not None and booking.start_time > end:
                continue
            results.append(booking)
        return sorted(results, key=_by_start)

    def delete(self, booking_id: str) -> None:
        with self._write_lock:
            self._store.pop(booking_id, None)

    def _ensure_no_overlap(self, booking: Booking) -> None:
        if not booking.is_active:
            return
        for other in self._store.values():
            if (
                other.id != booking.id
                and other.resource_id == booking.resource_id
                and other.is_active
                and other.overlaps(booking.start_time, booking.end_time)
            ):
                raise ConcurrentModification(booking.resource_id, booking.id)


class ResourceRepository:
    """Dict-backed store for the resource catalog, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Resource] = {}

    def add(self, resource: Resource) -> None:
        self._store[resource.id] = resource

    def get(self, resource_id: str) -> Resource | None:
        return self._store.get(resource_id)

    def list_all(
        self,
        type: ResourceType | None = None,
        is_available: bool | None = None,
    ) -> list[Resource]:
        return [
            r
            for r in self._store.values()
            if (type is None or r.type == type)
            and (is_available is None or r.is_available == is_available)
        ]


class NotificationRepository:
    """List-backed store for Notification instances."""

    def __init__(self) -> None:
        self._items: list[Notification] = []

    def add(self, notification: Notification) -> None:
        self._items.append(notification)

    def list_for_user(self, user_id: str) -> list[Notification]:
        return sorted(
            (n for n in self._items if n.user_id == user_id),
            key=lambda n: n.created_at,
            reverse=True,
        )

    def list_for_booking(self, booking_id: str) -> list[Notification]:
        return [n for n in self._items if n.booking_id == booking_id]


# ---------------------------------------------------------------------------
# Seed data – the venue catalog used by a freshly started service
# ---------------------------------------------------------------------------


_SAMPLE_RESOURCES = [
    Resource(
        id="main-auditorium",
        name="Main Auditorium",
        type=ResourceType.HALL,
        capacity=500,
        description="Large auditorium with modern audio-visual equipment",
        location="Academic Block A, Ground Floor",
        features=["Projector", "Sound System", "AC", "Stage", "Green Room", "Lighting"],
    ),
    Resource(
        id="seminar-hall-1",
        name="Seminar Hall 1",
        type=ResourceType.HALL,
        capacity=150,
        description="Medium-sized seminar hall for workshops and presentations",
        location="Academic Block B, 1st Floor",
        features=["Projector", "Whiteboard", "AC", "Wi-Fi"],
    ),
    Resource(
        id="seminar-hall-2",
        name="Seminar Hall 2",
        type=ResourceType.HALL,
        capacity=100,
        description="Smaller seminar hall ideal for panel discussions",
        location="Academic Block B, 2nd Floor",
        features=["Projector", "Whiteboard", "AC", "Wi-Fi"],
    ),
    Resource(
        id="conference-room-a",
        name="Conference Room A",
        type=ResourceType.ROOM,
        capacity=30,
        description="Professional meeting room for formal discussions",
        location="Administration Building, 2nd Floor",
        features=["Projector", "Video Conferencing", "AC", "Wi-Fi", "Whiteboard"],
        auto_approve=True,
    ),
    Resource(
        id="computer-lab-1",
        name="Computer Lab 1",
        type=ResourceType.LAB,
        capacity=60,
        description="Computer lab with 60 workstations",
        location="IT Block, Ground Floor",
        features=["Computers", "Projector", "AC", "Wi-Fi"],
    ),
    Resource(
        id="portable-pa-system",
        name="Portable PA System",
        type=ResourceType.EQUIPMENT,
        description="Speakers and wireless microphones for outdoor events",
        auto_approve=True,
    ),
]


def seed_resources(repo: ResourceRepository) -> None:
    for resource in _SAMPLE_RESOURCES:
        repo.add(resource.model_copy(deep=True))


def create_resource_repository(seed: bool = True) -> ResourceRepository:
    """Return a ResourceRepository, pre-loaded with the sample catalog by default."""
    repo = ResourceRepository()
    if seed:
        seed_resources(repo)
    return repo
