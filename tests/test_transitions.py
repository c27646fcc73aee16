"""Tests for the booking status state machine and the notifications it produces."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from booking_engine.domain.bus import EventBus
from booking_engine.domain.errors import BookingNotFound, InvalidTransition
from booking_engine.domain.handlers import HandlerRegistry
from booking_engine.domain.models import (
    Approved,
    BookingRequest,
    BookingStatus,
    NotificationType,
    Resource,
)
from booking_engine.repos.memory import (
    BookingRepository,
    NotificationRepository,
    ResourceRepository,
)
from booking_engine.services.admission import BookingAdmission
from booking_engine.services.ids import SequentialIds
from booking_engine.services.transitions import BookingTransitions, can_transition

_NOW = datetime(2026, 6, 1, 7, 0, tzinfo=timezone.utc)


def _at(hour: int) -> datetime:
    return datetime(2026, 6, 2, hour, 0, tzinfo=timezone.utc)


@pytest.fixture()
def env():
    """Fresh bus + repos + registry + services for each test."""
    bus = EventBus()
    booking_repo = BookingRepository()
    resource_repo = ResourceRepository()
    resource_repo.add(Resource(id="hall-1", name="Seminar Hall 1"))
    resource_repo.add(Resource(id="room-a", name="Conference Room A", auto_approve=True))
    notification_repo = NotificationRepository()

    registry = HandlerRegistry(
        bus=bus,
        booking_repo=booking_repo,
        resource_repo=resource_repo,
        notification_repo=notification_repo,
    )

    class Env:
        pass

    e = Env()
    e.bus = bus
    e.booking_repo = booking_repo
    e.notification_repo = notification_repo
    e.registry = registry
    e.admission = BookingAdmission(
        bookings=booking_repo,
        resources=resource_repo,
        bus=bus,
        id_generator=SequentialIds(),
        clock=lambda: _NOW,
    )
    e.transitions = BookingTransitions(booking_repo, bus, clock=lambda: _NOW)
    return e


def _book(env, resource_id: str = "hall-1", start: int = 10, end: int = 11):
    return env.admission.request_booking(
        BookingRequest(
            resource_id=resource_id,
            requester_id="u-1",
            requester_name="Asha",
            start_time=_at(start),
            end_time=_at(end),
            purpose="Quiz night",
        )
    )


def _types(env, booking_id: str) -> list[NotificationType]:
    return [n.type for n in env.notification_repo.list_for_booking(booking_id)]


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("current", "target", "allowed"),
    [
        (BookingStatus.PENDING, BookingStatus.APPROVED, True),
        (BookingStatus.PENDING, BookingStatus.REJECTED, True),
        (BookingStatus.PENDING, BookingStatus.CANCELLED, True),
        (BookingStatus.APPROVED, BookingStatus.CANCELLED, True),
        (BookingStatus.APPROVED, BookingStatus.REJECTED, False),
        (BookingStatus.APPROVED, BookingStatus.PENDING, False),
        (BookingStatus.REJECTED, BookingStatus.APPROVED, False),
        (BookingStatus.CANCELLED, BookingStatus.APPROVED, False),
        (BookingStatus.CANCELLED, BookingStatus.PENDING, False),
    ],
)
def test_can_transition(current, target, allowed):
    assert can_transition(current, target) is allowed


def test_approve_pending(env):
    booking = _book(env)

    approved = env.transitions.approve(booking.id, "admin-7")

    assert approved.state == Approved(approved_by="admin-7", approved_at=_NOW)
    assert env.booking_repo.get(booking.id).status == BookingStatus.APPROVED
    assert _types(env, booking.id) == [
        NotificationType.BOOKING_PENDING,
        NotificationType.BOOKING_APPROVED,
    ]


def test_reject_pending_records_reason(env):
    booking = _book(env)

    rejected = env.transitions.reject(booking.id, "Venue under maintenance")

    assert rejected.status == BookingStatus.REJECTED
    assert rejected.state.reason == "Venue under maintenance"
    latest = env.notification_repo.list_for_booking(booking.id)[-1]
    assert latest.message == "Your booking has been rejected: Venue under maintenance"


def test_cancel_approved(env):
    booking = _book(env, resource_id="room-a")

    cancelled = env.transitions.cancel(booking.id, "admin-7")

    assert cancelled.status == BookingStatus.CANCELLED
    assert cancelled.state.cancelled_by == "admin-7"
    assert _types(env, booking.id)[-1] == NotificationType.BOOKING_CANCELLED


def test_self_cancel_is_not_notified(env):
    booking = _book(env)
    env.transitions.cancel(booking.id, "u-1")
    assert _types(env, booking.id) == [NotificationType.BOOKING_PENDING]


def test_terminal_states_reject_changes(env):
    booking = _book(env)
    env.transitions.reject(booking.id, "No")

    with pytest.raises(InvalidTransition):
        env.transitions.approve(booking.id, "admin-7")
    with pytest.raises(InvalidTransition):
        env.transitions.cancel(booking.id)


def test_approved_cannot_be_rejected(env):
    booking = _book(env, resource_id="room-a")
    with pytest.raises(InvalidTransition):
        env.transitions.reject(booking.id, "Too late")


def test_unknown_booking(env):
    with pytest.raises(BookingNotFound):
        env.transitions.approve("missing", "admin-7")


def test_cancelling_frees_the_interval(env):
    booking = _book(env)
    env.transitions.cancel(booking.id, "u-1")

    response = env.admission.check_availability("hall-1", _at(10), _at(11))
    assert response.available is True


def test_amend_purpose_while_pending(env):
    booking = _book(env)

    amended = env.transitions.amend_purpose(booking.id, "Quiz night finals")

    assert amended.purpose == "Quiz night finals"
    assert env.booking_repo.get(booking.id).purpose == "Quiz night finals"


def test_amend_purpose_after_approval_refused(env):
    booking = _book(env, resource_id="room-a")
    with pytest.raises(InvalidTransition):
        env.transitions.amend_purpose(booking.id, "Something else")


# ---------------------------------------------------------------------------
# Notifications on admission
# ---------------------------------------------------------------------------


def test_auto_approved_booking_notifies_requester(env):
    booking = _book(env, resource_id="room-a")

    [notification] = env.notification_repo.list_for_user("u-1")
    assert notification.type == NotificationType.BOOKING_APPROVED
    assert notification.message == (
        "Your booking for Conference Room A has been automatically approved"
    )
    assert notification.link == f"/bookings/{booking.id}"


def test_rescheduled_booking_notifies_requester(env):
    booking = _book(env)
    env.admission.reschedule(booking.id, _at(14), _at(15))
    assert _types(env, booking.id)[-1] == NotificationType.BOOKING_RESCHEDULED
