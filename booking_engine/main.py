"""FastAPI application: entry point for the resource booking engine."""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import FastAPI, HTTPException, status
from fastapi.responses import JSONResponse

from booking_engine.config import get_settings
from booking_engine.domain.bus import EventBus
from booking_engine.domain.errors import (
    BookingError,
    BookingNotFound,
    InvalidInterval,
    InvalidTransition,
    ResourceNotFound,
    ResourceUnavailable,
    StoreError,
)
from booking_engine.domain.handlers import HandlerRegistry
from booking_engine.domain.models import (
    AmendPurposeRequest,
    ApproveRequest,
    AvailabilityRequest,
    AvailabilityResponse,
    Booking,
    BookingRequest,
    BookingStatus,
    CancelRequest,
    ConflictInfo,
    Notification,
    RejectRequest,
    RescheduleRequest,
    Resource,
    ResourceType,
)
from booking_engine.logging_config import configure_logging
from booking_engine.repos.memory import (
    BookingRepository,
    NotificationRepository,
    create_resource_repository,
)
from booking_engine.services.admission import BookingAdmission
from booking_engine.services.availability import OperatingWindow
from booking_engine.services.transitions import BookingTransitions

settings = get_settings()
configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME)

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
booking_repo = BookingRepository()
resource_repo = create_resource_repository(seed=settings.SEED_CATALOG)
notification_repo = NotificationRepository()

handler_registry = HandlerRegistry(
    bus=event_bus,
    booking_repo=booking_repo,
    resource_repo=resource_repo,
    notification_repo=notification_repo,
)
admission = BookingAdmission(
    bookings=booking_repo,
    resources=resource_repo,
    bus=event_bus,
    window=OperatingWindow.from_settings(settings),
    max_suggestions=settings.MAX_SUGGESTIONS,
    max_attempts=settings.ADMISSION_RETRIES,
)
transitions = BookingTransitions(bookings=booking_repo, bus=event_bus)


def _http_error(exc: BookingError) -> HTTPException:
    if isinstance(exc, (ResourceNotFound, BookingNotFound)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, ResourceUnavailable):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, (InvalidInterval, InvalidTransition)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, StoreError):
        logger.exception("Booking store failure")
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Booking store unavailable, please retry",
        )
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _admission_response(result: Booking | ConflictInfo) -> Booking | JSONResponse:
    if isinstance(result, ConflictInfo):
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={
                "message": "Resource is not available for the selected time slot",
                **result.model_dump(mode="json"),
            },
        )
    return result


# ── Routes ────────────────────────────────────────────────────────────


@app.get("/resources", response_model=list[Resource])
def list_resources(
    type: ResourceType | None = None, is_available: bool | None = None
) -> list[Resource]:
    """Return the resource catalog, optionally filtered."""
    return resource_repo.list_all(type=type, is_available=is_available)


@app.get("/resources/{resource_id}", response_model=Resource)
def get_resource(resource_id: str) -> Resource:
    resource = resource_repo.get(resource_id)
    if resource is None:
        raise HTTPException(status_code=404, detail="Resource not found")
    return resource


@app.post("/bookings/check-availability", response_model=AvailabilityResponse)
def check_availability(payload: AvailabilityRequest) -> AvailabilityResponse:
    """Probe a time range without booking it."""
    try:
        return admission.check_availability(
            payload.resource_id, payload.start_time, payload.end_time
        )
    except BookingError as exc:
        raise _http_error(exc) from exc


@app.post(
    "/bookings",
    response_model=Booking,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ConflictInfo}},
)
def create_booking(payload: BookingRequest):
    """Admit a booking, or answer 409 with the conflicts and free alternatives."""
    try:
        result = admission.request_booking(payload)
    except BookingError as exc:
        raise _http_error(exc) from exc
    return _admission_response(result)


@app.get("/bookings", response_model=list[Booking])
def list_bookings(
    resource_id: str | None = None,
    status: BookingStatus | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Booking]:
    """Return bookings in start order, filtered by resource, status and start range."""
    return booking_repo.query(resource_id=resource_id, status=status, start=start, end=end)


@app.get("/bookings/mine", response_model=list[Booking])
def list_my_bookings(requester_id: str) -> list[Booking]:
    return booking_repo.list_for_requester(requester_id)


@app.get("/bookings/{booking_id}", response_model=Booking)
def get_booking(booking_id: str) -> Booking:
    booking = booking_repo.get(booking_id)
    if booking is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


@app.post("/bookings/{booking_id}/approve", response_model=Booking)
def approve_booking(booking_id: str, body: ApproveRequest) -> Booking:
    try:
        return transitions.approve(booking_id, body.approver_id)
    except BookingError as exc:
        raise _http_error(exc) from exc


@app.post("/bookings/{booking_id}/reject", response_model=Booking)
def reject_booking(booking_id: str, body: RejectRequest) -> Booking:
    try:
        return transitions.reject(booking_id, body.reason)
    except BookingError as exc:
        raise _http_error(exc) from exc


@app.post("/bookings/{booking_id}/cancel", response_model=Booking)
def cancel_booking(booking_id: str, body: CancelRequest | None = None) -> Booking:
    actor_id = body.actor_id if body else None
    try:
        return transitions.cancel(booking_id, actor_id)
    except BookingError as exc:
        raise _http_error(exc) from exc


@app.post(
    "/bookings/{booking_id}/reschedule",
    response_model=Booking,
    responses={409: {"model": ConflictInfo}},
)
def reschedule_booking(booking_id: str, body: RescheduleRequest):
    """Move a pending booking; its own current slot never counts as a conflict."""
    try:
        result = admission.reschedule(booking_id, body.start_time, body.end_time)
    except BookingError as exc:
        raise _http_error(exc) from exc
    return _admission_response(result)


@app.post("/bookings/{booking_id}/purpose", response_model=Booking)
def amend_booking_purpose(booking_id: str, body: AmendPurposeRequest) -> Booking:
    try:
        return transitions.amend_purpose(booking_id, body.purpose)
    except BookingError as exc:
        raise _http_error(exc) from exc


@app.get("/notifications", response_model=list[Notification])
def list_notifications(user_id: str) -> list[Notification]:
    return notification_repo.list_for_user(user_id)
