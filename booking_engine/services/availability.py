"""Service for suggesting free slots when a requested interval is taken."""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone, tzinfo

from dateutil import tz
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from booking_engine.config import Settings
from booking_engine.domain.models import Booking, TimeSlot, as_utc
from booking_engine.repos.memory import BookingRepository

DEFAULT_MAX_RESULTS = 3


class OperatingWindow(BaseModel):
    """Daily span, in one fixed timezone, inside which alternatives are searched."""

    model_config = ConfigDict(frozen=True)

    day_start: time = time(8, 0)
    day_end: time = time(20, 0)
    timezone: str = "UTC"

    @field_validator("timezone")
    @classmethod
    def _known_zone(cls, value: str) -> str:
        if tz.gettz(value) is None:
            raise ValueError(f"unknown timezone: {value}")
        return value

    @model_validator(mode="after")
    def _ordered(self) -> OperatingWindow:
        if self.day_start >= self.day_end:
            raise ValueError("day_start must be before day_end")
        return self

    @classmethod
    def from_settings(cls, settings: Settings) -> OperatingWindow:
        return cls(
            day_start=settings.DAY_START,
            day_end=settings.DAY_END,
            timezone=settings.TIMEZONE,
        )

    @property
    def zone(self) -> tzinfo:
        return tz.gettz(self.timezone)

    def bounds(self, reference: datetime) -> tuple[datetime, datetime]:
        """Return ``[dayStart, dayEnd)`` in UTC for the local calendar day containing ``reference``."""
        zone = self.zone
        day = as_utc(reference).astimezone(zone).date()
        start = datetime.combine(day, self.day_start, tzinfo=zone)
        end = datetime.combine(day, self.day_end, tzinfo=zone)
        return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def find_free_slots(
    bookings: list[Booking],
    duration: timedelta,
    window_start: datetime,
    window_end: datetime,
    max_results: int = DEFAULT_MAX_RESULTS,
) -> list[TimeSlot]:
    """Sweep active bookings in start order and report the first free gaps.

    Each candidate begins where the previous booking (or the window) ends
    and lasts exactly ``duration``. Bookings that began before the window
    still push the cursor forward, so an interval straddling ``window_start``
    is never offered.
    """
    if duration <= timedelta(0) or max_results <= 0:
        return []

    blocking = sorted(
        (
            b
            for b in bookings
            if b.is_active and b.overlaps(window_start, window_end)
        ),
        key=lambda b: (b.start_time, b.id),
    )

    slots: list[TimeSlot] = []
    cursor = window_start
    for booking in blocking:
        if booking.start_time - cursor >= duration:
            slots.append(TimeSlot(start=cursor, end=cursor + duration))
            if len(slots) == max_results:
                return slots
        cursor = max(cursor, booking.end_time)

    if window_end - cursor >= duration:
        slots.append(TimeSlot(start=cursor, end=cursor + duration))
    return slots[:max_results]


def find_alternatives(
    repo: BookingRepository,
    resource_id: str,
    duration: timedelta,
    reference_day: datetime,
    window: OperatingWindow,
    max_results: int = DEFAULT_MAX_RESULTS,
    exclude_booking_id: str | None = None,
) -> list[TimeSlot]:
    """Suggest up to ``max_results`` free intervals of ``duration`` on the day of ``reference_day``.

    ``exclude_booking_id`` leaves a booking out of the sweep, so a booking
    being moved does not block its own current slot.
    An empty list means nothing fits; it is a normal outcome, not an error.
    """
    window_start, window_end = window.bounds(reference_day)
    bookings = [
        b for b in repo.list_active(resource_id) if b.id != exclude_booking_id
    ]
    return find_free_slots(
        bookings,
        duration,
        window_start,
        window_end,
        max_results=max_results,
    )
