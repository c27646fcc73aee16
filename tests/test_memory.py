"""Tests for the in-memory booking store."""

from __future__ import annotations

import threading
from datetime import datetime, timezone

import pytest

from booking_engine.domain.errors import ConcurrentModification
from booking_engine.domain.models import Booking, BookingStatus, Cancelled
from booking_engine.repos.memory import BookingRepository, create_resource_repository
from booking_engine.services.ids import SequentialIds


def _at(hour: int, day: int = 1) -> datetime:
    return datetime(2025, 1, day, hour, tzinfo=timezone.utc)


def _make_booking(booking_id: str, start: datetime, end: datetime, **overrides) -> Booking:
    defaults = dict(
        id=booking_id,
        resource_id="hall-1",
        requester_id="u-1",
        requester_name="Asha",
        start_time=start,
        end_time=end,
        purpose="Practice",
    )
    defaults.update(overrides)
    return Booking(**defaults)


def test_store_refuses_overlapping_active_insert():
    repo = BookingRepository()
    repo.add(_make_booking("a", _at(10), _at(11)))

    with pytest.raises(ConcurrentModification):
        repo.add(_make_booking("b", _at(10), _at(12)))
    assert [b.id for b in repo.list_all()] == ["a"]


def test_store_accepts_inactive_overlap():
    repo = BookingRepository()
    repo.add(_make_booking("a", _at(10), _at(11)))
    repo.add(_make_booking("b", _at(10), _at(11), state=Cancelled()))
    assert len(repo.list_all()) == 2
    assert [b.id for b in repo.list_active("hall-1")] == ["a"]


def test_deleted_booking_no_longer_listed():
    repo = BookingRepository()
    repo.add(_make_booking("a", _at(10), _at(11)))
    repo.delete("a")
    assert repo.list_active("hall-1") == []


def test_query_filters_and_orders():
    repo = BookingRepository()
    repo.add(_make_booking("late", _at(15), _at(16)))
    repo.add(_make_booking("early", _at(9), _at(10)))
    repo.add(_make_booking("other-day", _at(9, day=2), _at(10, day=2)))
    repo.add(_make_booking("lab", _at(9), _at(10), resource_id="lab-1"))

    results = repo.query(resource_id="hall-1", start=_at(0), end=_at(23))

    assert [b.id for b in results] == ["early", "late"]
    assert repo.query(status=BookingStatus.APPROVED) == []


def test_query_accepts_naive_bounds():
    repo = BookingRepository()
    repo.add(_make_booking("a", _at(9), _at(10)))
    assert [b.id for b in repo.query(start=datetime(2025, 1, 1, 0, 0))] == ["a"]


def test_lock_for_is_stable_per_resource():
    repo = BookingRepository()
    assert repo.lock_for("hall-1") is repo.lock_for("hall-1")
    assert repo.lock_for("hall-1") is not repo.lock_for("lab-1")


def test_sequential_ids_are_unique_across_threads():
    ids = SequentialIds(prefix="bk")
    seen = []
    lock = threading.Lock()

    def worker():
        for _ in range(50):
            value = ids()
            with lock:
                seen.append(value)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(set(seen)) == 200
    assert all(v.startswith("bk-") for v in seen)


def test_seed_catalog():
    repo = create_resource_repository()
    room = repo.get("conference-room-a")
    assert room is not None and room.auto_approve is True
    assert create_resource_repository(seed=False).list_all() == []
