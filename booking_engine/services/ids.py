"""Booking identifier generation."""

from __future__ import annotations

import itertools
import threading
import uuid
from typing import Callable

# Any zero-argument callable returning a fresh, unique opaque string.
IdGenerator = Callable[[], str]


def uuid_ids() -> str:
    return str(uuid.uuid4())


class SequentialIds:
    """Predictable ids (``<prefix>-1``, ``<prefix>-2``, ...), safe across threads."""

    def __init__(self, prefix: str = "booking") -> None:
        self._prefix = prefix
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            return f"{self._prefix}-{next(self._counter)}"
