"""Synchronous in-process bus feeding booking events to the notification sink."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)


class EventBus:
    """Publish/subscribe bus for booking events.

    Handlers run synchronously, in registration order, on the publishing
    thread. Publishers call it only after a decision is final, so a failing
    handler never rolls back a booking.
    """

    def __init__(self) -> None:
        self._subscribers: dict[type, list[Callable[[Any], None]]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: Callable[[Any], None]) -> None:
        self._subscribers[event_type].append(handler)

    def publish(self, event: Any) -> int:
        """Deliver ``event`` to its handlers and return how many ran cleanly.

        A handler that raises is logged and skipped; the remaining handlers
        still run and the publisher never sees the error.
        """
        handlers = list(self._subscribers.get(type(event), []))
        logger.debug("Publishing %s to %d handler(s)", type(event).__name__, len(handlers))
        delivered = 0
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler failed for %s",
                    type(event).__name__,
                    extra={"booking_id": getattr(event, "booking_id", None)},
                )
                continue
            delivered += 1
        return delivered
