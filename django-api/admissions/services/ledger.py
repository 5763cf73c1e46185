"""Capacity ledger: the remaining-seat counter of an event.

All changes are atomic deltas applied by the store; callers never write a
capacity they computed from a value they read earlier, except through `set`.
"""

import logging

from admissions.domain.value_objects import Capacity, EventId
from admissions.stores.interfaces import EventStore

logger = logging.getLogger(__name__)


class CapacityLedger:
    def __init__(self, events: EventStore) -> None:
        self._events = events

    def reserve(self, event_id: EventId, seats: int) -> bool:
        """Take `seats` if that many remain. Returns False and changes nothing otherwise."""
        if seats < 1:
            raise ValueError("Seats to reserve must be positive")
        reserved = self._events.reserve_seats(event_id, seats)
        logger.debug(
            "Reserve %d seat(s) on event %s: %s", seats, event_id, "ok" if reserved else "refused"
        )
        return reserved

    def release(self, event_id: EventId, seats: int) -> None:
        if seats <= 0:
            return
        self._events.release_seats(event_id, seats)
        logger.debug("Released %d seat(s) on event %s", seats, event_id)

    def set(self, event_id: EventId, capacity: Capacity) -> None:
        self._events.set_capacity(event_id, capacity)
        logger.info("Capacity of event %s set to %d", event_id, capacity.value)
