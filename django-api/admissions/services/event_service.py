"""Event administration: inspection, capacity adjustment, cancel and delete."""

import logging
from typing import Any

from admissions.domain.errors import EventNotFoundError, InvalidTransitionError
from admissions.domain.models import (
    Actor,
    Event,
    EventRemoval,
    EventStatus,
    Registration,
    RegistrationStatus,
    WaitlistSlot,
)
from admissions.domain.value_objects import EventId
from admissions.gateways.interfaces import IdentityDirectory
from admissions.services.followup_service import FollowUpScheduler
from admissions.services.ledger import CapacityLedger
from admissions.services.parsing import parse_capacity, parse_event_id
from admissions.services.permissions import ensure_admin, ensure_event_staff
from admissions.stores.interfaces import (
    EventStore,
    RegistrationStore,
    TicketStore,
    TransactionCoordinator,
)

logger = logging.getLogger(__name__)


class EventService:
    """Service for event-level operations."""

    def __init__(
        self,
        transactions: TransactionCoordinator,
        events: EventStore,
        registrations: RegistrationStore,
        tickets: TicketStore,
        ledger: CapacityLedger,
        scheduler: FollowUpScheduler,
        identity: IdentityDirectory,
    ) -> None:
        self._transactions = transactions
        self._events = events
        self._registrations = registrations
        self._tickets = tickets
        self._ledger = ledger
        self._scheduler = scheduler
        self._identity = identity

    def get_event(self, event_id: Any) -> Event:
        """Return an event by ID.

        Raises:
            InvalidEventIdError: If the event_id is not a valid UUID.
            EventNotFoundError: If the event does not exist.
        """
        eid = parse_event_id(event_id)
        event = self._events.get_event(eid)
        if event is None:
            raise EventNotFoundError(str(eid))
        return event

    def get_waitlist(self, actor: Actor, event_id: Any) -> list[WaitlistSlot]:
        event = self.get_event(event_id)
        ensure_event_staff(actor, self._identity, event.id)
        return self._events.load_waitlist(event.id)

    def list_registrations(self, actor: Actor, event_id: Any) -> list[Registration]:
        event = self.get_event(event_id)
        ensure_event_staff(actor, self._identity, event.id)
        return self._registrations.list_for_event(event.id)

    def adjust_capacity(self, actor: Actor, event_id: Any, capacity: Any) -> Event:
        """Set the remaining capacity. Raising it triggers promotion after commit."""
        ensure_admin(actor)
        eid = parse_event_id(event_id)
        new_capacity = parse_capacity(capacity)

        def adjust() -> Event:
            event = self._locked(eid)
            self._ledger.set(eid, new_capacity)
            if new_capacity.value > event.capacity.value:
                self._scheduler.promote_waitlist(eid)
            return self._events.get_event(eid)

        return self._transactions.execute(adjust)

    def cancel_event(self, actor: Actor, event_id: Any) -> Event:
        """Cancel an event with every active registration on it. Nobody is promoted."""
        ensure_admin(actor)
        eid = parse_event_id(event_id)

        def cancel() -> tuple[Event, int, int]:
            event = self._locked(eid)
            if event.status is EventStatus.CANCELLED:
                raise InvalidTransitionError(event.status.value, EventStatus.CANCELLED.value)

            cancelled = released = 0
            for registration in self._registrations.list_for_event(eid):
                if registration.status is RegistrationStatus.CANCELLED:
                    continue
                released += registration.seats_held
                self._tickets.delete_for_registration(registration.id)
                if registration.tickets_issued:
                    self._registrations.adjust_tickets_issued(
                        registration.id, -registration.tickets_issued
                    )
                self._registrations.set_status(registration.id, RegistrationStatus.CANCELLED)
                cancelled += 1

            self._ledger.release(eid, released)
            self._events.clear_waitlist(eid)
            self._events.clear_registered_users(eid)
            self._events.set_status(eid, EventStatus.CANCELLED)
            return self._events.get_event(eid), cancelled, released

        event, cancelled, released = self._transactions.execute(cancel)
        logger.info(
            "Event %s cancelled: %d registration(s) cancelled, %d seat(s) released",
            eid,
            cancelled,
            released,
        )
        return event

    def delete_event(self, actor: Actor, event_id: Any) -> EventRemoval:
        ensure_admin(actor)
        eid = parse_event_id(event_id)

        def delete() -> EventRemoval:
            self._locked(eid)
            return self._events.delete_event(eid)

        removal = self._transactions.execute(delete)
        logger.info(
            "Event %s deleted with %d registration(s) and %d ticket(s)",
            eid,
            removal.registrations,
            removal.tickets,
        )
        return removal

    def _locked(self, event_id: EventId) -> Event:
        event = self._events.lock_event(event_id)
        if event is None:
            raise EventNotFoundError(str(event_id))
        return event
