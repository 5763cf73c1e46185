"""Registration state machine.

Services:
- Depend only on interfaces (stores, gateways)
- Validate input and raise domain errors before opening a transaction
- Lock the event row first, then the registration, inside the transaction
- Record post-commit work on the follow-up queue, never perform it inline
"""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from django.utils import timezone

from admissions.domain.errors import (
    AlreadyCancelledError,
    AlreadyRegisteredError,
    EventClosedError,
    EventFullError,
    EventNotFoundError,
    OrganizationSuspendedError,
    RegistrationCancelledError,
    RegistrationNotFoundError,
)
from admissions.domain.lifecycle import ensure_registration_transition
from admissions.domain.models import (
    Actor,
    Cancellation,
    Event,
    EventStatus,
    Notice,
    QuantityChange,
    Registration,
    RegistrationStatus,
)
from admissions.domain.value_objects import RegistrationId
from admissions.gateways.interfaces import IdentityDirectory, NotificationDispatcher
from admissions.services.followup_service import FollowUpScheduler
from admissions.services.ledger import CapacityLedger
from admissions.services.parsing import (
    parse_event_id,
    parse_quantity,
    parse_registration_id,
    parse_user_id,
)
from admissions.services.permissions import (
    ensure_admin,
    ensure_can_view,
    ensure_owner_or_admin,
)
from admissions.services.ticket_service import TicketService
from admissions.stores.interfaces import (
    EventStore,
    RegistrationStore,
    TicketStore,
    TransactionCoordinator,
)

logger = logging.getLogger(__name__)


class RegistrationService:
    """Admission, quantity changes, cancellation and administrative delete."""

    def __init__(
        self,
        transactions: TransactionCoordinator,
        events: EventStore,
        registrations: RegistrationStore,
        tickets: TicketStore,
        ledger: CapacityLedger,
        issuer: TicketService,
        scheduler: FollowUpScheduler,
        identity: IdentityDirectory,
        notifier: NotificationDispatcher,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._transactions = transactions
        self._events = events
        self._registrations = registrations
        self._tickets = tickets
        self._ledger = ledger
        self._issuer = issuer
        self._scheduler = scheduler
        self._identity = identity
        self._notifier = notifier
        self._now = clock

    def register(self, actor: Actor, event_id: Any, quantity: Any = 1) -> Registration:
        """Admit the actor to an event, or waitlist them when it is full.

        Admission is all-or-nothing: either every requested seat is confirmed
        with its tickets, or the whole request goes to the waitlist tail.

        Raises:
            InvalidEventIdError: If the event_id is not a valid UUID.
            InvalidQuantityError: If quantity is not an integer >= 1.
            EventNotFoundError: If the event does not exist.
            OrganizationSuspendedError: If the organizing organization is suspended.
            EventClosedError: If the event is not upcoming or has ended.
            AlreadyRegisteredError: If the actor holds an active registration.
        """
        eid = parse_event_id(event_id)
        requested = parse_quantity(quantity)

        event = self._events.get_event(eid)
        if event is None:
            raise EventNotFoundError(str(eid))
        self._ensure_accepting(event)
        if self._registrations.find_active(actor.user_id, eid) is not None:
            raise AlreadyRegisteredError()

        def admit() -> Registration:
            locked = self._events.lock_event(eid)
            if locked is None:
                raise EventNotFoundError(str(eid))
            self._ensure_accepting(locked)

            if self._ledger.reserve(eid, requested.value):
                registration = self._registrations.create(
                    actor.user_id, eid, requested, RegistrationStatus.CONFIRMED
                )
                self._events.add_registered_user(eid, actor.user_id)
                tickets = self._issuer.issue(registration.id, requested.value)
                self._scheduler.render_qr(ticket.id for ticket in tickets)
                self._scheduler.notify(registration.id, Notice.CONFIRMED)
            else:
                registration = self._registrations.create(
                    actor.user_id, eid, requested, RegistrationStatus.WAITLISTED
                )
                self._events.append_to_waitlist(eid, registration.id)
                self._scheduler.notify(registration.id, Notice.WAITLISTED)
            return self._registrations.get(registration.id)

        registration = self._transactions.execute(admit)
        logger.info(
            "Registration %s for event %s: %s (%d seat(s))",
            registration.registration_number,
            eid,
            registration.status.value,
            registration.quantity.value,
        )
        return registration

    def get_registration(self, actor: Actor, registration_ref: str) -> Registration:
        registration = self._issuer.find_registration(registration_ref)
        ensure_can_view(actor, self._identity, registration.user_id, registration.event_id)
        return registration

    def list_for_user(self, actor: Actor, user_id: Any) -> list[Registration]:
        uid = parse_user_id(user_id)
        ensure_owner_or_admin(actor, uid)
        return self._registrations.list_for_user(uid)

    def update_quantity(
        self, actor: Actor, registration_id: Any, quantity: Any
    ) -> QuantityChange:
        """Change the number of seats a registration holds.

        Growing a confirmed registration takes seats or fails with FULL.
        Shrinking releases seats and deletes the most recent unused tickets.
        A waitlisted registration changes without touching capacity.
        """
        rid = parse_registration_id(registration_id)
        new_quantity = parse_quantity(quantity)
        current = self._get(rid)
        ensure_owner_or_admin(actor, current.user_id)
        if current.status is RegistrationStatus.CANCELLED:
            raise RegistrationCancelledError()

        def change() -> QuantityChange:
            self._events.lock_event(current.event_id)
            registration = self._registrations.lock(rid)
            if registration is None:
                raise RegistrationNotFoundError(str(rid))
            if registration.status is RegistrationStatus.CANCELLED:
                raise RegistrationCancelledError()

            delta = new_quantity.value - registration.quantity.value
            deleted = 0
            if delta == 0:
                pass
            elif registration.status is RegistrationStatus.WAITLISTED:
                self._registrations.set_quantity(rid, new_quantity)
            elif delta > 0:
                if not self._ledger.reserve(registration.event_id, delta):
                    raise EventFullError(delta)
                self._registrations.set_quantity(rid, new_quantity)
                tickets = self._issuer.issue(rid, delta)
                self._scheduler.render_qr(ticket.id for ticket in tickets)
            else:
                excess = registration.tickets_issued - new_quantity.value
                deleted = self._issuer.remove_trailing(registration, excess)
                self._registrations.set_quantity(rid, new_quantity)
                self._ledger.release(registration.event_id, -delta)
                self._scheduler.promote_waitlist(registration.event_id)

            event = self._events.get_event(registration.event_id)
            return QuantityChange(
                registration=self._registrations.get(rid),
                deleted_tickets=deleted,
                event_capacity=event.capacity.value,
            )

        result = self._transactions.execute(change)
        logger.info(
            "Registration %s quantity %d -> %d",
            current.registration_number,
            current.quantity.value,
            new_quantity.value,
        )
        return result

    def cancel(self, actor: Actor, registration_id: Any) -> Cancellation:
        """Cancel a registration, releasing its seats and deleting its tickets."""
        rid = parse_registration_id(registration_id)
        current = self._get(rid)
        ensure_owner_or_admin(actor, current.user_id)
        if current.status is RegistrationStatus.CANCELLED:
            raise AlreadyCancelledError()

        def cancel() -> Cancellation:
            self._events.lock_event(current.event_id)
            registration = self._registrations.lock(rid)
            if registration is None:
                raise RegistrationNotFoundError(str(rid))
            ensure_registration_transition(registration.status, RegistrationStatus.CANCELLED)

            released = self._release_hold(registration)
            deleted = self._tickets.delete_for_registration(rid)
            if registration.tickets_issued:
                self._registrations.adjust_tickets_issued(rid, -registration.tickets_issued)
            self._registrations.set_status(rid, RegistrationStatus.CANCELLED)
            self._scheduler.promote_waitlist(registration.event_id)
            return Cancellation(
                registration=self._registrations.get(rid),
                deleted_tickets=deleted,
                released_seats=released,
            )

        result = self._transactions.execute(cancel)
        logger.info(
            "Registration %s cancelled, %d seat(s) released",
            current.registration_number,
            result.released_seats,
        )
        return result

    def delete(self, actor: Actor, registration_id: Any) -> Cancellation:
        """Hard-delete a registration (admin only). Returns what was removed."""
        ensure_admin(actor)
        rid = parse_registration_id(registration_id)
        current = self._get(rid)

        def delete() -> Cancellation:
            self._events.lock_event(current.event_id)
            registration = self._registrations.lock(rid)
            if registration is None:
                raise RegistrationNotFoundError(str(rid))

            released = self._release_hold(registration)
            deleted = self._tickets.delete_for_registration(rid)
            self._registrations.delete(rid)
            self._scheduler.promote_waitlist(registration.event_id)
            return Cancellation(
                registration=registration, deleted_tickets=deleted, released_seats=released
            )

        result = self._transactions.execute(delete)
        logger.info(
            "Registration %s deleted by %s, %d seat(s) released",
            current.registration_number,
            actor.user_id,
            result.released_seats,
        )
        return result

    def deliver_notice(self, registration_id: RegistrationId, notice: Notice) -> bool:
        """Send a registrant notice. Returns False when there is nobody to send to."""
        registration = self._registrations.get(registration_id)
        if registration is None:
            logger.info("Skipping %s notice: registration %s is gone", notice.value, registration_id)
            return False
        contact = self._identity.contact_for(registration.user_id)
        if contact is None:
            logger.info(
                "Skipping %s notice for %s: no contact address",
                notice.value,
                registration.registration_number,
            )
            return False
        self._notifier.send(contact, notice, registration)
        return True

    def _release_hold(self, registration: Registration) -> int:
        """Undo what a registration holds on its event. Returns seats released."""
        if registration.status is RegistrationStatus.CONFIRMED:
            seats = registration.quantity.value
            self._ledger.release(registration.event_id, seats)
            self._events.remove_registered_user(registration.event_id, registration.user_id)
            return seats
        if registration.status is RegistrationStatus.WAITLISTED:
            self._events.remove_from_waitlist(registration.id)
        return 0

    def _ensure_accepting(self, event: Event) -> None:
        if self._identity.is_organization_suspended(event.organization_id):
            raise OrganizationSuspendedError()
        if event.status is not EventStatus.UPCOMING:
            raise EventClosedError("Event is not open for registration")
        if event.has_ended(self._now()):
            raise EventClosedError("Event has already ended")

    def _get(self, registration_id: RegistrationId) -> Registration:
        registration = self._registrations.get(registration_id)
        if registration is None:
            raise RegistrationNotFoundError(str(registration_id))
        return registration
