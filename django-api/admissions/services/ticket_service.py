"""Ticket issuance and the ticket lifecycle.

Tickets exist 1:1 with confirmed seats. `issue` runs inside the caller's
transaction; every other public method opens its own through the
TransactionCoordinator. A ticket's `code` is the only value handed to scanners.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import datetime
from typing import Any

from django.utils import timezone

from admissions.conf import admissions_setting
from admissions.domain.errors import (
    AlreadyIssuedError,
    EventClosedError,
    EventNotFoundError,
    QrExpiredError,
    QuantityExceedsError,
    RegistrationCancelledError,
    RegistrationNotFoundError,
    RegistrationWaitlistedError,
    TicketAlreadyUsedError,
    TicketCancelledError,
    TicketNotFoundError,
    TicketsInUseError,
)
from admissions.domain.lifecycle import ensure_ticket_transition
from admissions.domain.models import (
    Actor,
    EventStatus,
    Registration,
    RegistrationStatus,
    Ticket,
    TicketStatus,
)
from admissions.domain.value_objects import (
    Quantity,
    RegistrationId,
    RegistrationNumber,
    TicketId,
)
from admissions.gateways.interfaces import IdentityDirectory, QrRenderer
from admissions.services.followup_service import FollowUpScheduler
from admissions.services.ledger import CapacityLedger
from admissions.services.parsing import (
    parse_event_id,
    parse_quantity,
    parse_registration_id,
    parse_ticket_code,
    parse_ticket_id,
    parse_user_id,
)
from admissions.services.permissions import (
    ensure_admin,
    ensure_can_view,
    ensure_event_staff,
    ensure_owner_or_admin,
)
from admissions.stores.interfaces import (
    EventStore,
    RegistrationStore,
    TicketStore,
    TransactionCoordinator,
)

logger = logging.getLogger(__name__)


class TicketService:
    """Service for issuing, cancelling and admitting tickets."""

    def __init__(
        self,
        transactions: TransactionCoordinator,
        events: EventStore,
        registrations: RegistrationStore,
        tickets: TicketStore,
        ledger: CapacityLedger,
        scheduler: FollowUpScheduler,
        identity: IdentityDirectory,
        qr_renderer: QrRenderer,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._transactions = transactions
        self._events = events
        self._registrations = registrations
        self._tickets = tickets
        self._ledger = ledger
        self._scheduler = scheduler
        self._identity = identity
        self._qr = qr_renderer
        self._now = clock

    # Issuance (runs inside the caller's transaction)

    def issue(self, registration_id: RegistrationId, count: int) -> list[Ticket]:
        """Create `count` tickets for a confirmed registration.

        Raises:
            AlreadyIssuedError: If every seat already has a ticket.
            QuantityExceedsError: If `count` more tickets would exceed the quantity.
        """
        registration = self._registrations.lock(registration_id)
        if registration is None:
            raise RegistrationNotFoundError(str(registration_id))
        if registration.tickets_issued >= registration.quantity.value:
            raise AlreadyIssuedError()
        if count < 1 or registration.tickets_issued + count > registration.quantity.value:
            raise QuantityExceedsError()

        tickets = self._tickets.create_many(registration, count)
        self._registrations.adjust_tickets_issued(registration_id, count)
        return tickets

    def remove_trailing(self, registration: Registration, count: int) -> int:
        """Delete the `count` most recently issued VALID tickets of a registration."""
        if count <= 0:
            return 0
        valid = [
            ticket
            for ticket in self._tickets.list_for_registration(registration.id)
            if ticket.status is TicketStatus.VALID
        ]
        if len(valid) < count:
            raise TicketsInUseError()
        deleted = self._tickets.delete([ticket.id for ticket in valid[-count:]])
        self._registrations.adjust_tickets_issued(registration.id, -count)
        return deleted

    def create_tickets(
        self, actor: Actor, registration_ref: str, quantity: Any = None
    ) -> list[Ticket]:
        """Issue tickets for a confirmed registration referenced by ID or REG- number.

        Without a quantity, every seat still lacking a ticket gets one.
        """
        requested = None if quantity is None else parse_quantity(quantity)
        registration = self.find_registration(registration_ref)
        ensure_owner_or_admin(actor, registration.user_id)
        self._ensure_ticketable(registration)

        event = self._events.get_event(registration.event_id)
        if event is None:
            raise EventNotFoundError(str(registration.event_id))
        if event.status in (EventStatus.CANCELLED, EventStatus.COMPLETED) or event.has_ended(
            self._now()
        ):
            raise EventClosedError("Event is no longer active")

        def create() -> list[Ticket]:
            self._events.lock_event(registration.event_id)
            locked = self._registrations.lock(registration.id)
            if locked is None:
                raise RegistrationNotFoundError(str(registration.id))
            self._ensure_ticketable(locked)
            count = (
                requested.value
                if requested is not None
                else locked.quantity.value - locked.tickets_issued
            )
            tickets = self.issue(locked.id, count)
            self._scheduler.render_qr(ticket.id for ticket in tickets)
            return tickets

        tickets = self._transactions.execute(create)
        logger.info(
            "Issued %d ticket(s) for registration %s",
            len(tickets),
            registration.registration_number,
        )
        return tickets

    def find_registration(self, registration_ref: str) -> Registration:
        ref = str(registration_ref or "").strip()
        if RegistrationNumber.looks_like(ref):
            try:
                number = RegistrationNumber(ref.upper())
            except ValueError:
                raise RegistrationNotFoundError(ref) from None
            registration = self._registrations.get_by_number(number)
        else:
            registration = self._registrations.get(parse_registration_id(ref))
        if registration is None:
            raise RegistrationNotFoundError(ref)
        return registration

    def get_ticket(self, actor: Actor, ticket_id: str) -> Ticket:
        ticket = self._get(ticket_id)
        ensure_can_view(actor, self._identity, ticket.user_id, ticket.event_id)
        return ticket

    def list_for_user(self, actor: Actor, user_id: Any) -> list[Ticket]:
        uid = parse_user_id(user_id)
        ensure_owner_or_admin(actor, uid)
        return self._tickets.list_for_user(uid)

    def list_for_event(self, actor: Actor, event_id: Any) -> list[Ticket]:
        eid = parse_event_id(event_id)
        if not self._events.event_exists(eid):
            raise EventNotFoundError(str(eid))
        ensure_event_staff(actor, self._identity, eid)
        return self._tickets.list_for_event(eid)

    def validate(self, actor: Actor, code: Any) -> Ticket:
        """Check that a scan code would admit its holder, without using the ticket.

        Raises the same errors as `scan` for used, cancelled and expired tickets.
        """
        ticket_code = parse_ticket_code(code)
        ticket = self._tickets.get_by_code(ticket_code)
        if ticket is None:
            raise TicketNotFoundError(ticket_code.value)
        ensure_event_staff(actor, self._identity, ticket.event_id)
        if ticket.status is TicketStatus.CANCELLED:
            raise TicketCancelledError()
        if ticket.status is TicketStatus.USED:
            raise TicketAlreadyUsedError(ticket.scanned_at, ticket.scanned_by)
        if ticket.qr_expired(self._now()):
            raise QrExpiredError(ticket.qr_expires_at)
        return ticket

    # Lifecycle

    def cancel_ticket(self, actor: Actor, ticket_id: str) -> Ticket:
        """Cancel a VALID ticket and give its seat back.

        The registration shrinks by the cancelled seat; cancelling its last
        seat cancels the registration.
        """
        ticket = self._get(ticket_id)
        ensure_owner_or_admin(actor, ticket.user_id)
        ensure_ticket_transition(ticket, TicketStatus.CANCELLED)

        def cancel() -> Ticket:
            self._events.lock_event(ticket.event_id)
            registration = self._registrations.lock(ticket.registration_id)
            current = self._tickets.lock(ticket.id)
            if current is None or registration is None:
                raise TicketNotFoundError(str(ticket.id))
            ensure_ticket_transition(current, TicketStatus.CANCELLED)

            self._tickets.set_status(current.id, TicketStatus.CANCELLED)
            self._registrations.adjust_tickets_issued(registration.id, -1)
            cancelled = replace(current, status=TicketStatus.CANCELLED)
            if registration.status is RegistrationStatus.CONFIRMED:
                self._ledger.release(current.event_id, 1)
                if registration.quantity.value > 1:
                    self._registrations.set_quantity(
                        registration.id, Quantity(registration.quantity.value - 1)
                    )
                else:
                    # the registration goes with its last seat, tickets included
                    self._registrations.set_status(registration.id, RegistrationStatus.CANCELLED)
                    self._events.remove_registered_user(current.event_id, current.user_id)
                    self._tickets.delete_for_registration(registration.id)
            self._scheduler.promote_waitlist(current.event_id)
            return cancelled

        cancelled = self._transactions.execute(cancel)
        logger.info("Ticket %s cancelled", cancelled.code)
        return cancelled

    def scan(self, actor: Actor, code: Any, scanned_by: str | None = None) -> Ticket:
        """Admit the holder of the ticket with this scan code."""
        ticket_code = parse_ticket_code(code)
        ticket = self._tickets.get_by_code(ticket_code)
        if ticket is None:
            raise TicketNotFoundError(ticket_code.value)
        ensure_event_staff(actor, self._identity, ticket.event_id)
        return self._use(ticket.id, scanned_by or str(actor.user_id))

    def mark_used(self, actor: Actor, ticket_id: str) -> Ticket:
        ensure_admin(actor)
        ticket = self._get(ticket_id)
        return self._use(ticket.id, str(actor.user_id))

    def _use(self, ticket_id: TicketId, scanned_by: str) -> Ticket:
        def use() -> Ticket:
            current = self._tickets.lock(ticket_id)
            if current is None:
                raise TicketNotFoundError(str(ticket_id))
            if current.status is TicketStatus.CANCELLED:
                raise TicketCancelledError()
            if current.status is TicketStatus.USED:
                logger.warning(
                    "SECURITY ALERT: ticket %s scanned again by %s; first scanned at %s by %s",
                    current.code,
                    scanned_by,
                    current.scanned_at.isoformat() if current.scanned_at else "unknown",
                    current.scanned_by or "unknown",
                )
                raise TicketAlreadyUsedError(current.scanned_at, current.scanned_by)
            now = self._now()
            if current.qr_expired(now):
                raise QrExpiredError(current.qr_expires_at)
            self._tickets.mark_used(current.id, now, scanned_by)
            return self._tickets.get(current.id)

        used = self._transactions.execute(use)
        logger.info("Ticket %s admitted by %s", used.code, scanned_by)
        return used

    # QR codes

    def regenerate_qr(self, actor: Actor, ticket_id: str) -> Ticket:
        ticket = self._get(ticket_id)
        ensure_owner_or_admin(actor, ticket.user_id)
        if ticket.status is TicketStatus.USED:
            raise TicketAlreadyUsedError(ticket.scanned_at, ticket.scanned_by)
        if ticket.status is TicketStatus.CANCELLED:
            raise TicketCancelledError()
        self._render(ticket)
        return self._tickets.get(ticket.id)

    def render_qr_codes(self, ticket_ids: Iterable[TicketId]) -> int:
        """Render missing or expired QR images. Returns how many were rendered."""
        rendered = 0
        now = self._now()
        for ticket_id in ticket_ids:
            ticket = self._tickets.get(ticket_id)
            if ticket is None or ticket.status is not TicketStatus.VALID:
                continue
            if ticket.qr_data_url and not ticket.qr_expired(now):
                continue
            self._render(ticket)
            rendered += 1
        return rendered

    def _render(self, ticket: Ticket) -> None:
        data_url = self._qr.render(ticket.code.value)
        expires_at = self._now() + admissions_setting("QR_TTL")
        self._tickets.attach_qr(ticket.id, data_url, expires_at)
        logger.debug("Rendered QR for ticket %s, valid until %s", ticket.code, expires_at)

    def _get(self, ticket_id: str) -> Ticket:
        tid = parse_ticket_id(ticket_id)
        ticket = self._tickets.get(tid)
        if ticket is None:
            raise TicketNotFoundError(str(tid))
        return ticket

    @staticmethod
    def _ensure_ticketable(registration: Registration) -> None:
        if registration.status is RegistrationStatus.WAITLISTED:
            raise RegistrationWaitlistedError()
        if registration.status is RegistrationStatus.CANCELLED:
            raise RegistrationCancelledError()
