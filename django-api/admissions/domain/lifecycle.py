"""Allowed status transitions for registrations and tickets.

Registration: CONFIRMED | WAITLISTED on creation, WAITLISTED -> CONFIRMED
(promotion only), WAITLISTED | CONFIRMED -> CANCELLED. CANCELLED is terminal.

Ticket: VALID -> USED | CANCELLED. Both targets are terminal.
"""

from admissions.domain.errors import (
    AlreadyCancelledError,
    InvalidTransitionError,
    TicketAlreadyCancelledError,
    TicketAlreadyUsedError,
)
from admissions.domain.models import (
    RegistrationStatus,
    Ticket,
    TicketStatus,
)

REGISTRATION_TRANSITIONS: dict[RegistrationStatus, frozenset[RegistrationStatus]] = {
    RegistrationStatus.WAITLISTED: frozenset(
        {RegistrationStatus.CONFIRMED, RegistrationStatus.CANCELLED}
    ),
    RegistrationStatus.CONFIRMED: frozenset({RegistrationStatus.CANCELLED}),
    RegistrationStatus.CANCELLED: frozenset(),
}

TICKET_TRANSITIONS: dict[TicketStatus, frozenset[TicketStatus]] = {
    TicketStatus.VALID: frozenset({TicketStatus.USED, TicketStatus.CANCELLED}),
    TicketStatus.USED: frozenset(),
    TicketStatus.CANCELLED: frozenset(),
}


def ensure_registration_transition(
    current: RegistrationStatus, target: RegistrationStatus
) -> None:
    if target in REGISTRATION_TRANSITIONS[current]:
        return
    if current is RegistrationStatus.CANCELLED and target is RegistrationStatus.CANCELLED:
        raise AlreadyCancelledError()
    raise InvalidTransitionError(current.value, target.value)


def ensure_ticket_transition(ticket: Ticket, target: TicketStatus) -> None:
    """Raise the error a caller should see when `ticket` cannot move to `target`."""
    if target in TICKET_TRANSITIONS[ticket.status]:
        return
    if ticket.status is TicketStatus.USED:
        raise TicketAlreadyUsedError(ticket.scanned_at, ticket.scanned_by)
    if ticket.status is TicketStatus.CANCELLED:
        raise TicketAlreadyCancelledError()
    raise InvalidTransitionError(ticket.status.value, target.value)
