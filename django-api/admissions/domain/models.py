"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in admissions/models.py (persistence layer).
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from admissions.domain.value_objects import (
    Capacity,
    EventId,
    FollowUpTaskId,
    OrganizationId,
    Quantity,
    RegistrationId,
    RegistrationNumber,
    TicketCode,
    TicketId,
    UserId,
)


class EventStatus(Enum):
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RegistrationStatus(Enum):
    CONFIRMED = "CONFIRMED"
    WAITLISTED = "WAITLISTED"
    CANCELLED = "CANCELLED"


class TicketStatus(Enum):
    VALID = "VALID"
    USED = "USED"
    CANCELLED = "CANCELLED"


class FollowUpStatus(Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    DONE = "DONE"
    FAILED = "FAILED"


class FollowUpKind(Enum):
    PROMOTE_WAITLIST = "promote_waitlist"
    RENDER_TICKET_QR = "render_ticket_qr"
    NOTIFY_REGISTRATION = "notify_registration"


class Notice(Enum):
    """Kinds of registrant notifications."""

    CONFIRMED = "confirmed"
    WAITLISTED = "waitlisted"
    PROMOTED = "promoted"


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, as resolved by the identity directory."""

    user_id: UserId
    is_admin: bool = False


@dataclass(frozen=True)
class Contact:
    name: str
    email: str


@dataclass(frozen=True)
class Event:
    """Domain representation of an Event."""

    id: EventId
    organization_id: OrganizationId
    title: str
    starts_at: datetime
    ends_at: datetime
    capacity: Capacity
    status: EventStatus
    registered_user_ids: frozenset[UserId] = frozenset()
    waitlist: tuple[RegistrationId, ...] = ()

    def has_ended(self, now: datetime) -> bool:
        return self.ends_at < now


@dataclass(frozen=True)
class Registration:
    """Domain representation of a Registration."""

    id: RegistrationId
    registration_number: RegistrationNumber
    user_id: UserId
    event_id: EventId
    quantity: Quantity
    status: RegistrationStatus
    tickets_issued: int
    created_at: datetime
    updated_at: datetime
    ticket_ids: tuple[TicketId, ...] = ()

    @property
    def seats_held(self) -> int:
        """Seats this registration currently holds in the capacity ledger."""
        if self.status is RegistrationStatus.CONFIRMED:
            return self.quantity.value
        return 0

    def is_owned_by(self, user_id: UserId) -> bool:
        return self.user_id == user_id


@dataclass(frozen=True)
class Ticket:
    """Domain representation of a Ticket."""

    id: TicketId
    code: TicketCode
    registration_id: RegistrationId
    event_id: EventId
    user_id: UserId
    status: TicketStatus
    sequence: int
    created_at: datetime
    qr_data_url: str | None = None
    qr_expires_at: datetime | None = None
    scanned_at: datetime | None = None
    scanned_by: str = ""

    def qr_expired(self, now: datetime) -> bool:
        return self.qr_expires_at is not None and self.qr_expires_at < now


@dataclass(frozen=True)
class WaitlistSlot:
    """One waitlist position: the registration and the seats it is waiting for."""

    registration_id: RegistrationId
    user_id: UserId
    quantity: int


@dataclass(frozen=True)
class Promotion:
    """A waitlisted registration confirmed by the promotion engine."""

    registration_id: RegistrationId
    user_id: UserId
    quantity: int


@dataclass(frozen=True)
class QuantityChange:
    registration: Registration
    deleted_tickets: int
    event_capacity: int


@dataclass(frozen=True)
class Cancellation:
    registration: Registration
    deleted_tickets: int
    released_seats: int


@dataclass(frozen=True)
class EventRemoval:
    event_id: EventId
    registrations: int
    tickets: int


@dataclass(frozen=True)
class FollowUpTask:
    id: FollowUpTaskId
    kind: FollowUpKind
    status: FollowUpStatus
    attempts: int
    payload: dict[str, Any] = field(default_factory=dict)
    last_error: str = ""
