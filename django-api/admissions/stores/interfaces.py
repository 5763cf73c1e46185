"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. Every method that mutates
state expects to run inside a transaction opened by the TransactionCoordinator.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any, TypeVar

from admissions.domain.models import (
    Event,
    EventRemoval,
    EventStatus,
    FollowUpKind,
    FollowUpTask,
    Registration,
    RegistrationStatus,
    Ticket,
    TicketStatus,
    WaitlistSlot,
)
from admissions.domain.value_objects import (
    Capacity,
    EventId,
    FollowUpTaskId,
    Quantity,
    RegistrationId,
    RegistrationNumber,
    TicketCode,
    TicketId,
    UserId,
)

T = TypeVar("T")


class TransactionCoordinator(ABC):
    """Runs a unit of work as one all-or-nothing transaction."""

    @abstractmethod
    def execute(self, operation: Callable[[], T]) -> T:
        """Run `operation` atomically, retrying transient conflicts.

        Domain errors raised by `operation` abort the transaction and propagate.
        """
        ...

    @abstractmethod
    def on_commit(self, callback: Callable[[], None]) -> None:
        """Run `callback` once the current transaction commits.

        The transaction is already durable by then, so a failing callback is
        logged and never raised to the caller.
        """
        ...


class EventStore(ABC):
    """Interface for event persistence, including the capacity ledger and waitlist."""

    @abstractmethod
    def get_event(self, event_id: EventId) -> Event | None:
        """Return an event by ID, or None if not found."""
        ...

    @abstractmethod
    def event_exists(self, event_id: EventId) -> bool:
        """Check if an event exists."""
        ...

    @abstractmethod
    def lock_event(self, event_id: EventId) -> Event | None:
        """Return the event with its row locked until the transaction ends."""
        ...

    @abstractmethod
    def reserve_seats(self, event_id: EventId, seats: int) -> bool:
        """Atomically take `seats` from capacity if at least that many remain."""
        ...

    @abstractmethod
    def release_seats(self, event_id: EventId, seats: int) -> None:
        """Atomically give `seats` back to capacity."""
        ...

    @abstractmethod
    def set_capacity(self, event_id: EventId, capacity: Capacity) -> None:
        ...

    @abstractmethod
    def set_status(self, event_id: EventId, status: EventStatus) -> None:
        ...

    @abstractmethod
    def add_registered_user(self, event_id: EventId, user_id: UserId) -> None:
        ...

    @abstractmethod
    def remove_registered_user(self, event_id: EventId, user_id: UserId) -> None:
        ...

    @abstractmethod
    def clear_registered_users(self, event_id: EventId) -> None:
        ...

    @abstractmethod
    def load_waitlist(self, event_id: EventId) -> list[WaitlistSlot]:
        """Return the waitlist, head first."""
        ...

    @abstractmethod
    def append_to_waitlist(self, event_id: EventId, registration_id: RegistrationId) -> None:
        ...

    @abstractmethod
    def remove_from_waitlist(self, registration_id: RegistrationId) -> None:
        ...

    @abstractmethod
    def replace_waitlist(
        self, event_id: EventId, registration_ids: Sequence[RegistrationId]
    ) -> None:
        """Make `registration_ids` the whole waitlist, in that order."""
        ...

    @abstractmethod
    def clear_waitlist(self, event_id: EventId) -> None:
        ...

    @abstractmethod
    def delete_event(self, event_id: EventId) -> EventRemoval:
        """Delete the event with its registrations and tickets."""
        ...

    @abstractmethod
    def events_awaiting_promotion(self) -> list[EventId]:
        """Return open, not yet ended events with free capacity and a non-empty waitlist."""
        ...


class RegistrationStore(ABC):
    """Interface for registration persistence operations."""

    @abstractmethod
    def get(self, registration_id: RegistrationId) -> Registration | None:
        ...

    @abstractmethod
    def get_by_number(self, number: RegistrationNumber) -> Registration | None:
        ...

    @abstractmethod
    def find_active(self, user_id: UserId, event_id: EventId) -> Registration | None:
        """Return the user's non-cancelled registration for the event, if any."""
        ...

    @abstractmethod
    def lock(self, registration_id: RegistrationId) -> Registration | None:
        ...

    @abstractmethod
    def create(
        self,
        user_id: UserId,
        event_id: EventId,
        quantity: Quantity,
        status: RegistrationStatus,
    ) -> Registration:
        """Insert a registration.

        Raises:
            AlreadyRegisteredError: If the user already holds a non-cancelled
                registration for the event.
        """
        ...

    @abstractmethod
    def set_status(self, registration_id: RegistrationId, status: RegistrationStatus) -> None:
        ...

    @abstractmethod
    def set_quantity(self, registration_id: RegistrationId, quantity: Quantity) -> None:
        ...

    @abstractmethod
    def adjust_tickets_issued(self, registration_id: RegistrationId, delta: int) -> None:
        ...

    @abstractmethod
    def list_for_event(self, event_id: EventId) -> list[Registration]:
        """Return all registrations for an event, newest first."""
        ...

    @abstractmethod
    def list_for_user(self, user_id: UserId) -> list[Registration]:
        """Return all registrations of a user, newest first."""
        ...

    @abstractmethod
    def delete(self, registration_id: RegistrationId) -> None:
        ...


class TicketStore(ABC):
    """Interface for ticket persistence operations."""

    @abstractmethod
    def get(self, ticket_id: TicketId) -> Ticket | None:
        ...

    @abstractmethod
    def get_by_code(self, code: TicketCode) -> Ticket | None:
        ...

    @abstractmethod
    def lock(self, ticket_id: TicketId) -> Ticket | None:
        ...

    @abstractmethod
    def create_many(self, registration: Registration, count: int) -> list[Ticket]:
        """Create `count` VALID tickets after the registration's last sequence."""
        ...

    @abstractmethod
    def list_for_registration(
        self, registration_id: RegistrationId, include_cancelled: bool = False
    ) -> list[Ticket]:
        """Return tickets in issue order."""
        ...

    @abstractmethod
    def list_for_user(self, user_id: UserId) -> list[Ticket]:
        ...

    @abstractmethod
    def list_for_event(self, event_id: EventId) -> list[Ticket]:
        ...

    @abstractmethod
    def delete(self, ticket_ids: Sequence[TicketId]) -> int:
        ...

    @abstractmethod
    def delete_for_registration(self, registration_id: RegistrationId) -> int:
        ...

    @abstractmethod
    def set_status(self, ticket_id: TicketId, status: TicketStatus) -> None:
        ...

    @abstractmethod
    def mark_used(self, ticket_id: TicketId, scanned_at: datetime, scanned_by: str) -> None:
        ...

    @abstractmethod
    def attach_qr(self, ticket_id: TicketId, data_url: str, expires_at: datetime) -> None:
        ...


class FollowUpStore(ABC):
    """Interface for the follow-up task outbox."""

    @abstractmethod
    def enqueue(self, kind: FollowUpKind, payload: dict[str, Any]) -> FollowUpTaskId:
        """Record a task in the current transaction."""
        ...

    @abstractmethod
    def claim(self, task_id: FollowUpTaskId) -> FollowUpTask | None:
        """Move a PENDING task to RUNNING; None if someone else has it."""
        ...

    @abstractmethod
    def pending(self, limit: int) -> list[FollowUpTaskId]:
        ...

    @abstractmethod
    def mark_done(self, task_id: FollowUpTaskId) -> None:
        ...

    @abstractmethod
    def mark_failed(self, task_id: FollowUpTaskId, error: str) -> None:
        ...

    @abstractmethod
    def requeue_failed(self) -> int:
        ...
