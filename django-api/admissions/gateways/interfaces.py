"""Interfaces for collaborators outside the admissions core.

Authentication, role lookup, mail delivery and QR rendering are consumed
through these narrow interfaces so services can be tested with doubles.
"""

from abc import ABC, abstractmethod
from typing import Any

from admissions.domain.models import Actor, Contact, Notice, Registration
from admissions.domain.value_objects import EventId, OrganizationId, UserId


class IdentityDirectory(ABC):
    """Resolves callers and their roles."""

    @abstractmethod
    def resolve(self, user: Any) -> Actor:
        """Return the Actor for an authenticated framework user."""
        ...

    @abstractmethod
    def is_event_organizer(self, user_id: UserId, event_id: EventId) -> bool:
        """True if the user owns the organization that runs the event."""
        ...

    @abstractmethod
    def is_organization_suspended(self, organization_id: OrganizationId) -> bool:
        ...

    @abstractmethod
    def contact_for(self, user_id: UserId) -> Contact | None:
        """Return where to reach a user, or None if they have no address."""
        ...


class NotificationDispatcher(ABC):
    @abstractmethod
    def send(self, contact: Contact, notice: Notice, registration: Registration) -> None:
        ...


class QrRenderer(ABC):
    @abstractmethod
    def render(self, payload: str) -> str:
        """Render `payload` as a QR image and return it as a data URL."""
        ...
