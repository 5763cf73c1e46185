from admissions.domain.models import (
    Actor,
    Event,
    EventStatus,
    Promotion,
    Registration,
    RegistrationStatus,
    Ticket,
    TicketStatus,
    WaitlistSlot,
)
from admissions.domain.value_objects import (
    Capacity,
    EventId,
    Quantity,
    RegistrationId,
    RegistrationNumber,
    TicketCode,
    TicketId,
    UserId,
)

__all__ = [
    "Actor",
    "Event",
    "EventStatus",
    "Promotion",
    "Registration",
    "RegistrationStatus",
    "Ticket",
    "TicketStatus",
    "WaitlistSlot",
    "Capacity",
    "EventId",
    "Quantity",
    "RegistrationId",
    "RegistrationNumber",
    "TicketCode",
    "TicketId",
    "UserId",
]
