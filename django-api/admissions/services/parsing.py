"""Turn raw request values into value objects, raising domain errors on bad input."""

from typing import Any

from admissions.domain.errors import (
    InvalidCapacityError,
    InvalidEventIdError,
    InvalidQuantityError,
    InvalidRegistrationIdError,
    InvalidTicketCodeError,
    InvalidTicketIdError,
    InvalidUserIdError,
)
from admissions.domain.value_objects import (
    Capacity,
    EventId,
    Quantity,
    RegistrationId,
    TicketCode,
    TicketId,
    UserId,
)


def parse_event_id(raw: Any) -> EventId:
    try:
        return EventId.from_string(raw)
    except (TypeError, ValueError):
        raise InvalidEventIdError() from None


def parse_registration_id(raw: Any) -> RegistrationId:
    try:
        return RegistrationId.from_string(raw)
    except (TypeError, ValueError):
        raise InvalidRegistrationIdError() from None


def parse_ticket_id(raw: Any) -> TicketId:
    try:
        return TicketId.from_string(raw)
    except (TypeError, ValueError):
        raise InvalidTicketIdError() from None


def parse_ticket_code(raw: Any) -> TicketCode:
    if not isinstance(raw, str):
        raise InvalidTicketCodeError()
    try:
        return TicketCode(raw.strip())
    except ValueError:
        raise InvalidTicketCodeError() from None


def parse_user_id(raw: Any) -> UserId:
    if isinstance(raw, bool):
        raise InvalidUserIdError()
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        raise InvalidUserIdError() from None
    if value < 1:
        raise InvalidUserIdError()
    return UserId(value)

def parse_quantity(raw: Any) -> Quantity:
    try:
        return Quantity.parse(raw)
    except (TypeError, ValueError):
        raise InvalidQuantityError() from None


def parse_capacity(raw: Any) -> Capacity:
    try:
        return Capacity.parse(raw)
    except (TypeError, ValueError):
        raise InvalidCapacityError() from None
