"""Domain error codes for the admissions module."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ErrorKind(Enum):
    """Error categories; handlers map each one to an HTTP status."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    FORBIDDEN = "forbidden"
    INTERNAL = "internal"


class ErrorCode(Enum):
    """Domain error codes."""

    INVALID_EVENT_ID = "INVALID_EVENT_ID"
    INVALID_REGISTRATION_ID = "INVALID_REGISTRATION_ID"
    INVALID_TICKET_ID = "INVALID_TICKET_ID"
    INVALID_TICKET_CODE = "INVALID_TICKET_CODE"
    INVALID_USER_ID = "INVALID_USER_ID"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    INVALID_CAPACITY = "INVALID_CAPACITY"
    INVALID_REQUEST = "INVALID_REQUEST"

    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    REGISTRATION_NOT_FOUND = "REGISTRATION_NOT_FOUND"
    TICKET_NOT_FOUND = "TICKET_NOT_FOUND"

    EVENT_CLOSED = "EVENT_CLOSED"
    ORG_SUSPENDED = "ORG_SUSPENDED"
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    FULL = "FULL"
    QUANTITY_EXCEEDS = "QUANTITY_EXCEEDS"
    ALREADY_ISSUED = "ALREADY_ISSUED"
    REGISTRATION_WAITLISTED = "REGISTRATION_WAITLISTED"
    REGISTRATION_CANCELLED = "REGISTRATION_CANCELLED"
    ALREADY_CANCELLED = "ALREADY_CANCELLED"
    TICKETS_IN_USE = "TICKETS_IN_USE"
    TICKET_ALREADY_USED = "TICKET_ALREADY_USED"
    TICKET_ALREADY_CANCELLED = "TICKET_ALREADY_CANCELLED"
    TICKET_CANCELLED = "TICKET_CANCELLED"
    QR_EXPIRED = "QR_EXPIRED"
    INVALID_TRANSITION = "INVALID_TRANSITION"

    FORBIDDEN = "FORBIDDEN"

    INTERNAL_ERROR = "INTERNAL_ERROR"


_KINDS: dict[ErrorCode, ErrorKind] = {
    ErrorCode.INVALID_EVENT_ID: ErrorKind.VALIDATION,
    ErrorCode.INVALID_REGISTRATION_ID: ErrorKind.VALIDATION,
    ErrorCode.INVALID_TICKET_ID: ErrorKind.VALIDATION,
    ErrorCode.INVALID_TICKET_CODE: ErrorKind.VALIDATION,
    ErrorCode.INVALID_USER_ID: ErrorKind.VALIDATION,
    ErrorCode.INVALID_QUANTITY: ErrorKind.VALIDATION,
    ErrorCode.INVALID_CAPACITY: ErrorKind.VALIDATION,
    ErrorCode.INVALID_REQUEST: ErrorKind.VALIDATION,
    ErrorCode.EVENT_NOT_FOUND: ErrorKind.NOT_FOUND,
    ErrorCode.REGISTRATION_NOT_FOUND: ErrorKind.NOT_FOUND,
    ErrorCode.TICKET_NOT_FOUND: ErrorKind.NOT_FOUND,
    ErrorCode.EVENT_CLOSED: ErrorKind.FORBIDDEN,
    ErrorCode.ORG_SUSPENDED: ErrorKind.FORBIDDEN,
    ErrorCode.TICKET_CANCELLED: ErrorKind.FORBIDDEN,
    ErrorCode.QR_EXPIRED: ErrorKind.FORBIDDEN,
    ErrorCode.FORBIDDEN: ErrorKind.FORBIDDEN,
    ErrorCode.INTERNAL_ERROR: ErrorKind.INTERNAL,
}


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    @property
    def kind(self) -> ErrorKind:
        return _KINDS.get(self.code, ErrorKind.CONFLICT)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class InvalidEventIdError(DomainError):
    """Raised when an event ID is invalid."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_EVENT_ID,
            message="Invalid event ID format",
        )


class InvalidRegistrationIdError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_REGISTRATION_ID,
            message="Invalid registration ID format",
        )


class InvalidTicketIdError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_TICKET_ID,
            message="Invalid ticket ID format",
        )


class InvalidTicketCodeError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_TICKET_CODE,
            message="Ticket code required",
        )


class InvalidUserIdError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_USER_ID,
            message="Invalid user ID format",
        )


class InvalidQuantityError(DomainError):
    """Raised when a quantity is not a positive integer."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_QUANTITY,
            message="Quantity must be a positive integer",
        )


class InvalidCapacityError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_CAPACITY,
            message="Capacity must be a non-negative integer",
        )


class InvalidRequestError(DomainError):
    """Raised when a request body is missing fields or is malformed."""

    def __init__(self, fields: dict) -> None:
        super().__init__(code=ErrorCode.INVALID_REQUEST, message="Invalid request body")
        self.fields = fields


class EventNotFoundError(DomainError):
    """Raised when an event is not found."""

    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.EVENT_NOT_FOUND,
            message="Event not found",
        )
        self.event_id = event_id


class RegistrationNotFoundError(DomainError):
    """Raised when a registration is not found."""

    def __init__(self, registration_ref: str) -> None:
        super().__init__(
            code=ErrorCode.REGISTRATION_NOT_FOUND,
            message="Registration not found",
        )
        self.registration_ref = registration_ref


class TicketNotFoundError(DomainError):
    """Raised when a ticket is not found, by internal ID or by scan code."""

    def __init__(self, ticket_ref: str) -> None:
        super().__init__(
            code=ErrorCode.TICKET_NOT_FOUND,
            message="Invalid or non-existent ticket",
        )
        self.ticket_ref = ticket_ref


class EventClosedError(DomainError):
    """Raised when an event no longer accepts registrations or ticketing."""

    def __init__(self, reason: str) -> None:
        super().__init__(code=ErrorCode.EVENT_CLOSED, message=reason)


class OrganizationSuspendedError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.ORG_SUSPENDED,
            message="This event's organization has been suspended. Registration is currently unavailable.",
        )


class AlreadyRegisteredError(DomainError):
    """Raised when the user already holds a non-cancelled registration for the event."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.ALREADY_REGISTERED,
            message="User already registered for this event",
        )


class EventFullError(DomainError):
    def __init__(self, requested: int) -> None:
        super().__init__(
            code=ErrorCode.FULL,
            message="Not enough capacity to increase quantity",
        )
        self.requested = requested


class QuantityExceedsError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.QUANTITY_EXCEEDS,
            message="Requested quantity exceeds registration allocation",
        )


class AlreadyIssuedError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.ALREADY_ISSUED,
            message="Tickets already issued for this registration",
        )


class RegistrationWaitlistedError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.REGISTRATION_WAITLISTED,
            message="Tickets cannot be issued while registration is waitlisted",
        )


class RegistrationCancelledError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.REGISTRATION_CANCELLED,
            message="Registration has been cancelled",
        )


class AlreadyCancelledError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.ALREADY_CANCELLED,
            message="Registration already cancelled",
        )


class TicketsInUseError(DomainError):
    """Raised when shrinking a registration would delete tickets that were already used."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.TICKETS_IN_USE,
            message="Not enough unused tickets to remove",
        )


class TicketAlreadyUsedError(DomainError):
    """Raised on a re-scan. Carries the metadata of the first scan."""

    def __init__(self, scanned_at: datetime | None, scanned_by: str) -> None:
        super().__init__(
            code=ErrorCode.TICKET_ALREADY_USED,
            message="Ticket already used",
        )
        self.scanned_at = scanned_at
        self.scanned_by = scanned_by


class TicketAlreadyCancelledError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.TICKET_ALREADY_CANCELLED,
            message="Ticket already cancelled",
        )


class TicketCancelledError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.TICKET_CANCELLED,
            message="Ticket has been cancelled",
        )


class QrExpiredError(DomainError):
    def __init__(self, expired_at: datetime) -> None:
        super().__init__(code=ErrorCode.QR_EXPIRED, message="QR code has expired")
        self.expired_at = expired_at


class InvalidTransitionError(DomainError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_TRANSITION,
            message=f"Cannot move from {current} to {target}",
        )


class ForbiddenError(DomainError):
    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(code=ErrorCode.FORBIDDEN, message=message)


class CapacityConflictError(DomainError):
    """Raised when the ledger refuses a decrement the caller had already checked under lock."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INTERNAL_ERROR,
            message="Capacity changed unexpectedly",
        )
