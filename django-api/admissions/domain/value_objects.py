"""Domain primitives that enforce validity at creation time."""

from dataclasses import dataclass
from typing import Any, Self
from uuid import UUID


@dataclass(frozen=True)
class EventId:
    """Unique identifier for an Event."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(str(value)))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class OrganizationId:
    """Unique identifier for an Organization."""

    value: UUID

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class RegistrationId:
    """Internal identifier for a Registration."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(str(value)))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class TicketId:
    """Internal identifier for a Ticket. Never shown to scanners."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(str(value)))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class FollowUpTaskId:
    value: UUID

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class UserId:
    """Primary key of the user model."""

    value: int

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class RegistrationNumber:
    """Human-readable registration reference, e.g. REG-3FA2B19C04D1E7A8."""

    PREFIX = "REG-"

    value: str

    def __post_init__(self) -> None:
        if not self.value.startswith(self.PREFIX) or len(self.value) <= len(self.PREFIX):
            raise ValueError("Registration number must start with REG-")

    @classmethod
    def looks_like(cls, value: str) -> bool:
        return value.upper().startswith(cls.PREFIX)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TicketCode:
    """Opaque scan identifier printed in the QR code."""

    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise ValueError("Ticket code cannot be empty")

    def __str__(self) -> str:
        return self.value


def _coerce_int(raw: Any) -> int:
    # bool is an int subclass; "true" is not a seat count
    if isinstance(raw, bool):
        raise ValueError("Boolean is not a count")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        if not raw.is_integer():
            raise ValueError("Count must be integral")
        return int(raw)
    if isinstance(raw, str):
        return int(raw.strip())
    raise ValueError("Count must be an integer")


@dataclass(frozen=True)
class Quantity:
    """Positive number of seats requested or held by a registration."""

    value: int

    def __post_init__(self) -> None:
        if self.value < 1:
            raise ValueError("Quantity must be at least 1")

    @classmethod
    def parse(cls, raw: Any) -> Self:
        return cls(value=_coerce_int(raw))


@dataclass(frozen=True)
class Capacity:
    """Non-negative integer representing capacity."""

    value: int

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError("Capacity cannot be negative")

    @classmethod
    def parse(cls, raw: Any) -> Self:
        return cls(value=_coerce_int(raw))

    def fits(self, quantity: Quantity) -> bool:
        return quantity.value <= self.value
