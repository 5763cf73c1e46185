"""Unit tests for domain primitives.

These test invariants that must hold at construction time.
Run with: pytest tests/test_domain.py -v
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from admissions.domain.errors import (
    AlreadyCancelledError,
    ErrorCode,
    ErrorKind,
    EventClosedError,
    InvalidTransitionError,
    TicketAlreadyCancelledError,
    TicketAlreadyUsedError,
)
from admissions.domain.lifecycle import (
    ensure_registration_transition,
    ensure_ticket_transition,
)
from admissions.domain.models import RegistrationStatus, Ticket, TicketStatus
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


def make_ticket(status: TicketStatus, **extra) -> Ticket:
    return Ticket(
        id=TicketId(uuid4()),
        code=TicketCode("TK-0123456789AB"),
        registration_id=RegistrationId(uuid4()),
        event_id=EventId(uuid4()),
        user_id=UserId(1),
        status=status,
        sequence=1,
        created_at=datetime.now(timezone.utc),
        **extra,
    )


class TestQuantity:
    """Tests for Quantity value object."""

    def test_quantity_accepts_positive_value(self):
        assert Quantity(3).value == 3

    def test_quantity_rejects_zero(self):
        with pytest.raises(ValueError):
            Quantity(0)

    @pytest.mark.parametrize("raw, expected", [(2, 2), ("4", 4), (" 5 ", 5), (3.0, 3)])
    def test_parse_accepts_integral_values(self, raw, expected):
        assert Quantity.parse(raw).value == expected

    @pytest.mark.parametrize("raw", [True, False, 1.5, "two", None, [1], -1])
    def test_parse_rejects_non_integral_or_negative_values(self, raw):
        with pytest.raises((TypeError, ValueError)):
            Quantity.parse(raw)


class TestCapacity:
    """Tests for Capacity value object."""

    def test_capacity_accepts_zero(self):
        assert Capacity(0).value == 0

    def test_capacity_rejects_negative_value(self):
        """Capacity raises ValueError for negative values."""
        with pytest.raises(ValueError):
            Capacity(-1)

    def test_capacity_fits_quantity(self):
        assert Capacity(2).fits(Quantity(2))
        assert not Capacity(1).fits(Quantity(2))


class TestIdentifiers:
    def test_event_id_from_string_round_trips(self):
        raw = uuid4()
        assert str(EventId.from_string(str(raw))) == str(raw)

    def test_event_id_from_string_rejects_garbage(self):
        with pytest.raises(ValueError):
            EventId.from_string("not-a-uuid")

    def test_registration_number_requires_prefix(self):
        with pytest.raises(ValueError):
            RegistrationNumber("ABC-123")

    def test_registration_number_detection_is_case_insensitive(self):
        assert RegistrationNumber.looks_like("reg-0011")
        assert not RegistrationNumber.looks_like(str(uuid4()))

    def test_ticket_code_rejects_blank(self):
        with pytest.raises(ValueError):
            TicketCode("   ")


class TestRegistrationTransitions:
    def test_waitlisted_can_be_confirmed(self):
        ensure_registration_transition(RegistrationStatus.WAITLISTED, RegistrationStatus.CONFIRMED)

    def test_confirmed_cannot_go_back_to_waitlist(self):
        with pytest.raises(InvalidTransitionError):
            ensure_registration_transition(
                RegistrationStatus.CONFIRMED, RegistrationStatus.WAITLISTED
            )

    def test_cancelling_twice_reports_already_cancelled(self):
        with pytest.raises(AlreadyCancelledError):
            ensure_registration_transition(
                RegistrationStatus.CANCELLED, RegistrationStatus.CANCELLED
            )


class TestTicketTransitions:
    def test_valid_ticket_can_be_used(self):
        ensure_ticket_transition(make_ticket(TicketStatus.VALID), TicketStatus.USED)

    def test_used_ticket_cannot_be_used_again(self):
        """The error carries the first scan's metadata."""
        scanned_at = datetime.now(timezone.utc) - timedelta(minutes=5)
        ticket = make_ticket(TicketStatus.USED, scanned_at=scanned_at, scanned_by="gate-1")

        with pytest.raises(TicketAlreadyUsedError) as excinfo:
            ensure_ticket_transition(ticket, TicketStatus.USED)

        assert excinfo.value.scanned_at == scanned_at
        assert excinfo.value.scanned_by == "gate-1"

    def test_used_ticket_cannot_return_to_valid(self):
        with pytest.raises(TicketAlreadyUsedError):
            ensure_ticket_transition(make_ticket(TicketStatus.USED), TicketStatus.VALID)

    def test_cancelled_ticket_cannot_be_cancelled_again(self):
        with pytest.raises(TicketAlreadyCancelledError):
            ensure_ticket_transition(make_ticket(TicketStatus.CANCELLED), TicketStatus.CANCELLED)

    def test_qr_expiry(self):
        now = datetime.now(timezone.utc)
        ticket = make_ticket(TicketStatus.VALID, qr_expires_at=now - timedelta(seconds=1))
        assert ticket.qr_expired(now)
        assert not make_ticket(TicketStatus.VALID).qr_expired(now)


class TestErrors:
    def test_error_kinds(self):
        assert EventClosedError("closed").kind is ErrorKind.FORBIDDEN
        assert AlreadyCancelledError().kind is ErrorKind.CONFLICT

    def test_error_str_includes_code(self):
        assert str(AlreadyCancelledError()).startswith(ErrorCode.ALREADY_CANCELLED.value)
