"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
"""

import secrets
import uuid

from django.conf import settings
from django.db import models
from django.db.models import F, Q


def generate_registration_number() -> str:
    return "REG-" + secrets.token_hex(8).upper()


def generate_ticket_code() -> str:
    return "TK-" + secrets.token_hex(6).upper()


class Organization(models.Model):
    """Persistence model for organizations that own events."""

    class Status(models.TextChoices):
        PENDING = "pending"
        APPROVED = "approved"
        REJECTED = "rejected"
        SUSPENDED = "suspended"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255, unique=True)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING
    )
    owners = models.ManyToManyField(
        settings.AUTH_USER_MODEL, related_name="organizations", blank=True
    )
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class Event(models.Model):
    """Persistence model for events.

    `capacity` is the remaining allocatable seat count, not a fixed total.
    """

    class Status(models.TextChoices):
        UPCOMING = "upcoming"
        ONGOING = "ongoing"
        COMPLETED = "completed"
        CANCELLED = "cancelled"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(
        Organization, on_delete=models.CASCADE, related_name="events"
    )
    title = models.CharField(max_length=255)
    starts_at = models.DateTimeField()
    ends_at = models.DateTimeField()
    capacity = models.PositiveIntegerField(default=0)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.UPCOMING
    )
    registered_users = models.ManyToManyField(
        settings.AUTH_USER_MODEL, related_name="registered_events", blank=True
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["starts_at"]
        indexes = [
            models.Index(fields=["status", "starts_at"], name="event_status_starts_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(capacity__gte=0), name="event_capacity_non_negative"
            ),
        ]

    def __str__(self) -> str:
        return self.title


class Registration(models.Model):
    """Persistence model for registrations (one user, one event)."""

    class Status(models.TextChoices):
        CONFIRMED = "CONFIRMED"
        WAITLISTED = "WAITLISTED"
        CANCELLED = "CANCELLED"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    registration_number = models.CharField(
        max_length=32, unique=True, default=generate_registration_number, editable=False
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="registrations"
    )
    event = models.ForeignKey(
        Event, on_delete=models.CASCADE, related_name="registrations"
    )
    quantity = models.PositiveIntegerField(default=1)
    status = models.CharField(max_length=20, choices=Status.choices)
    tickets_issued = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["event", "status"], name="registration_event_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "event"],
                condition=~Q(status="CANCELLED"),
                name="one_active_registration_per_user_event",
            ),
            models.CheckConstraint(
                condition=Q(quantity__gte=1), name="registration_quantity_positive"
            ),
            models.CheckConstraint(
                condition=Q(tickets_issued__lte=F("quantity")),
                name="registration_tickets_within_quantity",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.registration_number} ({self.status})"


class WaitlistEntry(models.Model):
    """Position of a waitlisted registration in its event's queue."""

    event = models.ForeignKey(
        Event, on_delete=models.CASCADE, related_name="waitlist_entries"
    )
    registration = models.OneToOneField(
        Registration, on_delete=models.CASCADE, related_name="waitlist_entry"
    )
    position = models.PositiveIntegerField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["position"]
        indexes = [
            models.Index(fields=["event", "position"], name="waitlist_event_position_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.event_id} #{self.position}"


class Ticket(models.Model):
    """Persistence model for tickets. `code` is the only scannable identifier."""

    class Status(models.TextChoices):
        VALID = "VALID"
        USED = "USED"
        CANCELLED = "CANCELLED"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code = models.CharField(
        max_length=32, unique=True, default=generate_ticket_code, editable=False
    )
    registration = models.ForeignKey(
        Registration, on_delete=models.CASCADE, related_name="tickets"
    )
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="tickets")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="tickets"
    )
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.VALID
    )
    sequence = models.PositiveIntegerField()
    qr_data_url = models.TextField(blank=True, null=True)
    qr_expires_at = models.DateTimeField(blank=True, null=True)
    scanned_at = models.DateTimeField(blank=True, null=True)
    scanned_by = models.CharField(max_length=255, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["sequence"]
        indexes = [
            models.Index(fields=["event", "status"], name="ticket_event_status_idx"),
            models.Index(fields=["registration", "sequence"], name="ticket_registration_seq_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.code} ({self.status})"


class FollowUpTask(models.Model):
    """Post-commit side effect recorded in the transaction that caused it."""

    class Status(models.TextChoices):
        PENDING = "PENDING"
        RUNNING = "RUNNING"
        DONE = "DONE"
        FAILED = "FAILED"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    kind = models.CharField(max_length=50)
    payload = models.JSONField(default=dict)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING
    )
    attempts = models.PositiveIntegerField(default=0)
    last_error = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="followup_status_created_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.kind} ({self.status})"
