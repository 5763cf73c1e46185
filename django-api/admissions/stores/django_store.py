"""Django ORM implementation of the admission stores.

Capacity is only ever changed with single UPDATE statements built from F()
expressions, so concurrent transactions never lose each other's deltas.
"""

from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any

from django.db import IntegrityError, transaction
from django.db.models import F, Max
from django.utils import timezone

from admissions import models as orm
from admissions.domain.errors import AlreadyRegisteredError
from admissions.domain.models import (
    Event,
    EventRemoval,
    EventStatus,
    FollowUpKind,
    FollowUpStatus,
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
    OrganizationId,
    Quantity,
    RegistrationId,
    RegistrationNumber,
    TicketCode,
    TicketId,
    UserId,
)
from admissions.stores.interfaces import (
    EventStore,
    FollowUpStore,
    RegistrationStore,
    TicketStore,
)

_ERROR_TEXT_LIMIT = 2000


def _to_ticket(row: orm.Ticket) -> Ticket:
    return Ticket(
        id=TicketId(row.id),
        code=TicketCode(row.code),
        registration_id=RegistrationId(row.registration_id),
        event_id=EventId(row.event_id),
        user_id=UserId(row.user_id),
        status=TicketStatus(row.status),
        sequence=row.sequence,
        created_at=row.created_at,
        qr_data_url=row.qr_data_url,
        qr_expires_at=row.qr_expires_at,
        scanned_at=row.scanned_at,
        scanned_by=row.scanned_by,
    )


def _to_registration(row: orm.Registration) -> Registration:
    ticket_ids = (
        orm.Ticket.objects.filter(registration_id=row.id)
        .exclude(status=orm.Ticket.Status.CANCELLED)
        .order_by("sequence")
        .values_list("id", flat=True)
    )
    return Registration(
        id=RegistrationId(row.id),
        registration_number=RegistrationNumber(row.registration_number),
        user_id=UserId(row.user_id),
        event_id=EventId(row.event_id),
        quantity=Quantity(row.quantity),
        status=RegistrationStatus(row.status),
        tickets_issued=row.tickets_issued,
        created_at=row.created_at,
        updated_at=row.updated_at,
        ticket_ids=tuple(TicketId(pk) for pk in ticket_ids),
    )


def _to_event(row: orm.Event) -> Event:
    user_ids = row.registered_users.values_list("pk", flat=True)
    waitlist = (
        orm.WaitlistEntry.objects.filter(event_id=row.id)
        .order_by("position")
        .values_list("registration_id", flat=True)
    )
    return Event(
        id=EventId(row.id),
        organization_id=OrganizationId(row.organization_id),
        title=row.title,
        starts_at=row.starts_at,
        ends_at=row.ends_at,
        capacity=Capacity(row.capacity),
        status=EventStatus(row.status),
        registered_user_ids=frozenset(UserId(pk) for pk in user_ids),
        waitlist=tuple(RegistrationId(pk) for pk in waitlist),
    )


class DjangoEventStore(EventStore):
    """PostgreSQL-backed event store using Django ORM."""

    def get_event(self, event_id: EventId) -> Event | None:
        row = orm.Event.objects.filter(pk=event_id.value).first()
        return _to_event(row) if row else None

    def event_exists(self, event_id: EventId) -> bool:
        return orm.Event.objects.filter(pk=event_id.value).exists()

    def lock_event(self, event_id: EventId) -> Event | None:
        row = orm.Event.objects.select_for_update().filter(pk=event_id.value).first()
        return _to_event(row) if row else None

    def reserve_seats(self, event_id: EventId, seats: int) -> bool:
        updated = orm.Event.objects.filter(pk=event_id.value, capacity__gte=seats).update(
            capacity=F("capacity") - seats, updated_at=timezone.now()
        )
        return updated == 1

    def release_seats(self, event_id: EventId, seats: int) -> None:
        orm.Event.objects.filter(pk=event_id.value).update(
            capacity=F("capacity") + seats, updated_at=timezone.now()
        )

    def set_capacity(self, event_id: EventId, capacity: Capacity) -> None:
        orm.Event.objects.filter(pk=event_id.value).update(
            capacity=capacity.value, updated_at=timezone.now()
        )

    def set_status(self, event_id: EventId, status: EventStatus) -> None:
        orm.Event.objects.filter(pk=event_id.value).update(
            status=status.value, updated_at=timezone.now()
        )

    def add_registered_user(self, event_id: EventId, user_id: UserId) -> None:
        through = orm.Event.registered_users.through
        through.objects.get_or_create(event_id=event_id.value, user_id=user_id.value)

    def remove_registered_user(self, event_id: EventId, user_id: UserId) -> None:
        through = orm.Event.registered_users.through
        through.objects.filter(event_id=event_id.value, user_id=user_id.value).delete()

    def clear_registered_users(self, event_id: EventId) -> None:
        through = orm.Event.registered_users.through
        through.objects.filter(event_id=event_id.value).delete()

    def load_waitlist(self, event_id: EventId) -> list[WaitlistSlot]:
        entries = (
            orm.WaitlistEntry.objects.filter(
                event_id=event_id.value,
                registration__status=orm.Registration.Status.WAITLISTED,
            )
            .select_related("registration")
            .order_by("position")
        )
        return [
            WaitlistSlot(
                registration_id=RegistrationId(entry.registration_id),
                user_id=UserId(entry.registration.user_id),
                quantity=entry.registration.quantity,
            )
            for entry in entries
        ]

    def append_to_waitlist(self, event_id: EventId, registration_id: RegistrationId) -> None:
        last = orm.WaitlistEntry.objects.filter(event_id=event_id.value).aggregate(
            last=Max("position")
        )["last"]
        orm.WaitlistEntry.objects.create(
            event_id=event_id.value,
            registration_id=registration_id.value,
            position=(last or 0) + 1,
        )

    def remove_from_waitlist(self, registration_id: RegistrationId) -> None:
        orm.WaitlistEntry.objects.filter(registration_id=registration_id.value).delete()

    def replace_waitlist(
        self, event_id: EventId, registration_ids: Sequence[RegistrationId]
    ) -> None:
        wanted = [rid.value for rid in registration_ids]
        orm.WaitlistEntry.objects.filter(event_id=event_id.value).exclude(
            registration_id__in=wanted
        ).delete()
        entries = {
            entry.registration_id: entry
            for entry in orm.WaitlistEntry.objects.filter(event_id=event_id.value)
        }
        ordered = [entries[pk] for pk in wanted if pk in entries]
        for position, entry in enumerate(ordered, start=1):
            entry.position = position
        orm.WaitlistEntry.objects.bulk_update(ordered, ["position"])

    def clear_waitlist(self, event_id: EventId) -> None:
        orm.WaitlistEntry.objects.filter(event_id=event_id.value).delete()

    def delete_event(self, event_id: EventId) -> EventRemoval:
        registrations = orm.Registration.objects.filter(event_id=event_id.value).count()
        tickets = orm.Ticket.objects.filter(event_id=event_id.value).count()
        orm.Event.objects.filter(pk=event_id.value).delete()
        return EventRemoval(event_id=event_id, registrations=registrations, tickets=tickets)

    def events_awaiting_promotion(self) -> list[EventId]:
        pks = (
            orm.Event.objects.filter(
                capacity__gt=0,
                status__in=[orm.Event.Status.UPCOMING, orm.Event.Status.ONGOING],
                waitlist_entries__isnull=False,
                ends_at__gt=timezone.now(),
            )
            .distinct()
            .values_list("pk", flat=True)
        )
        return [EventId(pk) for pk in pks]


class DjangoRegistrationStore(RegistrationStore):
    """Registration persistence using Django ORM."""

    def get(self, registration_id: RegistrationId) -> Registration | None:
        row = orm.Registration.objects.filter(pk=registration_id.value).first()
        return _to_registration(row) if row else None

    def get_by_number(self, number: RegistrationNumber) -> Registration | None:
        row = orm.Registration.objects.filter(registration_number=number.value).first()
        return _to_registration(row) if row else None

    def find_active(self, user_id: UserId, event_id: EventId) -> Registration | None:
        row = (
            orm.Registration.objects.filter(user_id=user_id.value, event_id=event_id.value)
            .exclude(status=orm.Registration.Status.CANCELLED)
            .first()
        )
        return _to_registration(row) if row else None

    def lock(self, registration_id: RegistrationId) -> Registration | None:
        row = (
            orm.Registration.objects.select_for_update()
            .filter(pk=registration_id.value)
            .first()
        )
        return _to_registration(row) if row else None

    def create(
        self,
        user_id: UserId,
        event_id: EventId,
        quantity: Quantity,
        status: RegistrationStatus,
    ) -> Registration:
        try:
            with transaction.atomic():
                row = orm.Registration.objects.create(
                    user_id=user_id.value,
                    event_id=event_id.value,
                    quantity=quantity.value,
                    status=status.value,
                )
        except IntegrityError:
            if self.find_active(user_id, event_id) is not None:
                raise AlreadyRegisteredError() from None
            raise
        return _to_registration(row)

    def set_status(self, registration_id: RegistrationId, status: RegistrationStatus) -> None:
        orm.Registration.objects.filter(pk=registration_id.value).update(
            status=status.value, updated_at=timezone.now()
        )

    def set_quantity(self, registration_id: RegistrationId, quantity: Quantity) -> None:
        orm.Registration.objects.filter(pk=registration_id.value).update(
            quantity=quantity.value, updated_at=timezone.now()
        )

    def adjust_tickets_issued(self, registration_id: RegistrationId, delta: int) -> None:
        orm.Registration.objects.filter(pk=registration_id.value).update(
            tickets_issued=F("tickets_issued") + delta, updated_at=timezone.now()
        )

    def list_for_event(self, event_id: EventId) -> list[Registration]:
        rows = orm.Registration.objects.filter(event_id=event_id.value).order_by("-created_at")
        return [_to_registration(row) for row in rows]

    def list_for_user(self, user_id: UserId) -> list[Registration]:
        rows = orm.Registration.objects.filter(user_id=user_id.value).order_by("-created_at")
        return [_to_registration(row) for row in rows]

    def delete(self, registration_id: RegistrationId) -> None:
        orm.Registration.objects.filter(pk=registration_id.value).delete()


class DjangoTicketStore(TicketStore):
    """Ticket persistence using Django ORM."""

    def get(self, ticket_id: TicketId) -> Ticket | None:
        row = orm.Ticket.objects.filter(pk=ticket_id.value).first()
        return _to_ticket(row) if row else None

    def get_by_code(self, code: TicketCode) -> Ticket | None:
        row = orm.Ticket.objects.filter(code=code.value).first()
        return _to_ticket(row) if row else None

    def lock(self, ticket_id: TicketId) -> Ticket | None:
        row = orm.Ticket.objects.select_for_update().filter(pk=ticket_id.value).first()
        return _to_ticket(row) if row else None

    def create_many(self, registration: Registration, count: int) -> list[Ticket]:
        last = orm.Ticket.objects.filter(registration_id=registration.id.value).aggregate(
            last=Max("sequence")
        )["last"] or 0
        rows = [
            orm.Ticket(
                registration_id=registration.id.value,
                event_id=registration.event_id.value,
                user_id=registration.user_id.value,
                sequence=last + offset,
            )
            for offset in range(1, count + 1)
        ]
        orm.Ticket.objects.bulk_create(rows)
        return [_to_ticket(row) for row in rows]

    def list_for_registration(
        self, registration_id: RegistrationId, include_cancelled: bool = False
    ) -> list[Ticket]:
        rows = orm.Ticket.objects.filter(registration_id=registration_id.value)
        if not include_cancelled:
            rows = rows.exclude(status=orm.Ticket.Status.CANCELLED)
        return [_to_ticket(row) for row in rows.order_by("sequence")]

    def list_for_user(self, user_id: UserId) -> list[Ticket]:
        rows = orm.Ticket.objects.filter(user_id=user_id.value)
        rows = rows.order_by("-created_at", "sequence")
        return [_to_ticket(row) for row in rows]

    def list_for_event(self, event_id: EventId) -> list[Ticket]:
        rows = orm.Ticket.objects.filter(event_id=event_id.value)
        rows = rows.order_by("created_at", "sequence")
        return [_to_ticket(row) for row in rows]

    def delete(self, ticket_ids: Sequence[TicketId]) -> int:
        deleted, _ = orm.Ticket.objects.filter(pk__in=[tid.value for tid in ticket_ids]).delete()
        return deleted

    def delete_for_registration(self, registration_id: RegistrationId) -> int:
        deleted, _ = orm.Ticket.objects.filter(registration_id=registration_id.value).delete()
        return deleted

    def set_status(self, ticket_id: TicketId, status: TicketStatus) -> None:
        orm.Ticket.objects.filter(pk=ticket_id.value).update(status=status.value)

    def mark_used(self, ticket_id: TicketId, scanned_at: datetime, scanned_by: str) -> None:
        orm.Ticket.objects.filter(pk=ticket_id.value).update(
            status=orm.Ticket.Status.USED,
            scanned_at=scanned_at,
            scanned_by=scanned_by,
        )

    def attach_qr(self, ticket_id: TicketId, data_url: str, expires_at: datetime) -> None:
        orm.Ticket.objects.filter(pk=ticket_id.value).update(
            qr_data_url=data_url, qr_expires_at=expires_at
        )


def _to_task(row: orm.FollowUpTask) -> FollowUpTask:
    return FollowUpTask(
        id=FollowUpTaskId(row.id),
        kind=FollowUpKind(row.kind),
        status=FollowUpStatus(row.status),
        attempts=row.attempts,
        payload=dict(row.payload),
        last_error=row.last_error,
    )


class DjangoFollowUpStore(FollowUpStore):
    """Transactional outbox: tasks are rows written in the triggering transaction."""

    def __init__(self) -> None:
        self._dispatch: Callable[[FollowUpTaskId], None] | None = None

    def bind_dispatcher(self, dispatch: Callable[[FollowUpTaskId], None]) -> None:
        """Hand every newly recorded task to `dispatch`."""
        self._dispatch = dispatch

    def enqueue(self, kind: FollowUpKind, payload: dict[str, Any]) -> FollowUpTaskId:
        row = orm.FollowUpTask.objects.create(kind=kind.value, payload=payload)
        task_id = FollowUpTaskId(row.id)
        if self._dispatch is not None:
            self._dispatch(task_id)
        return task_id

    def claim(self, task_id: FollowUpTaskId) -> FollowUpTask | None:
        claimed = orm.FollowUpTask.objects.filter(
            pk=task_id.value, status=orm.FollowUpTask.Status.PENDING
        ).update(
            status=orm.FollowUpTask.Status.RUNNING,
            attempts=F("attempts") + 1,
            updated_at=timezone.now(),
        )
        if not claimed:
            return None
        return _to_task(orm.FollowUpTask.objects.get(pk=task_id.value))

    def pending(self, limit: int) -> list[FollowUpTaskId]:
        pks = (
            orm.FollowUpTask.objects.filter(status=orm.FollowUpTask.Status.PENDING)
            .order_by("created_at")
            .values_list("pk", flat=True)[:limit]
        )
        return [FollowUpTaskId(pk) for pk in pks]

    def mark_done(self, task_id: FollowUpTaskId) -> None:
        orm.FollowUpTask.objects.filter(pk=task_id.value).update(
            status=orm.FollowUpTask.Status.DONE,
            last_error="",
            updated_at=timezone.now(),
        )

    def mark_failed(self, task_id: FollowUpTaskId, error: str) -> None:
        orm.FollowUpTask.objects.filter(pk=task_id.value).update(
            status=orm.FollowUpTask.Status.FAILED,
            last_error=error[:_ERROR_TEXT_LIMIT],
            updated_at=timezone.now(),
        )

    def requeue_failed(self) -> int:
        return orm.FollowUpTask.objects.filter(status=orm.FollowUpTask.Status.FAILED).update(
            status=orm.FollowUpTask.Status.PENDING, updated_at=timezone.now()
        )
