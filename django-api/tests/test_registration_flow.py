"""Integration tests for admission, quantity changes and cancellation.

Run with: pytest tests/test_registration_flow.py -v
"""

from datetime import timedelta
from unittest import mock
from uuid import uuid4

import pytest
from django.utils import timezone

from admissions import models as orm
from admissions.domain.errors import (
    AlreadyCancelledError,
    AlreadyRegisteredError,
    EventClosedError,
    EventFullError,
    EventNotFoundError,
    ForbiddenError,
    InvalidEventIdError,
    InvalidQuantityError,
    InvalidTransitionError,
    OrganizationSuspendedError,
    RegistrationCancelledError,
    RegistrationNotFoundError,
    TicketsInUseError,
)
from admissions.domain.models import EventStatus, RegistrationStatus
from admissions.domain.value_objects import EventId, Quantity, UserId
from admissions.stores.django_store import DjangoRegistrationStore


def capacity_of(event: orm.Event) -> int:
    event.refresh_from_db()
    return event.capacity


@pytest.mark.django_db
class TestAdmission:
    """Tests for RegistrationService.register"""

    def test_register_confirms_and_issues_tickets(
        self, services, make_event, make_user, as_actor, django_capture_on_commit_callbacks
    ):
        event = make_event(capacity=5)
        user = make_user()

        with django_capture_on_commit_callbacks(execute=True):
            registration = services.registrations.register(as_actor(user), str(event.pk), 2)

        assert registration.status is RegistrationStatus.CONFIRMED
        assert registration.tickets_issued == 2
        assert len(registration.ticket_ids) == 2
        assert registration.registration_number.value.startswith("REG-")
        assert capacity_of(event) == 3
        assert event.registered_users.filter(pk=user.pk).exists()

    def test_register_sends_confirmation_after_commit(
        self, services, make_event, make_user, as_actor, mailoutbox,
        django_capture_on_commit_callbacks,
    ):
        event = make_event(capacity=5)
        user = make_user()

        with django_capture_on_commit_callbacks(execute=True):
            services.registrations.register(as_actor(user), str(event.pk), 1)

        assert len(mailoutbox) == 1
        assert mailoutbox[0].to == [user.email]
        assert mailoutbox[0].subject == "Registration confirmed"

    def test_full_event_waitlists_whole_request(self, services, make_event, make_user, as_actor):
        """Admission is all-or-nothing: 2 seats requested, 1 free, nothing taken."""
        event = make_event(capacity=1)
        user = make_user()

        registration = services.registrations.register(as_actor(user), str(event.pk), 2)

        assert registration.status is RegistrationStatus.WAITLISTED
        assert registration.tickets_issued == 0
        assert capacity_of(event) == 1
        assert list(orm.WaitlistEntry.objects.values_list("registration_id", flat=True)) == [
            registration.id.value
        ]
        assert not orm.Ticket.objects.exists()

    def test_waitlist_appends_to_tail(self, services, make_event, make_user, as_actor):
        event = make_event(capacity=0)
        first = services.registrations.register(as_actor(make_user()), str(event.pk), 1)
        second = services.registrations.register(as_actor(make_user()), str(event.pk), 1)

        stored = services.events.get_event(str(event.pk))

        assert stored.waitlist == (first.id, second.id)

    def test_duplicate_registration_rejected(self, services, make_event, make_user, as_actor):
        event = make_event(capacity=5)
        actor = as_actor(make_user())
        services.registrations.register(actor, str(event.pk), 2)

        with pytest.raises(AlreadyRegisteredError):
            services.registrations.register(actor, str(event.pk), 1)
        assert capacity_of(event) == 3

    def test_duplicate_that_slips_past_precheck_is_rolled_back(
        self, services, make_event, make_user, as_actor
    ):
        """The storage constraint catches a concurrent duplicate; its capacity delta is undone."""
        event = make_event(capacity=5)
        actor = as_actor(make_user())
        services.registrations.register(actor, str(event.pk), 2)

        store = services.registrations._registrations
        original = store.find_active
        calls = []

        def racing(user_id, event_id):
            calls.append(user_id)
            return None if len(calls) == 1 else original(user_id, event_id)

        with mock.patch.object(store, "find_active", side_effect=racing):
            with pytest.raises(AlreadyRegisteredError):
                services.registrations.register(actor, str(event.pk), 2)

        assert capacity_of(event) == 3
        assert orm.Registration.objects.filter(event=event).count() == 1
        assert orm.Ticket.objects.filter(event=event).count() == 2

    def test_store_create_maps_constraint_violation(self, make_event, make_user):
        event = make_event(capacity=5)
        user = make_user()
        store = DjangoRegistrationStore()
        store.create(UserId(user.pk), EventId(event.pk), Quantity(1), RegistrationStatus.WAITLISTED)

        with pytest.raises(AlreadyRegisteredError):
            store.create(
                UserId(user.pk), EventId(event.pk), Quantity(1), RegistrationStatus.WAITLISTED
            )

    def test_can_register_again_after_cancelling(self, services, make_event, make_user, as_actor):
        event = make_event(capacity=5)
        actor = as_actor(make_user())
        first = services.registrations.register(actor, str(event.pk), 1)
        services.registrations.cancel(actor, str(first.id))

        again = services.registrations.register(actor, str(event.pk), 1)

        assert again.status is RegistrationStatus.CONFIRMED
        assert again.id != first.id

    def test_invalid_event_id(self, services, make_user, as_actor):
        with pytest.raises(InvalidEventIdError):
            services.registrations.register(as_actor(make_user()), "not-a-uuid", 1)

    @pytest.mark.parametrize("quantity", [0, -2, True, 1.5, "abc", None])
    def test_invalid_quantity(self, services, make_event, make_user, as_actor, quantity):
        event = make_event()
        with pytest.raises(InvalidQuantityError):
            services.registrations.register(as_actor(make_user()), str(event.pk), quantity)

    def test_numeric_string_quantity_accepted(self, services, make_event, make_user, as_actor):
        event = make_event(capacity=5)

        registration = services.registrations.register(as_actor(make_user()), str(event.pk), "3")

        assert registration.quantity.value == 3

    def test_unknown_event(self, services, make_user, as_actor):
        with pytest.raises(EventNotFoundError):
            services.registrations.register(as_actor(make_user()), str(uuid4()), 1)

    def test_suspended_organization(self, services, make_event, make_user, as_actor, organization):
        event = make_event()
        organization.status = orm.Organization.Status.SUSPENDED
        organization.save()

        with pytest.raises(OrganizationSuspendedError):
            services.registrations.register(as_actor(make_user()), str(event.pk), 1)

    def test_cancelled_event_is_closed(self, services, make_event, make_user, as_actor):
        event = make_event(status=orm.Event.Status.CANCELLED)

        with pytest.raises(EventClosedError):
            services.registrations.register(as_actor(make_user()), str(event.pk), 1)

    def test_ended_event_is_closed(self, services, make_event, make_user, as_actor):
        past = timezone.now() - timedelta(days=1)
        event = make_event(starts_at=past - timedelta(hours=2), ends_at=past)

        with pytest.raises(EventClosedError):
            services.registrations.register(as_actor(make_user()), str(event.pk), 1)

    def test_user_lists_own_registrations(self, services, make_event, make_user, as_actor):
        user = make_user()
        first = services.registrations.register(as_actor(user), str(make_event(5).pk), 1)
        second = services.registrations.register(as_actor(user), str(make_event(0).pk), 2)
        services.registrations.register(as_actor(make_user()), str(make_event(5).pk), 1)

        listed = services.registrations.list_for_user(as_actor(user), str(user.pk))

        assert {r.id for r in listed} == {first.id, second.id}

    def test_listing_another_users_registrations_forbidden(
        self, services, make_user, as_actor, admin_actor
    ):
        owner = make_user()

        with pytest.raises(ForbiddenError):
            services.registrations.list_for_user(as_actor(make_user()), owner.pk)
        assert services.registrations.list_for_user(admin_actor, owner.pk) == []


@pytest.mark.django_db
class TestCancellation:
    """Tests for RegistrationService.cancel and delete"""

    def test_round_trip_restores_capacity(self, services, make_event, make_user, as_actor):
        event = make_event(capacity=3)
        actor = as_actor(make_user())

        registration = services.registrations.register(actor, str(event.pk), 3)
        assert registration.status is RegistrationStatus.CONFIRMED
        assert capacity_of(event) == 0

        services.registrations.cancel(actor, str(registration.id))
        assert capacity_of(event) == 3

    def test_cancel_confirmed_releases_everything(self, services, make_event, make_user, as_actor):
        event = make_event(capacity=4)
        user = make_user()
        actor = as_actor(user)
        registration = services.registrations.register(actor, str(event.pk), 2)

        result = services.registrations.cancel(actor, str(registration.id))

        assert result.released_seats == 2
        assert result.deleted_tickets == 2
        assert result.registration.status is RegistrationStatus.CANCELLED
        assert result.registration.tickets_issued == 0
        assert result.registration.ticket_ids == ()
        assert capacity_of(event) == 4
        assert not event.registered_users.filter(pk=user.pk).exists()

    def test_cancel_waitlisted_leaves_capacity(self, services, make_event, make_user, as_actor):
        event = make_event(capacity=0)
        actor = as_actor(make_user())
        registration = services.registrations.register(actor, str(event.pk), 1)

        result = services.registrations.cancel(actor, str(registration.id))

        assert result.released_seats == 0
        assert capacity_of(event) == 0
        assert not orm.WaitlistEntry.objects.filter(event=event).exists()

    def test_cancel_twice(self, services, make_event, make_user, as_actor):
        event = make_event(capacity=2)
        actor = as_actor(make_user())
        registration = services.registrations.register(actor, str(event.pk), 1)
        services.registrations.cancel(actor, str(registration.id))

        with pytest.raises(AlreadyCancelledError):
            services.registrations.cancel(actor, str(registration.id))
        assert capacity_of(event) == 2

    def test_cancel_by_stranger_forbidden(self, services, make_event, make_user, as_actor):
        event = make_event(capacity=2)
        registration = services.registrations.register(as_actor(make_user()), str(event.pk), 1)

        with pytest.raises(ForbiddenError):
            services.registrations.cancel(as_actor(make_user()), str(registration.id))

    def test_admin_can_cancel_any_registration(
        self, services, make_event, make_user, as_actor, admin_actor
    ):
        event = make_event(capacity=2)
        registration = services.registrations.register(as_actor(make_user()), str(event.pk), 2)

        services.registrations.cancel(admin_actor, str(registration.id))

        assert capacity_of(event) == 2

    def test_delete_requires_admin(self, services, make_event, make_user, as_actor):
        event = make_event(capacity=2)
        actor = as_actor(make_user())
        registration = services.registrations.register(actor, str(event.pk), 1)

        with pytest.raises(ForbiddenError):
            services.registrations.delete(actor, str(registration.id))

    def test_admin_delete_removes_rows_and_releases_seats(
        self, services, make_event, make_user, as_actor, admin_actor
    ):
        event = make_event(capacity=2)
        registration = services.registrations.register(as_actor(make_user()), str(event.pk), 2)

        result = services.registrations.delete(admin_actor, str(registration.id))

        assert result.released_seats == 2
        assert result.deleted_tickets == 2
        assert capacity_of(event) == 2
        assert not orm.Registration.objects.filter(pk=registration.id.value).exists()
        assert not orm.Ticket.objects.filter(event=event).exists()

    def test_delete_unknown_registration(self, services, admin_actor):
        with pytest.raises(RegistrationNotFoundError):
            services.registrations.delete(admin_actor, str(uuid4()))


@pytest.mark.django_db
class TestQuantityChange:
    """Tests for RegistrationService.update_quantity"""

    def test_grow_confirmed_takes_seats_and_issues_tickets(
        self, services, make_event, make_user, as_actor
    ):
        event = make_event(capacity=5)
        actor = as_actor(make_user())
        registration = services.registrations.register(actor, str(event.pk), 1)

        change = services.registrations.update_quantity(actor, str(registration.id), 3)

        assert change.registration.quantity.value == 3
        assert change.registration.tickets_issued == 3
        assert change.event_capacity == 2
        sequences = list(
            orm.Ticket.objects.filter(registration_id=registration.id.value)
            .order_by("sequence")
            .values_list("sequence", flat=True)
        )
        assert sequences == [1, 2, 3]

    def test_grow_beyond_capacity_is_full(self, services, make_event, make_user, as_actor):
        event = make_event(capacity=2)
        actor = as_actor(make_user())
        registration = services.registrations.register(actor, str(event.pk), 1)

        with pytest.raises(EventFullError):
            services.registrations.update_quantity(actor, str(registration.id), 3)

        assert capacity_of(event) == 1
        assert orm.Registration.objects.get(pk=registration.id.value).quantity == 1

    def test_shrink_releases_seats_and_deletes_latest_tickets(
        self, services, make_event, make_user, as_actor
    ):
        event = make_event(capacity=5)
        actor = as_actor(make_user())
        registration = services.registrations.register(actor, str(event.pk), 3)

        change = services.registrations.update_quantity(actor, str(registration.id), 1)

        assert change.deleted_tickets == 2
        assert change.registration.tickets_issued == 1
        assert change.event_capacity == 4
        assert list(
            orm.Ticket.objects.filter(registration_id=registration.id.value).values_list(
                "sequence", flat=True
            )
        ) == [1]

    def test_shrink_refuses_to_delete_used_tickets(
        self, services, make_event, make_user, as_actor
    ):
        event = make_event(capacity=5)
        actor = as_actor(make_user())
        registration = services.registrations.register(actor, str(event.pk), 2)
        orm.Ticket.objects.filter(registration_id=registration.id.value).update(
            status=orm.Ticket.Status.USED
        )

        with pytest.raises(TicketsInUseError):
            services.registrations.update_quantity(actor, str(registration.id), 1)
        assert capacity_of(event) == 3

    def test_waitlisted_quantity_change_leaves_capacity(
        self, services, make_event, make_user, as_actor
    ):
        event = make_event(capacity=0)
        actor = as_actor(make_user())
        registration = services.registrations.register(actor, str(event.pk), 1)

        change = services.registrations.update_quantity(actor, str(registration.id), 4)

        assert change.registration.status is RegistrationStatus.WAITLISTED
        assert change.registration.quantity.value == 4
        assert change.event_capacity == 0

    def test_cancelled_registration_cannot_change(
        self, services, make_event, make_user, as_actor
    ):
        event = make_event(capacity=2)
        actor = as_actor(make_user())
        registration = services.registrations.register(actor, str(event.pk), 1)
        services.registrations.cancel(actor, str(registration.id))

        with pytest.raises(RegistrationCancelledError):
            services.registrations.update_quantity(actor, str(registration.id), 2)


@pytest.mark.django_db
class TestEventCancellation:
    """Tests for EventService.cancel_event and delete_event"""

    def test_cancel_event_cancels_everyone_and_promotes_nobody(
        self, services, make_event, make_user, as_actor, admin_actor
    ):
        event = make_event(capacity=2)
        held = services.registrations.register(as_actor(make_user()), str(event.pk), 2)
        waiting = services.registrations.register(as_actor(make_user()), str(event.pk), 1)

        result = services.events.cancel_event(admin_actor, str(event.pk))

        assert result.status is EventStatus.CANCELLED
        assert result.capacity.value == 2
        assert result.waitlist == ()
        assert result.registered_user_ids == frozenset()
        for registration in (held, waiting):
            row = orm.Registration.objects.get(pk=registration.id.value)
            assert row.status == orm.Registration.Status.CANCELLED
            assert row.tickets_issued == 0
        assert not orm.Ticket.objects.filter(event=event).exists()
        assert not orm.FollowUpTask.objects.filter(kind="promote_waitlist").exists()

    def test_cancel_event_twice(self, services, make_event, admin_actor):
        event = make_event(capacity=2)
        services.events.cancel_event(admin_actor, str(event.pk))

        with pytest.raises(InvalidTransitionError):
            services.events.cancel_event(admin_actor, str(event.pk))

    def test_cancel_event_requires_admin(self, services, make_event, organizer, as_actor):
        event = make_event(capacity=2)

        with pytest.raises(ForbiddenError):
            services.events.cancel_event(as_actor(organizer), str(event.pk))

    def test_delete_event_removes_registrations(
        self, services, make_event, make_user, as_actor, admin_actor
    ):
        event = make_event(capacity=2)
        services.registrations.register(as_actor(make_user()), str(event.pk), 2)

        removal = services.events.delete_event(admin_actor, str(event.pk))

        assert (removal.registrations, removal.tickets) == (1, 2)
        assert not orm.Registration.objects.exists()

    def test_delete_unknown_event(self, services, admin_actor):
        with pytest.raises(EventNotFoundError):
            services.events.delete_event(admin_actor, str(uuid4()))
