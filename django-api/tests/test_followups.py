"""Tests for the follow-up queue and the process_followups command."""

from datetime import timedelta
from io import StringIO
from unittest import mock

import pytest
from django.core.management import call_command
from django.utils import timezone

from admissions import models as orm
from admissions.domain.errors import AlreadyRegisteredError
from admissions.domain.models import FollowUpStatus
from admissions.domain.value_objects import FollowUpTaskId
from admissions.gateways.qr import PngQrRenderer
from admissions.services.factory import build_services
from admissions.stores.django_store import DjangoFollowUpStore


@pytest.fixture
def deferred(settings):
    """Services that leave follow-ups for the worker instead of running them after commit."""
    settings.ADMISSIONS = {"RUN_FOLLOWUPS_INLINE": False}
    return build_services()


def statuses() -> dict:
    return dict(orm.FollowUpTask.objects.values_list("kind", "status"))


@pytest.mark.django_db
class TestScheduling:
    def test_confirmed_admission_records_qr_and_notice_tasks(
        self, deferred, make_event, make_user, as_actor
    ):
        event = make_event(capacity=5)

        deferred.registrations.register(as_actor(make_user()), str(event.pk), 2)

        assert statuses() == {
            "render_ticket_qr": "PENDING",
            "notify_registration": "PENDING",
        }
        task = orm.FollowUpTask.objects.get(kind="render_ticket_qr")
        assert len(task.payload["ticket_ids"]) == 2

    def test_failed_domain_operation_records_nothing(
        self, deferred, make_event, make_user, as_actor
    ):
        event = make_event(capacity=5)
        actor = as_actor(make_user())
        deferred.registrations.register(actor, str(event.pk), 1)
        before = orm.FollowUpTask.objects.count()

        with pytest.raises(AlreadyRegisteredError):
            deferred.registrations.register(actor, str(event.pk), 1)

        assert orm.FollowUpTask.objects.count() == before

    def test_cancellation_records_promotion(self, deferred, make_event, make_user, as_actor):
        event = make_event(capacity=5)
        actor = as_actor(make_user())
        registration = deferred.registrations.register(actor, str(event.pk), 1)

        deferred.registrations.cancel(actor, str(registration.id))

        task = orm.FollowUpTask.objects.get(kind="promote_waitlist")
        assert task.payload == {"event_id": str(event.pk)}


@pytest.mark.django_db
class TestWorker:
    def test_run_pending_completes_tasks(
        self, deferred, make_event, make_user, as_actor, mailoutbox
    ):
        event = make_event(capacity=5)
        registration = deferred.registrations.register(as_actor(make_user()), str(event.pk), 1)

        completed, failed = deferred.worker.run_pending(limit=10)

        assert (completed, failed) == (2, 0)
        assert set(statuses().values()) == {"DONE"}
        assert len(mailoutbox) == 1
        ticket = orm.Ticket.objects.get(registration_id=registration.id.value)
        assert ticket.qr_data_url

    def test_task_is_claimed_once(self, deferred, make_event, make_user, as_actor):
        event = make_event(capacity=0)
        deferred.registrations.register(as_actor(make_user()), str(event.pk), 1)
        task = orm.FollowUpTask.objects.get()
        task_id = FollowUpTaskId(task.pk)

        assert deferred.worker.process(task_id) is FollowUpStatus.DONE
        assert deferred.worker.process(task_id) is None
        task.refresh_from_db()
        assert task.attempts == 1

    def test_failure_is_recorded_and_retryable(self, deferred, make_event, make_user, as_actor):
        event = make_event(capacity=5)
        deferred.registrations.register(as_actor(make_user()), str(event.pk), 1)

        with mock.patch.object(PngQrRenderer, "render", side_effect=OSError("disk full")):
            completed, failed = deferred.worker.run_pending(limit=10)
        assert (completed, failed) == (1, 1)

        task = orm.FollowUpTask.objects.get(kind="render_ticket_qr")
        assert task.status == orm.FollowUpTask.Status.FAILED
        assert task.last_error == "OSError: disk full"

        assert deferred.worker.requeue_failed() == 1
        assert deferred.worker.run_pending(limit=10) == (1, 0)
        task.refresh_from_db()
        assert task.status == orm.FollowUpTask.Status.DONE
        assert task.attempts == 2

    def test_promotion_task_promotes(self, deferred, make_event, make_user, as_actor):
        event = make_event(capacity=1)
        holder = as_actor(make_user())
        held = deferred.registrations.register(holder, str(event.pk), 1)
        waiting = deferred.registrations.register(as_actor(make_user()), str(event.pk), 1)
        deferred.registrations.cancel(holder, str(held.id))

        deferred.worker.run_pending(limit=50)

        row = orm.Registration.objects.get(pk=waiting.id.value)
        assert row.status == orm.Registration.Status.CONFIRMED
        assert row.tickets_issued == 1

    def test_failing_commit_callback_does_not_fail_the_request(
        self, services, make_event, make_user, as_actor, django_capture_on_commit_callbacks
    ):
        event = make_event(capacity=5)

        with mock.patch.object(
            DjangoFollowUpStore, "mark_done", side_effect=RuntimeError("queue down")
        ):
            with django_capture_on_commit_callbacks(execute=True):
                registration = services.registrations.register(
                    as_actor(make_user()), str(event.pk), 1
                )

        assert registration.status.value == "CONFIRMED"
        row = orm.Registration.objects.get(pk=registration.id.value)
        assert row.status == orm.Registration.Status.CONFIRMED
        assert not orm.FollowUpTask.objects.filter(status=orm.FollowUpTask.Status.DONE).exists()


@pytest.mark.django_db
class TestProcessFollowupsCommand:
    def test_command_drains_queue(self, deferred, make_event, make_user, as_actor):
        event = make_event(capacity=5)
        deferred.registrations.register(as_actor(make_user()), str(event.pk), 1)
        out = StringIO()

        call_command("process_followups", stdout=out)

        assert "2 done, 0 failed" in out.getvalue()
        assert set(statuses().values()) == {"DONE"}

    def test_command_retries_failed(self, deferred, make_event, make_user, as_actor):
        event = make_event(capacity=5)
        deferred.registrations.register(as_actor(make_user()), str(event.pk), 1)
        orm.FollowUpTask.objects.update(status=orm.FollowUpTask.Status.FAILED)
        out = StringIO()

        call_command("process_followups", "--retry-failed", stdout=out)

        assert "Requeued 2 failed task(s)" in out.getvalue()
        assert set(statuses().values()) == {"DONE"}

    def test_sweep_promotes_stranded_waitlist(self, deferred, make_event, make_user, as_actor):
        event = make_event(capacity=0)
        waiting = deferred.registrations.register(as_actor(make_user()), str(event.pk), 1)
        orm.Event.objects.filter(pk=event.pk).update(capacity=1)
        out = StringIO()

        call_command("process_followups", "--sweep", stdout=out)

        assert "Queued promotion for 1 event(s)" in out.getvalue()
        row = orm.Registration.objects.get(pk=waiting.id.value)
        assert row.status == orm.Registration.Status.CONFIRMED

    def test_sweep_skips_ended_events(self, deferred, make_event, make_user, as_actor):
        event = make_event(capacity=0)
        waiting = deferred.registrations.register(as_actor(make_user()), str(event.pk), 1)
        past = timezone.now() - timedelta(hours=1)
        orm.Event.objects.filter(pk=event.pk).update(
            capacity=1, starts_at=past - timedelta(hours=8), ends_at=past
        )
        out = StringIO()

        call_command("process_followups", "--sweep", stdout=out)

        assert "Queued promotion for 0 event(s)" in out.getvalue()
        row = orm.Registration.objects.get(pk=waiting.id.value)
        assert row.status == orm.Registration.Status.WAITLISTED
