"""Wires stores, gateways and services together."""

from dataclasses import dataclass

from admissions.conf import admissions_setting
from admissions.domain.models import FollowUpKind, Notice
from admissions.domain.value_objects import (
    EventId,
    FollowUpTaskId,
    RegistrationId,
    TicketId,
)
from admissions.gateways.identity import DjangoIdentityDirectory
from admissions.gateways.interfaces import (
    IdentityDirectory,
    NotificationDispatcher,
    QrRenderer,
)
from admissions.gateways.notifications import EmailNotificationDispatcher
from admissions.gateways.qr import PngQrRenderer
from admissions.services.event_service import EventService
from admissions.services.followup_service import FollowUpScheduler, FollowUpWorker
from admissions.services.ledger import CapacityLedger
from admissions.services.promotion_service import PromotionService
from admissions.services.registration_service import RegistrationService
from admissions.services.ticket_service import TicketService
from admissions.stores.django_store import (
    DjangoEventStore,
    DjangoFollowUpStore,
    DjangoRegistrationStore,
    DjangoTicketStore,
)
from admissions.stores.transactions import DjangoTransactionCoordinator


@dataclass(frozen=True)
class AdmissionServices:
    identity: IdentityDirectory
    registrations: RegistrationService
    tickets: TicketService
    promotions: PromotionService
    events: EventService
    worker: FollowUpWorker


def build_services(
    identity: IdentityDirectory | None = None,
    notifier: NotificationDispatcher | None = None,
    qr_renderer: QrRenderer | None = None,
    run_inline: bool | None = None,
) -> AdmissionServices:
    identity = identity or DjangoIdentityDirectory()
    notifier = notifier or EmailNotificationDispatcher()
    qr_renderer = qr_renderer or PngQrRenderer()
    if run_inline is None:
        run_inline = admissions_setting("RUN_FOLLOWUPS_INLINE")

    transactions = DjangoTransactionCoordinator()
    event_store = DjangoEventStore()
    registration_store = DjangoRegistrationStore()
    ticket_store = DjangoTicketStore()
    followup_store = DjangoFollowUpStore()

    ledger = CapacityLedger(event_store)
    scheduler = FollowUpScheduler(followup_store)
    tickets = TicketService(
        transactions,
        event_store,
        registration_store,
        ticket_store,
        ledger,
        scheduler,
        identity,
        qr_renderer,
    )
    registrations = RegistrationService(
        transactions,
        event_store,
        registration_store,
        ticket_store,
        ledger,
        tickets,
        scheduler,
        identity,
        notifier,
    )
    promotions = PromotionService(
        transactions, event_store, registration_store, ledger, tickets, scheduler
    )
    events = EventService(
        transactions,
        event_store,
        registration_store,
        ticket_store,
        ledger,
        scheduler,
        identity,
    )

    worker = FollowUpWorker(
        followup_store,
        {
            FollowUpKind.PROMOTE_WAITLIST: lambda payload: promotions.promote(
                EventId.from_string(payload["event_id"])
            ),
            FollowUpKind.RENDER_TICKET_QR: lambda payload: tickets.render_qr_codes(
                TicketId.from_string(value) for value in payload["ticket_ids"]
            ),
            FollowUpKind.NOTIFY_REGISTRATION: lambda payload: registrations.deliver_notice(
                RegistrationId.from_string(payload["registration_id"]),
                Notice(payload["notice"]),
            ),
        },
    )
    if run_inline:

        def dispatch(task_id: FollowUpTaskId) -> None:
            def run() -> None:
                worker.process(task_id)

            transactions.on_commit(run)

        followup_store.bind_dispatcher(dispatch)

    return AdmissionServices(
        identity=identity,
        registrations=registrations,
        tickets=tickets,
        promotions=promotions,
        events=events,
        worker=worker,
    )
