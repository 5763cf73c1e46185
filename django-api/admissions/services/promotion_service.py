"""Waitlist promotion engine.

Runs after any change that frees capacity. The policy itself lives in
`admissions.domain.waitlist.plan_promotions`; this service applies a plan to
the stores in one transaction with the event row locked.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from django.utils import timezone

from admissions.domain.errors import CapacityConflictError, EventNotFoundError
from admissions.domain.models import (
    Actor,
    EventStatus,
    Notice,
    Promotion,
    RegistrationStatus,
)
from admissions.domain.value_objects import EventId
from admissions.domain.waitlist import plan_promotions
from admissions.services.followup_service import FollowUpScheduler
from admissions.services.ledger import CapacityLedger
from admissions.services.parsing import parse_event_id
from admissions.services.permissions import ensure_admin
from admissions.services.ticket_service import TicketService
from admissions.stores.interfaces import (
    EventStore,
    RegistrationStore,
    TransactionCoordinator,
)

logger = logging.getLogger(__name__)

CLOSED_STATUSES = (EventStatus.CANCELLED, EventStatus.COMPLETED)


class PromotionService:
    def __init__(
        self,
        transactions: TransactionCoordinator,
        events: EventStore,
        registrations: RegistrationStore,
        ledger: CapacityLedger,
        issuer: TicketService,
        scheduler: FollowUpScheduler,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._transactions = transactions
        self._events = events
        self._registrations = registrations
        self._ledger = ledger
        self._issuer = issuer
        self._scheduler = scheduler
        self._now = clock

    def promote(self, event_id: EventId) -> list[Promotion]:
        """Confirm waitlisted registrations that fit the event's free capacity.

        An empty list is a normal outcome.
        """

        def run() -> list[Promotion]:
            event = self._events.lock_event(event_id)
            if event is None:
                raise EventNotFoundError(str(event_id))
            if event.status in CLOSED_STATUSES or event.has_ended(self._now()):
                return []

            plan = plan_promotions(event.capacity.value, self._events.load_waitlist(event_id))
            if not plan.changed:
                return []

            promotions = []
            for slot in plan.promoted:
                if not self._ledger.reserve(event_id, slot.quantity):
                    raise CapacityConflictError()
                self._registrations.set_status(slot.registration_id, RegistrationStatus.CONFIRMED)
                self._events.add_registered_user(event_id, slot.user_id)
                tickets = self._issuer.issue(slot.registration_id, slot.quantity)
                self._scheduler.render_qr(ticket.id for ticket in tickets)
                self._scheduler.notify(slot.registration_id, Notice.PROMOTED)
                promotions.append(
                    Promotion(
                        registration_id=slot.registration_id,
                        user_id=slot.user_id,
                        quantity=slot.quantity,
                    )
                )
            self._events.replace_waitlist(
                event_id, [slot.registration_id for slot in plan.remaining]
            )
            return promotions

        promotions = self._transactions.execute(run)
        for promotion in promotions:
            logger.info(
                "Promoted registration %s on event %s (%d seat(s))",
                promotion.registration_id,
                event_id,
                promotion.quantity,
            )
        return promotions

    def promote_waitlist(self, actor: Actor, event_id: Any) -> list[Promotion]:
        ensure_admin(actor)
        eid = parse_event_id(event_id)
        if not self._events.event_exists(eid):
            raise EventNotFoundError(str(eid))
        return self.promote(eid)

    def schedule_sweep(self) -> list[EventId]:
        """Queue promotion for every event with free seats and a waitlist."""
        event_ids = self._events.events_awaiting_promotion()
        for event_id in event_ids:
            self._scheduler.promote_waitlist(event_id)
        if event_ids:
            logger.info("Sweep queued promotion for %d event(s)", len(event_ids))
        return event_ids
