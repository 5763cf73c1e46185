"""Follow-up queue: side effects that must only happen after a commit.

The scheduler records tasks inside the triggering transaction; the worker
claims and runs them afterwards, either inline right after commit or from the
``process_followups`` management command. A failed task is logged and kept
FAILED so it can be retried. It never fails the request that scheduled it.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from admissions.domain.models import FollowUpKind, FollowUpStatus, Notice
from admissions.domain.value_objects import (
    EventId,
    FollowUpTaskId,
    RegistrationId,
    TicketId,
)
from admissions.stores.interfaces import FollowUpStore

logger = logging.getLogger(__name__)

FollowUpHandler = Callable[[dict[str, Any]], None]


class FollowUpScheduler:
    def __init__(self, store: FollowUpStore) -> None:
        self._store = store

    def promote_waitlist(self, event_id: EventId) -> FollowUpTaskId:
        return self._store.enqueue(FollowUpKind.PROMOTE_WAITLIST, {"event_id": str(event_id)})

    def render_qr(self, ticket_ids: Iterable[TicketId]) -> FollowUpTaskId | None:
        ids = [str(ticket_id) for ticket_id in ticket_ids]
        if not ids:
            return None
        return self._store.enqueue(FollowUpKind.RENDER_TICKET_QR, {"ticket_ids": ids})

    def notify(self, registration_id: RegistrationId, notice: Notice) -> FollowUpTaskId:
        return self._store.enqueue(
            FollowUpKind.NOTIFY_REGISTRATION,
            {"registration_id": str(registration_id), "notice": notice.value},
        )


class FollowUpWorker:
    """Claims recorded tasks and runs the handler registered for their kind."""

    def __init__(
        self, store: FollowUpStore, handlers: Mapping[FollowUpKind, FollowUpHandler]
    ) -> None:
        self._store = store
        self._handlers = dict(handlers)

    def process(self, task_id: FollowUpTaskId) -> FollowUpStatus | None:
        """Run one task. Returns its final status, or None if another worker holds it."""
        task = self._store.claim(task_id)
        if task is None:
            logger.debug("Follow-up %s already claimed", task_id)
            return None

        handler = self._handlers.get(task.kind)
        if handler is None:
            logger.error("No handler for follow-up kind %s (task %s)", task.kind.value, task_id)
            self._store.mark_failed(task_id, f"No handler for {task.kind.value}")
            return FollowUpStatus.FAILED

        try:
            handler(task.payload)
        except Exception as exc:
            logger.exception(
                "Follow-up %s (%s) failed on attempt %d", task_id, task.kind.value, task.attempts
            )
            self._store.mark_failed(task_id, f"{type(exc).__name__}: {exc}")
            return FollowUpStatus.FAILED

        self._store.mark_done(task_id)
        return FollowUpStatus.DONE

    def run_pending(self, limit: int) -> tuple[int, int]:
        """Drain up to `limit` pending tasks. Returns (completed, failed)."""
        completed = failed = 0
        for task_id in self._store.pending(limit):
            outcome = self.process(task_id)
            if outcome is FollowUpStatus.DONE:
                completed += 1
            elif outcome is FollowUpStatus.FAILED:
                failed += 1
        return completed, failed

    def requeue_failed(self) -> int:
        count = self._store.requeue_failed()
        if count:
            logger.info("Requeued %d failed follow-up(s)", count)
        return count
