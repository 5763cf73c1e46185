"""Transaction coordination on top of Django's transaction API.

A unit of work runs inside ``transaction.atomic()``. When it is the outermost
transaction, transient database conflicts (deadlocks, serialization failures,
lock timeouts) are retried with bounded exponential backoff.
"""

import functools
import logging
import time
from collections.abc import Callable
from typing import TypeVar

from django.db import OperationalError, transaction

from admissions.conf import admissions_setting
from admissions.stores.interfaces import TransactionCoordinator

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_on_conflict(
    max_attempts: int = 3, base_delay: float = 0.05, max_delay: float = 0.5
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Retry the decorated call when the database reports a transient conflict."""

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            attempt = 1
            while True:
                try:
                    return func(*args, **kwargs)
                except OperationalError as exc:
                    if attempt >= max_attempts:
                        logger.error(
                            "Transaction failed after %d attempts: %s", attempt, exc
                        )
                        raise
                    delay = min(max_delay, base_delay * (2 ** (attempt - 1)))
                    logger.warning(
                        "Transaction conflict (attempt %d/%d), retrying in %.2fs: %s",
                        attempt,
                        max_attempts,
                        delay,
                        exc,
                    )
                    time.sleep(delay)
                    attempt += 1

        return wrapper

    return decorator


class DjangoTransactionCoordinator(TransactionCoordinator):
    """Atomic multi-row writes backed by the database's own transactions."""

    def __init__(self, using: str | None = None) -> None:
        self._using = using
        self._run_with_retry = retry_on_conflict(
            max_attempts=admissions_setting("TRANSACTION_RETRY_ATTEMPTS"),
            base_delay=admissions_setting("TRANSACTION_RETRY_BASE_DELAY"),
            max_delay=admissions_setting("TRANSACTION_RETRY_MAX_DELAY"),
        )(self._run_atomic)

    def execute(self, operation: Callable[[], T]) -> T:
        if transaction.get_connection(self._using).in_atomic_block:
            # Joined an outer transaction: the owner of that transaction decides on retries.
            return self._run_atomic(operation)
        return self._run_with_retry(operation)

    def on_commit(self, callback: Callable[[], None]) -> None:
        transaction.on_commit(callback, using=self._using, robust=True)

    def _run_atomic(self, operation: Callable[[], T]) -> T:
        with transaction.atomic(using=self._using):
            return operation()
