"""App settings, read from the ``ADMISSIONS`` dict in Django settings.

Example::

    ADMISSIONS = {
        "QR_TTL": timedelta(hours=12),
        "RUN_FOLLOWUPS_INLINE": False,
    }
"""

from datetime import timedelta
from typing import Any

from django.conf import settings

DEFAULTS: dict[str, Any] = {
    "QR_TTL": timedelta(hours=24),
    "RUN_FOLLOWUPS_INLINE": True,
    "TRANSACTION_RETRY_ATTEMPTS": 3,
    "TRANSACTION_RETRY_BASE_DELAY": 0.05,
    "TRANSACTION_RETRY_MAX_DELAY": 0.5,
    "FOLLOWUP_BATCH_SIZE": 100,
    "NOTIFICATION_FROM_EMAIL": None,
}


def admissions_setting(name: str) -> Any:
    """Return one app setting, falling back to its default."""
    if name not in DEFAULTS:
        raise KeyError(f"Unknown admissions setting: {name}")
    overrides = getattr(settings, "ADMISSIONS", {}) or {}
    return overrides.get(name, DEFAULTS[name])
