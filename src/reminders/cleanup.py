"""Retention cleanup for finished reminders."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from src.database.connection import get_session
from src.database.reminders import delete_older_than
from src.reminders.config import ReminderConfig, get_reminder_settings
from src.reminders.models import CleanupResult

logger = logging.getLogger(__name__)


def run_retention_cleanup(
    now: datetime | None = None,
    settings: ReminderConfig | None = None,
) -> CleanupResult:
    """Delete sent, failed and dismissed reminders past the retention window.

    Deletes in batches, each in its own transaction, until a batch comes back
    short. Pending reminders are never deleted.

    :param now: Current time (defaults to now).
    :param settings: Reminder settings (defaults to the environment settings).
    :returns: The cutoff used and the number of reminders deleted.
    """
    settings = settings or get_reminder_settings()
    now = now or datetime.now(UTC)
    cutoff = now - timedelta(days=settings.retention_days)
    result = CleanupResult(cutoff=cutoff)

    while True:
        with get_session() as session:
            deleted = delete_older_than(
                session,
                cutoff,
                terminal_only=True,
                limit=settings.cleanup_batch_size,
            )
        result.batches += 1
        result.deleted += deleted
        if deleted < settings.cleanup_batch_size:
            break

    logger.info(
        f"Reminder cleanup complete: deleted={result.deleted}, batches={result.batches}, "
        f"cutoff={cutoff.isoformat()}"
    )
    return result
