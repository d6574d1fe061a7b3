"""Process due reminders: claim, dispatch, record."""

from __future__ import annotations

import concurrent.futures
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import StrEnum

from sqlalchemy.exc import SQLAlchemyError

from src.database.connection import get_session
from src.database.reminders import (
    Reminder,
    ReminderStatus,
    claim_reminder,
    defer_reminder,
    get_pending_due,
    release_claim,
)
from src.reminders.config import ReminderConfig, get_reminder_settings
from src.reminders.dispatcher import NotificationDispatcher
from src.reminders.exceptions import PersistenceError
from src.reminders.lifecycle import fail_reminder, record_dispatch_outcome

logger = logging.getLogger(__name__)


class ReminderResult(StrEnum):
    """What a pass did with one due reminder."""

    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"  # Claimed elsewhere or changed during dispatch
    DEFERRED = "deferred"  # Pushed back by the persistence retry policy


@dataclass
class ProcessingStats:
    """Stats for one processing pass."""

    found: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    deferred: int = 0
    errors: list[str] = field(default_factory=list)

    def record(self, result: ReminderResult) -> None:
        """Count the result for one reminder.

        :param result: What happened to the reminder.
        """
        if result == ReminderResult.SENT:
            self.sent += 1
        elif result == ReminderResult.FAILED:
            self.failed += 1
        elif result == ReminderResult.SKIPPED:
            self.skipped += 1
        else:
            self.deferred += 1


def _utc_now() -> datetime:
    return datetime.now(UTC)


class ReminderProcessor:
    """Runs processing passes over due reminders.

    Each reminder is claimed before dispatch so overlapping passes, in this
    process or another, never dispatch the same reminder twice within the
    claim lease. Reminders are handled independently with bounded
    concurrency and each store operation uses its own short session.
    """

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        settings: ReminderConfig | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialise the processor.

        :param dispatcher: Dispatcher used to deliver reminders.
        :param settings: Reminder settings (defaults to the environment settings).
        :param clock: Source of the current time.
        """
        self._dispatcher = dispatcher
        self._settings = settings or get_reminder_settings()
        self._clock = clock
        self._claim_lease = timedelta(seconds=self._settings.claim_lease_seconds)

    def process_due_reminders(self, now: datetime | None = None) -> ProcessingStats:
        """Dispatch every pending reminder that is due.

        :param now: Time the pass runs at (defaults to the clock).
        :returns: Stats for the pass.
        """
        now = now or self._clock()
        stats = ProcessingStats()

        try:
            with get_session() as session:
                due = get_pending_due(
                    session,
                    now=now,
                    limit=self._settings.batch_size,
                    claim_lease=self._claim_lease,
                )
        except SQLAlchemyError as e:
            error_msg = f"Failed to fetch due reminders: {e}"
            logger.exception(error_msg)
            stats.errors.append(error_msg)
            return stats

        stats.found = len(due)
        if not due:
            logger.debug("No due reminders")
            return stats

        workers = min(self._settings.batch_concurrency, len(due))
        with concurrent.futures.ThreadPoolExecutor(
            max_workers=workers,
            thread_name_prefix="reminder-pass",
        ) as pool:
            futures = {
                pool.submit(self._process_reminder, reminder, now): reminder for reminder in due
            }
            for future in concurrent.futures.as_completed(futures):
                reminder = futures[future]
                try:
                    stats.record(future.result())
                except Exception as e:
                    error_msg = f"Error processing reminder {reminder.id}: {e}"
                    logger.exception(error_msg)
                    stats.errors.append(error_msg)

        logger.info(
            f"Reminder pass complete: found={stats.found}, sent={stats.sent}, "
            f"failed={stats.failed}, skipped={stats.skipped}, deferred={stats.deferred}, "
            f"errors={len(stats.errors)}"
        )
        return stats

    def _process_reminder(self, reminder: Reminder, now: datetime) -> ReminderResult:
        """Claim, dispatch and record one reminder.

        :param reminder: The due reminder.
        :param now: Time the pass runs at.
        :returns: What happened to the reminder.
        """
        claim_token = uuid.uuid4().hex

        with get_session() as session:
            claimed = claim_reminder(
                session,
                reminder.id,
                claim_token,
                now=now,
                claim_lease=self._claim_lease,
            )
        if not claimed:
            logger.debug(f"Reminder already claimed or no longer pending: id={reminder.id}")
            return ReminderResult.SKIPPED

        try:
            outcome = self._dispatcher.dispatch(reminder)
            with get_session() as session:
                updated = record_dispatch_outcome(
                    session,
                    reminder.id,
                    outcome,
                    claim_token=claim_token,
                    now=self._clock(),
                )
        except (PersistenceError, SQLAlchemyError) as e:
            return self._apply_retry_policy(reminder, claim_token, e)
        except Exception:
            self._release(reminder, claim_token)
            raise

        if updated is None:
            return ReminderResult.SKIPPED
        if updated.status == ReminderStatus.SENT.value:
            return ReminderResult.SENT
        return ReminderResult.FAILED

    def _apply_retry_policy(
        self,
        reminder: Reminder,
        claim_token: str,
        error: Exception,
    ) -> ReminderResult:
        """Defer a reminder after a persistence failure, or fail it once retries run out.

        The backoff doubles on every deferral. Deferrals never count as
        dispatch attempts.

        :param reminder: The reminder whose pass failed.
        :param claim_token: Claim held for the reminder.
        :param error: The persistence failure.
        :returns: DEFERRED, FAILED, or SKIPPED if the reminder changed meanwhile.
        """
        retries_used = reminder.retry_count or 0
        now = self._clock()
        logger.warning(
            f"Persistence failure for reminder: id={reminder.id}, "
            f"retries_used={retries_used}, error={error}"
        )

        try:
            with get_session() as session:
                if retries_used >= self._settings.max_persistence_retries:
                    reason = f"gave up after {retries_used} retries: {error}"
                    updated = fail_reminder(
                        session, reminder.id, reason, claim_token=claim_token, now=now
                    )
                    return ReminderResult.FAILED if updated else ReminderResult.SKIPPED

                backoff = timedelta(seconds=self._settings.retry_backoff_seconds * 2**retries_used)
                deferred = defer_reminder(
                    session,
                    reminder.id,
                    claim_token,
                    next_attempt_at=now + backoff,
                    error_message=str(error),
                    now=now,
                )
                return ReminderResult.DEFERRED if deferred else ReminderResult.SKIPPED
        except SQLAlchemyError as e:
            # The claim lapses with its lease and the reminder becomes due again
            raise PersistenceError(
                f"Could not apply retry policy to reminder {reminder.id}: {e}"
            ) from e

    def close(self) -> None:
        """Release the dispatcher's channel pools."""
        self._dispatcher.close()

    def _release(self, reminder: Reminder, claim_token: str) -> None:
        try:
            with get_session() as session:
                release_claim(session, reminder.id, claim_token)
        except SQLAlchemyError:
            logger.exception(f"Failed to release claim: id={reminder.id}")
