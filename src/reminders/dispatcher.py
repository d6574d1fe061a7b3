"""Fan a due reminder out across its notification channels."""

from __future__ import annotations

import concurrent.futures
import logging
import threading
from collections.abc import Mapping

from src.database.reminders import Reminder
from src.notifiers.base import ChannelDeliveryError, NotificationPayload, Notifier
from src.reminders.exceptions import PersistenceError
from src.reminders.models import ChannelResult, DispatchOutcome
from src.reminders.recipients import Recipient, RecipientDirectory

logger = logging.getLogger(__name__)

NOTIFICATION_TITLE = "Medicine Reminder"
NOTIFICATION_TYPE = "medicine_reminder"

# Default seconds a single channel may take before it counts as failed
DEFAULT_CHANNEL_TIMEOUT = 15


def build_notification_payload(reminder: Reminder) -> NotificationPayload:
    """Build the notification content for a reminder.

    :param reminder: The reminder being dispatched.
    :returns: Channel-neutral payload.
    """
    dose = f"{reminder.medicine_name} ({reminder.dosage})" if reminder.dosage else (
        reminder.medicine_name
    )
    body = f"Time to give {dose}"

    lines = ["CareNest Medication Reminder", "", body]
    if reminder.frequency:
        lines.append(f"Frequency: {reminder.frequency}")
    lines.extend(["", "You're doing great!"])

    return NotificationPayload(
        title=NOTIFICATION_TITLE,
        body=body,
        text="\n".join(lines),
        metadata={
            "type": NOTIFICATION_TYPE,
            "reminder_id": str(reminder.id),
            "baby_id": reminder.baby_id,
            "medicine_name": reminder.medicine_name,
            "dosage": reminder.dosage or "",
            "frequency": reminder.frequency or "",
        },
    )


class NotificationDispatcher:
    """Deliver reminders on every usable channel, tolerating partial failure.

    Each dispatch runs its channel attempts on a pool with one thread per
    attempt, so every attempt starts as soon as it is submitted and
    ``channel_timeout`` bounds its run time only. Concurrent dispatches never
    queue behind each other's channels, and a failing or hanging channel
    never stops the other channels.
    """

    def __init__(
        self,
        notifiers: Mapping[str, Notifier],
        directory: RecipientDirectory,
        channel_timeout: float = DEFAULT_CHANNEL_TIMEOUT,
    ) -> None:
        """Initialise the dispatcher.

        :param notifiers: Registered notifiers keyed by channel identifier.
        :param directory: Recipient directory for resolving addresses.
        :param channel_timeout: Seconds an attempt may run before it counts as failed.
        """
        self._notifiers = dict(notifiers)
        self._directory = directory
        self._channel_timeout = channel_timeout
        # Pools whose attempts outlived their dispatch
        self._abandoned: set[concurrent.futures.ThreadPoolExecutor] = set()
        self._lock = threading.Lock()
        logger.debug(
            f"NotificationDispatcher initialised: channels={sorted(self._notifiers)}, "
            f"channel_timeout={channel_timeout}s"
        )

    @property
    def channels(self) -> list[str]:
        """Registered channel identifiers."""
        return sorted(self._notifiers)

    def dispatch(self, reminder: Reminder) -> DispatchOutcome:
        """Attempt delivery of a reminder on all of its usable channels.

        :param reminder: The reminder to deliver.
        :returns: Per-channel results.
        :raises PersistenceError: If the recipient lookup fails.
        """
        recipient = self._resolve_recipient(reminder.parent_id)
        payload = build_notification_payload(reminder)

        targets = self._select_targets(reminder, recipient)
        if not targets:
            logger.warning(
                f"No delivery channel available: reminder_id={reminder.id}, "
                f"channels={reminder.channels}"
            )
            return DispatchOutcome(reminder_id=reminder.id)

        executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=len(targets),
            thread_name_prefix="reminder-channel",
        )
        try:
            futures = {
                executor.submit(self._send, notifier, address, payload): notifier.channel
                for notifier, address in targets
            }
            _, not_done = concurrent.futures.wait(futures, timeout=self._channel_timeout)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        if not_done:
            self._track_abandoned(executor, not_done)

        results: list[ChannelResult] = []
        for future, channel in futures.items():
            if future in not_done:
                logger.warning(
                    f"Channel timed out: channel={channel}, reminder_id={reminder.id}, "
                    f"timeout={self._channel_timeout}s"
                )
                results.append(
                    ChannelResult(
                        channel=channel,
                        success=False,
                        reason=f"timed out after {self._channel_timeout}s",
                    )
                )
            else:
                results.append(future.result())

        outcome = DispatchOutcome(reminder_id=reminder.id, results=results)
        logger.info(
            f"Dispatched reminder: id={reminder.id}, delivered={outcome.delivered}, "
            f"results={[(r.channel, r.success) for r in results]}"
        )
        return outcome

    @property
    def abandoned_pools(self) -> int:
        """Number of pools still running attempts that timed out."""
        with self._lock:
            return len(self._abandoned)

    def close(self, wait: bool = False) -> None:
        """Shut down pools still running timed-out attempts.

        Provider calls carry their own HTTP timeouts, so waiting is bounded.

        :param wait: Block until those attempts have returned.
        """
        with self._lock:
            abandoned = list(self._abandoned)
            self._abandoned.clear()
        for executor in abandoned:
            executor.shutdown(wait=wait, cancel_futures=True)
        if abandoned:
            logger.info(f"Closed dispatcher: abandoned_pools={len(abandoned)}")

    def _track_abandoned(
        self,
        executor: concurrent.futures.ThreadPoolExecutor,
        not_done: set[concurrent.futures.Future[ChannelResult]],
    ) -> None:
        with self._lock:
            self._abandoned.add(executor)

        remaining = len(not_done)
        remaining_lock = threading.Lock()

        def _forget(_: concurrent.futures.Future[ChannelResult]) -> None:
            nonlocal remaining
            with remaining_lock:
                remaining -= 1
                finished = remaining == 0
            if finished:
                with self._lock:
                    self._abandoned.discard(executor)

        for future in not_done:
            future.add_done_callback(_forget)

    def _resolve_recipient(self, parent_id: str) -> Recipient:
        try:
            return self._directory.resolve(parent_id)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Recipient lookup failed for parent {parent_id}: {e}") from e

    def _select_targets(
        self,
        reminder: Reminder,
        recipient: Recipient,
    ) -> list[tuple[Notifier, str]]:
        targets: list[tuple[Notifier, str]] = []
        for channel in reminder.channels or []:
            notifier = self._notifiers.get(channel)
            if notifier is None:
                logger.debug(f"Channel not configured, skipping: channel={channel}")
                continue
            address = recipient.address_for(notifier.address_kind)
            if not address:
                logger.debug(
                    f"No {notifier.address_kind} for parent, skipping: channel={channel}, "
                    f"parent_id={recipient.parent_id}"
                )
                continue
            targets.append((notifier, address))
        return targets

    @staticmethod
    def _send(notifier: Notifier, address: str, payload: NotificationPayload) -> ChannelResult:
        try:
            message_id = notifier.send(address, payload)
        except ChannelDeliveryError as e:
            logger.warning(f"Channel delivery failed: {e}")
            return ChannelResult(channel=notifier.channel, success=False, reason=e.reason)
        except Exception as e:
            logger.exception(f"Unexpected error on channel {notifier.channel}")
            return ChannelResult(channel=notifier.channel, success=False, reason=str(e))
        return ChannelResult(
            channel=notifier.channel,
            success=True,
            provider_message_id=message_id,
        )
