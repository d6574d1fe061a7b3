"""Reminder lifecycle: allowed status transitions and the writes that apply them.

    pending -> sent        dispatch attempted, at least one channel delivered
    pending -> failed      dispatch attempted, no channel delivered
                           (or persistence retries ran out)
    pending/sent/failed -> dismissed
                           parent action, at any time

``dismissed`` is final and nothing automatic leaves ``failed``.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from sqlalchemy.orm import Session

from src.database.reminders import (
    Reminder,
    ReminderStatus,
    dismiss,
    get_reminder_by_id,
    update_status,
)
from src.reminders.exceptions import (
    InvalidTransitionError,
    ReminderAccessError,
    ReminderNotFoundError,
)
from src.reminders.models import DispatchOutcome

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[ReminderStatus, frozenset[ReminderStatus]] = {
    ReminderStatus.PENDING: frozenset(
        {ReminderStatus.SENT, ReminderStatus.FAILED, ReminderStatus.DISMISSED}
    ),
    ReminderStatus.SENT: frozenset({ReminderStatus.DISMISSED}),
    ReminderStatus.FAILED: frozenset({ReminderStatus.DISMISSED}),
    ReminderStatus.DISMISSED: frozenset(),
}


def can_transition(current: ReminderStatus | str, target: ReminderStatus | str) -> bool:
    """Check whether a status transition is allowed.

    :param current: Current status.
    :param target: Requested status.
    :returns: True if the transition is allowed.
    """
    return ReminderStatus(target) in ALLOWED_TRANSITIONS[ReminderStatus(current)]


def ensure_transition(current: ReminderStatus | str, target: ReminderStatus | str) -> None:
    """Raise if a status transition is not allowed.

    :param current: Current status.
    :param target: Requested status.
    :raises InvalidTransitionError: If the transition is not allowed.
    """
    if not can_transition(current, target):
        raise InvalidTransitionError(str(current), str(target))


def source_statuses(target: ReminderStatus) -> list[ReminderStatus]:
    """Get the statuses a reminder may move to ``target`` from.

    :param target: Target status.
    :returns: Allowed source statuses.
    """
    return [source for source, targets in ALLOWED_TRANSITIONS.items() if target in targets]


def status_for_outcome(outcome: DispatchOutcome) -> ReminderStatus:
    """Get the status a dispatch outcome moves a reminder to.

    :param outcome: Dispatch outcome.
    :returns: SENT if any channel delivered, otherwise FAILED.
    """
    return ReminderStatus.SENT if outcome.delivered else ReminderStatus.FAILED


def record_dispatch_outcome(
    session: Session,
    reminder_id: uuid.UUID,
    outcome: DispatchOutcome,
    claim_token: str,
    now: datetime | None = None,
) -> Reminder | None:
    """Write the result of a dispatch attempt.

    Counts one attempt regardless of how many channels were tried. The write
    only applies while the reminder is still pending under ``claim_token``;
    if the parent dismissed it mid-dispatch the result is discarded.

    :param session: Database session.
    :param reminder_id: Reminder ID.
    :param outcome: Dispatch outcome.
    :param claim_token: Claim held by the dispatching worker.
    :param now: Current time (defaults to now).
    :returns: The updated reminder, or None if the result was discarded.
    """
    target = status_for_outcome(outcome)
    reminder = update_status(
        session,
        reminder_id,
        target,
        attempt_delta=1,
        error_message=outcome.error_message,
        expected_statuses=source_statuses(target),
        claim_token=claim_token,
        now=now,
    )
    if reminder is None:
        logger.warning(
            f"Discarding dispatch result, reminder changed during dispatch: "
            f"id={reminder_id}, result={target.value}"
        )
    return reminder


def fail_reminder(
    session: Session,
    reminder_id: uuid.UUID,
    reason: str,
    claim_token: str,
    now: datetime | None = None,
) -> Reminder | None:
    """Mark a claimed reminder as failed without counting a dispatch attempt.

    :param session: Database session.
    :param reminder_id: Reminder ID.
    :param reason: Human-readable failure reason.
    :param claim_token: Claim held by the worker.
    :param now: Current time (defaults to now).
    :returns: The updated reminder, or None if it was no longer pending under the claim.
    """
    return update_status(
        session,
        reminder_id,
        ReminderStatus.FAILED,
        error_message=reason,
        expected_statuses=source_statuses(ReminderStatus.FAILED),
        claim_token=claim_token,
        now=now,
    )


def dismiss_reminder(
    session: Session,
    reminder_id: uuid.UUID,
    now: datetime | None = None,
    parent_id: str | None = None,
) -> Reminder:
    """Dismiss a reminder on the parent's request.

    Dismissing an already dismissed reminder returns it unchanged.

    :param session: Database session.
    :param reminder_id: Reminder ID.
    :param now: Current time (defaults to now).
    :param parent_id: If given, the reminder must belong to this parent.
    :returns: The dismissed reminder.
    :raises ReminderNotFoundError: If the reminder does not exist.
    :raises ReminderAccessError: If the reminder belongs to another parent.
    """
    reminder = get_reminder_by_id(session, reminder_id)
    if reminder is None:
        raise ReminderNotFoundError(reminder_id)
    if parent_id is not None and reminder.parent_id != parent_id:
        raise ReminderAccessError(reminder_id, parent_id)
    if reminder.status == ReminderStatus.DISMISSED.value:
        return reminder

    ensure_transition(reminder.status, ReminderStatus.DISMISSED)
    dismissed = dismiss(session, reminder_id, now=now)
    if dismissed is None:
        raise ReminderNotFoundError(reminder_id)
    return dismissed
