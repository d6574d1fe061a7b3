"""Read-side queries for reminders."""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import UTC, datetime, time, timedelta

from sqlalchemy.orm import Session

from src.database.reminders import (
    Reminder,
    ReminderFilters,
    ReminderStatus,
    get_for_baby_in_range,
    get_for_parent,
    get_recently_sent,
    get_reminder_by_id,
)
from src.reminders.config import ReminderConfig, get_reminder_settings
from src.reminders.exceptions import ReminderAccessError, ReminderNotFoundError
from src.reminders.models import ReminderSummary

# How far back a delivery counts as "just sent" for in-app alerts
RECENTLY_SENT_WINDOW = timedelta(minutes=5)


def summarise(reminders: Iterable[Reminder]) -> ReminderSummary:
    """Count reminders by status.

    :param reminders: Reminders to count.
    :returns: Totals per status.
    """
    summary = ReminderSummary()
    for reminder in reminders:
        summary.total += 1
        if reminder.status == ReminderStatus.PENDING.value:
            summary.pending += 1
        elif reminder.status == ReminderStatus.SENT.value:
            summary.sent += 1
        elif reminder.status == ReminderStatus.DISMISSED.value:
            summary.dismissed += 1
        elif reminder.status == ReminderStatus.FAILED.value:
            summary.failed += 1
    return summary


def local_day_bounds(now: datetime, settings: ReminderConfig) -> tuple[datetime, datetime]:
    """Get the UTC bounds of the local calendar day containing ``now``.

    :param now: Current time (timezone-aware).
    :param settings: Reminder settings providing the timezone.
    :returns: Start (inclusive) and end (exclusive) of the day in UTC.
    """
    local_date = now.astimezone(settings.tz).date()
    start = datetime.combine(local_date, time.min, tzinfo=settings.tz)
    end = datetime.combine(local_date + timedelta(days=1), time.min, tzinfo=settings.tz)
    return start.astimezone(UTC), end.astimezone(UTC)


def get_today_reminders(
    session: Session,
    baby_id: str,
    now: datetime | None = None,
    settings: ReminderConfig | None = None,
) -> tuple[list[Reminder], ReminderSummary]:
    """Get a baby's reminders for today, with status counts.

    :param session: Database session.
    :param baby_id: Baby ID.
    :param now: Current time (defaults to now).
    :param settings: Reminder settings (defaults to the environment settings).
    :returns: Today's reminders in scheduled order and their summary.
    """
    settings = settings or get_reminder_settings()
    start, end = local_day_bounds(now or datetime.now(UTC), settings)
    reminders = get_for_baby_in_range(session, baby_id, start, end)
    return reminders, summarise(reminders)


def list_parent_reminders(
    session: Session,
    parent_id: str,
    filters: ReminderFilters | None = None,
) -> list[Reminder]:
    """List a parent's reminders, newest first.

    :param session: Database session.
    :param parent_id: Parent ID.
    :param filters: Optional status and date filters.
    :returns: Matching reminders.
    """
    return get_for_parent(session, parent_id, filters)


def get_recently_sent_reminders(
    session: Session,
    baby_id: str,
    now: datetime | None = None,
) -> list[Reminder]:
    """Get a baby's reminders delivered within the last few minutes.

    The app polls this to show in-app alerts for doses that were just sent.

    :param session: Database session.
    :param baby_id: Baby ID.
    :param now: Current time (defaults to now).
    :returns: Recently sent reminders, most recent first.
    """
    since = (now or datetime.now(UTC)) - RECENTLY_SENT_WINDOW
    return get_recently_sent(session, baby_id, since)


def get_reminder(
    session: Session,
    reminder_id: uuid.UUID,
    parent_id: str | None = None,
) -> Reminder:
    """Get a single reminder, optionally checking who owns it.

    :param session: Database session.
    :param reminder_id: Reminder ID.
    :param parent_id: If given, the reminder must belong to this parent.
    :returns: The reminder.
    :raises ReminderNotFoundError: If the reminder does not exist.
    :raises ReminderAccessError: If the reminder belongs to another parent.
    """
    reminder = get_reminder_by_id(session, reminder_id)
    if reminder is None:
        raise ReminderNotFoundError(reminder_id)
    if parent_id is not None and reminder.parent_id != parent_id:
        raise ReminderAccessError(reminder_id, parent_id)
    return reminder
