"""Database operations for medicine reminders.

Every query filters on a single indexed column and applies any remaining
predicates (date ranges, claim state, sorting) in Python after a bounded
fetch. Per-parent reminder volume is small, so this avoids provisioning
composite indexes. It is a deliberate scalability ceiling: if volume per
parent grows past the fetch limits below, move to indexed or time-bucketed
queries instead of raising the limits.
"""

from __future__ import annotations

import logging
import uuid as uuid_module
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy.orm import Session

from src.database.reminders.models import TERMINAL_STATUSES, Reminder, ReminderStatus

logger = logging.getLogger(__name__)

# Bounded fetch sizes for the single-column queries
PENDING_FETCH_LIMIT = 100
BABY_FETCH_LIMIT = 100
PARENT_FETCH_LIMIT = 300
PARENT_RESULT_LIMIT = 100
RECENTLY_SENT_LIMIT = 10

# How long a dispatch claim is honoured before the reminder is due again
DEFAULT_CLAIM_LEASE = timedelta(minutes=5)


@dataclass(frozen=True)
class ReminderFilters:
    """Optional filters for listing a parent's reminders."""

    status: ReminderStatus | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


def as_utc(value: datetime) -> datetime:
    """Return a timezone-aware UTC datetime.

    Naive values are treated as UTC, which is what the database stores.

    :param value: The datetime to normalise.
    :returns: The datetime in UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def build_dedupe_key(baby_id: str, medicine_name: str, scheduled_for: datetime) -> str:
    """Build the uniqueness key for a dose occurrence.

    :param baby_id: Baby ID.
    :param medicine_name: Medicine name (case and surrounding whitespace ignored).
    :param scheduled_for: Occurrence timestamp.
    :returns: The dedupe key.
    """
    normalised_name = " ".join(medicine_name.split()).casefold()
    return f"{baby_id}|{normalised_name}|{as_utc(scheduled_for).isoformat()}"


def create_reminder(  # noqa: PLR0913
    session: Session,
    *,
    baby_id: str,
    parent_id: str,
    medicine_name: str,
    dosage: str,
    frequency: str,
    dose_time: str,
    scheduled_for: datetime,
    channels: Iterable[str],
    now: datetime | None = None,
) -> Reminder:
    """Create a pending reminder for one dose occurrence.

    :param session: Database session.
    :param baby_id: Baby the medicine is for.
    :param parent_id: Parent who receives the notifications.
    :param medicine_name: Medicine name.
    :param dosage: Dosage description.
    :param frequency: Frequency description.
    :param dose_time: Time of day in HH:MM format.
    :param scheduled_for: When the dose is due.
    :param channels: Channel identifiers to notify on.
    :param now: Current time (defaults to now).
    :returns: The created reminder.
    """
    if now is None:
        now = datetime.now(UTC)

    scheduled_for = as_utc(scheduled_for)
    reminder = Reminder(
        id=uuid_module.uuid4(),
        baby_id=baby_id,
        parent_id=parent_id,
        medicine_name=medicine_name,
        dosage=dosage,
        frequency=frequency,
        dose_time=dose_time,
        scheduled_for=scheduled_for,
        dedupe_key=build_dedupe_key(baby_id, medicine_name, scheduled_for),
        channels=list(channels),
        status=ReminderStatus.PENDING.value,
        attempt_count=0,
        retry_count=0,
        created_at=now,
        updated_at=now,
    )
    session.add(reminder)
    session.flush()
    logger.info(
        f"Created reminder: id={reminder.id}, medicine={medicine_name!r}, "
        f"scheduled_for={scheduled_for.isoformat()}, baby_id={baby_id}, "
        f"channels={reminder.channels}"
    )
    return reminder


def reminder_exists(
    session: Session,
    baby_id: str,
    medicine_name: str,
    scheduled_for: datetime,
) -> bool:
    """Check whether a reminder already exists for a dose occurrence.

    :param session: Database session.
    :param baby_id: Baby ID.
    :param medicine_name: Medicine name.
    :param scheduled_for: Occurrence timestamp.
    :returns: True if a matching reminder exists.
    """
    key = build_dedupe_key(baby_id, medicine_name, scheduled_for)
    return session.query(Reminder).filter(Reminder.dedupe_key == key).first() is not None


def get_reminder_by_id(
    session: Session,
    reminder_id: uuid_module.UUID,
) -> Reminder | None:
    """Get a reminder by ID.

    :param session: Database session.
    :param reminder_id: Reminder ID.
    :returns: The reminder or None if not found.
    """
    return session.query(Reminder).filter(Reminder.id == reminder_id).first()


def _is_claim_live(reminder: Reminder, now: datetime, claim_lease: timedelta) -> bool:
    if reminder.claim_token is None or reminder.claimed_at is None:
        return False
    return as_utc(reminder.claimed_at) + claim_lease > now


def get_pending_due(
    session: Session,
    now: datetime | None = None,
    limit: int = PENDING_FETCH_LIMIT,
    claim_lease: timedelta = DEFAULT_CLAIM_LEASE,
) -> list[Reminder]:
    """Get pending reminders that are due to be dispatched.

    Fetches by status only, then keeps reminders that are scheduled at or
    before ``now``, are not waiting out a retry backoff, and are not held by a
    live dispatch claim. Oldest first.

    :param session: Database session.
    :param now: Current time (defaults to now).
    :param limit: Maximum number of reminders to return.
    :param claim_lease: How long a claim blocks re-selection.
    :returns: Due reminders.
    """
    if now is None:
        now = datetime.now(UTC)
    now = as_utc(now)

    candidates = (
        session.query(Reminder)
        .filter(Reminder.status == ReminderStatus.PENDING.value)
        .order_by(Reminder.scheduled_for.asc())
        .limit(PENDING_FETCH_LIMIT)
        .all()
    )

    due = [
        r
        for r in candidates
        if as_utc(r.scheduled_for) <= now
        and (r.next_attempt_at is None or as_utc(r.next_attempt_at) <= now)
        and not _is_claim_live(r, now, claim_lease)
    ]
    due.sort(key=lambda r: as_utc(r.scheduled_for))

    logger.debug(f"Pending reminders due: {len(due)} of {len(candidates)} pending fetched")
    return due[:limit]


def get_for_baby_in_range(
    session: Session,
    baby_id: str,
    start: datetime,
    end: datetime,
) -> list[Reminder]:
    """Get a baby's reminders scheduled within ``[start, end)``.

    Only the baby's most recently scheduled reminders are fetched, which
    covers today and the generation window ahead of it.

    :param session: Database session.
    :param baby_id: Baby ID.
    :param start: Inclusive lower bound.
    :param end: Exclusive upper bound.
    :returns: Reminders sorted by scheduled time ascending.
    """
    start = as_utc(start)
    end = as_utc(end)

    candidates = (
        session.query(Reminder)
        .filter(Reminder.baby_id == baby_id)
        .order_by(Reminder.scheduled_for.desc())
        .limit(BABY_FETCH_LIMIT)
        .all()
    )
    in_range = [r for r in candidates if start <= as_utc(r.scheduled_for) < end]
    in_range.sort(key=lambda r: as_utc(r.scheduled_for))
    return in_range


def get_for_parent(
    session: Session,
    parent_id: str,
    filters: ReminderFilters | None = None,
    limit: int = PARENT_RESULT_LIMIT,
) -> list[Reminder]:
    """Get a parent's reminders, optionally filtered by status and date range.

    :param session: Database session.
    :param parent_id: Parent ID.
    :param filters: Optional status and scheduled-time bounds (inclusive).
    :param limit: Maximum number of reminders to return.
    :returns: Reminders sorted by scheduled time descending.
    """
    filters = filters or ReminderFilters()

    reminders = (
        session.query(Reminder)
        .filter(Reminder.parent_id == parent_id)
        .order_by(Reminder.scheduled_for.desc())
        .limit(PARENT_FETCH_LIMIT)
        .all()
    )

    if filters.status is not None:
        reminders = [r for r in reminders if r.status == filters.status.value]
    if filters.start_date is not None:
        start = as_utc(filters.start_date)
        reminders = [r for r in reminders if as_utc(r.scheduled_for) >= start]
    if filters.end_date is not None:
        end = as_utc(filters.end_date)
        reminders = [r for r in reminders if as_utc(r.scheduled_for) <= end]

    reminders.sort(key=lambda r: as_utc(r.scheduled_for), reverse=True)
    return reminders[:limit]


def get_recently_sent(
    session: Session,
    baby_id: str,
    since: datetime,
    limit: int = RECENTLY_SENT_LIMIT,
) -> list[Reminder]:
    """Get a baby's reminders that were sent at or after ``since``.

    Fetches the baby's most recently updated reminders and keeps the sent
    ones, newest first.

    :param session: Database session.
    :param baby_id: Baby ID.
    :param since: Earliest updated_at to include.
    :param limit: Maximum number of reminders to return.
    :returns: Recently sent reminders sorted by updated_at descending.
    """
    since = as_utc(since)

    candidates = (
        session.query(Reminder)
        .filter(Reminder.baby_id == baby_id)
        .order_by(Reminder.updated_at.desc())
        .limit(BABY_FETCH_LIMIT)
        .all()
    )
    recent = [
        r
        for r in candidates
        if r.status == ReminderStatus.SENT.value and as_utc(r.updated_at) >= since
    ]
    recent.sort(key=lambda r: as_utc(r.updated_at), reverse=True)
    return recent[:limit]


def claim_reminder(
    session: Session,
    reminder_id: uuid_module.UUID,
    claim_token: str,
    now: datetime | None = None,
    claim_lease: timedelta = DEFAULT_CLAIM_LEASE,
) -> bool:
    """Claim a pending reminder for dispatch.

    The update only applies if the reminder is still pending and either
    unclaimed or holding an expired claim, so at most one worker wins.

    :param session: Database session.
    :param reminder_id: Reminder ID.
    :param claim_token: Token identifying this dispatch attempt.
    :param now: Current time (defaults to now).
    :param claim_lease: How long an existing claim is honoured.
    :returns: True if this caller now holds the claim.
    """
    if now is None:
        now = datetime.now(UTC)

    reminder = get_reminder_by_id(session, reminder_id)
    if reminder is None or reminder.status != ReminderStatus.PENDING.value:
        return False
    if _is_claim_live(reminder, as_utc(now), claim_lease):
        return False

    # Compare-and-set on the claim we observed
    claimed = (
        session.query(Reminder)
        .filter(
            Reminder.id == reminder_id,
            Reminder.status == ReminderStatus.PENDING.value,
            Reminder.claim_token.is_(None)
            if reminder.claim_token is None
            else Reminder.claim_token == reminder.claim_token,
        )
        .update(
            {Reminder.claim_token: claim_token, Reminder.claimed_at: now},
            synchronize_session=False,
        )
    )
    session.flush()

    if claimed != 1:
        logger.debug(f"Lost claim race for reminder: id={reminder_id}")
        return False

    logger.debug(f"Claimed reminder: id={reminder_id}, token={claim_token}")
    return True


def release_claim(
    session: Session,
    reminder_id: uuid_module.UUID,
    claim_token: str,
) -> bool:
    """Release a dispatch claim without changing the reminder's status.

    :param session: Database session.
    :param reminder_id: Reminder ID.
    :param claim_token: Token of the claim being released.
    :returns: True if the claim was held and has been released.
    """
    released = (
        session.query(Reminder)
        .filter(Reminder.id == reminder_id, Reminder.claim_token == claim_token)
        .update(
            {Reminder.claim_token: None, Reminder.claimed_at: None},
            synchronize_session=False,
        )
    )
    session.flush()
    return released == 1


def defer_reminder(
    session: Session,
    reminder_id: uuid_module.UUID,
    claim_token: str,
    next_attempt_at: datetime,
    error_message: str,
    now: datetime | None = None,
) -> bool:
    """Release a claim and push the reminder back for a later retry.

    Used when a pass could not complete for a reminder because of a store or
    lookup failure. The reminder stays pending and ``attempt_count`` is left
    unchanged; only ``retry_count`` moves.

    :param session: Database session.
    :param reminder_id: Reminder ID.
    :param claim_token: Token of the claim being released.
    :param next_attempt_at: Earliest time the reminder may be selected again.
    :param error_message: Reason for the deferral.
    :param now: Current time (defaults to now).
    :returns: True if the reminder was deferred.
    """
    if now is None:
        now = datetime.now(UTC)

    deferred = (
        session.query(Reminder)
        .filter(
            Reminder.id == reminder_id,
            Reminder.claim_token == claim_token,
            Reminder.status == ReminderStatus.PENDING.value,
        )
        .update(
            {
                Reminder.claim_token: None,
                Reminder.claimed_at: None,
                Reminder.retry_count: Reminder.retry_count + 1,
                Reminder.next_attempt_at: next_attempt_at,
                Reminder.error_message: error_message,
                Reminder.updated_at: now,
            },
            synchronize_session=False,
        )
    )
    session.flush()
    if deferred == 1:
        logger.info(f"Deferred reminder: id={reminder_id}, next_attempt_at={next_attempt_at}")
    return deferred == 1


def update_status(  # noqa: PLR0913
    session: Session,
    reminder_id: uuid_module.UUID,
    status: ReminderStatus,
    attempt_delta: int = 0,
    error_message: str | None = None,
    *,
    expected_statuses: Iterable[ReminderStatus] | None = None,
    claim_token: str | None = None,
    now: datetime | None = None,
) -> Reminder | None:
    """Write a new status for a reminder.

    The write is conditional: it only applies while the reminder is in one of
    ``expected_statuses`` and, when ``claim_token`` is given, while that claim
    is still held. Any claim is cleared by the write.

    :param session: Database session.
    :param reminder_id: Reminder ID.
    :param status: New status.
    :param attempt_delta: Amount to add to attempt_count; a non-zero value also
        stamps last_attempt_at.
    :param error_message: Error message to store (replaces the current one).
    :param expected_statuses: Statuses the reminder must currently be in.
    :param claim_token: Claim that must still be held for the write to apply.
    :param now: Current time (defaults to now).
    :returns: The updated reminder, or None if the conditions did not hold.
    """
    if now is None:
        now = datetime.now(UTC)

    criteria = [Reminder.id == reminder_id]
    if expected_statuses is not None:
        criteria.append(Reminder.status.in_([s.value for s in expected_statuses]))
    if claim_token is not None:
        criteria.append(Reminder.claim_token == claim_token)

    values: dict = {
        Reminder.status: status.value,
        Reminder.error_message: error_message,
        Reminder.claim_token: None,
        Reminder.claimed_at: None,
        Reminder.updated_at: now,
    }
    if attempt_delta:
        values[Reminder.attempt_count] = Reminder.attempt_count + attempt_delta
        values[Reminder.last_attempt_at] = now

    updated = (
        session.query(Reminder).filter(*criteria).update(values, synchronize_session=False)
    )
    session.flush()

    if updated != 1:
        logger.warning(
            f"Status update not applied: id={reminder_id}, target={status.value}, "
            f"expected={[s.value for s in expected_statuses] if expected_statuses else None}"
        )
        return None

    reminder = get_reminder_by_id(session, reminder_id)
    if reminder is not None:
        session.refresh(reminder)
    logger.info(f"Updated reminder status: id={reminder_id}, status={status.value}")
    return reminder


def dismiss(
    session: Session,
    reminder_id: uuid_module.UUID,
    now: datetime | None = None,
) -> Reminder | None:
    """Dismiss a reminder.

    Leaves attempt_count, last_attempt_at and error_message untouched.
    Dismissing an already dismissed reminder returns it unchanged.

    :param session: Database session.
    :param reminder_id: Reminder ID.
    :param now: Current time (defaults to now).
    :returns: The dismissed reminder, or None if not found.
    """
    if now is None:
        now = datetime.now(UTC)

    reminder = get_reminder_by_id(session, reminder_id)
    if reminder is None:
        return None
    if reminder.status == ReminderStatus.DISMISSED.value:
        return reminder

    reminder.status = ReminderStatus.DISMISSED.value
    reminder.claim_token = None
    reminder.claimed_at = None
    reminder.updated_at = now
    session.flush()
    logger.info(f"Dismissed reminder: id={reminder_id}")
    return reminder


def delete_older_than(
    session: Session,
    cutoff: datetime,
    terminal_only: bool = True,
    limit: int = 50,
) -> int:
    """Delete reminders last updated before ``cutoff``.

    Candidates are fetched oldest-updated first so a batch that finds nothing
    old enough means nothing older remains.

    :param session: Database session.
    :param cutoff: Reminders with updated_at strictly before this are deleted.
    :param terminal_only: Restrict deletion to sent, failed and dismissed
        reminders. Retention cleanup always passes True.
    :param limit: Maximum number of reminders to delete in this call.
    :returns: Number of reminders deleted.
    """
    cutoff = as_utc(cutoff)

    query = session.query(Reminder)
    if terminal_only:
        query = query.filter(Reminder.status.in_([s.value for s in TERMINAL_STATUSES]))
    candidates = query.order_by(Reminder.updated_at.asc()).limit(limit).all()

    expired = [r for r in candidates if as_utc(r.updated_at) < cutoff]
    if terminal_only:
        expired = [r for r in expired if r.status != ReminderStatus.PENDING.value]

    for reminder in expired:
        session.delete(reminder)
    session.flush()

    logger.debug(f"Deleted {len(expired)} reminders updated before {cutoff.isoformat()}")
    return len(expired)
