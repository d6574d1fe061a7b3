"""Database models and operations for medicine reminders."""

from src.database.reminders.models import TERMINAL_STATUSES, Reminder, ReminderStatus
from src.database.reminders.operations import (
    ReminderFilters,
    as_utc,
    build_dedupe_key,
    claim_reminder,
    create_reminder,
    defer_reminder,
    delete_older_than,
    dismiss,
    get_for_baby_in_range,
    get_for_parent,
    get_pending_due,
    get_recently_sent,
    get_reminder_by_id,
    release_claim,
    reminder_exists,
    update_status,
)

__all__ = [
    # Models
    "TERMINAL_STATUSES",
    "Reminder",
    "ReminderStatus",
    # Operations
    "ReminderFilters",
    "as_utc",
    "build_dedupe_key",
    "claim_reminder",
    "create_reminder",
    "defer_reminder",
    "delete_older_than",
    "dismiss",
    "get_for_baby_in_range",
    "get_for_parent",
    "get_pending_due",
    "get_recently_sent",
    "get_reminder_by_id",
    "release_claim",
    "reminder_exists",
    "update_status",
]
