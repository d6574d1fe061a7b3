"""Shared test fixtures for reminder tests.

ORM defaults only apply on flush, so reminders built here set every column
explicitly.
"""

import uuid
from datetime import UTC, datetime
from typing import Any

from src.database.reminders import Reminder, ReminderStatus, build_dedupe_key

# Fixed reference time for deterministic tests
NOW = datetime(2026, 3, 10, 9, 0, tzinfo=UTC)


def make_reminder(**overrides: Any) -> Reminder:
    """Build a reminder with sensible defaults.

    :param overrides: Column values to override.
    :returns: A transient Reminder.
    """
    values: dict[str, Any] = {
        "id": uuid.uuid4(),
        "baby_id": "baby-1",
        "parent_id": "parent-1",
        "medicine_name": "Amoxicillin",
        "dosage": "5ml",
        "frequency": "4 times daily",
        "dose_time": "08:00",
        "scheduled_for": NOW,
        "channels": ["push", "sms"],
        "status": ReminderStatus.PENDING.value,
        "attempt_count": 0,
        "last_attempt_at": None,
        "error_message": None,
        "retry_count": 0,
        "next_attempt_at": None,
        "claim_token": None,
        "claimed_at": None,
        "created_at": NOW,
        "updated_at": NOW,
    }
    values.update(overrides)
    values.setdefault(
        "dedupe_key",
        build_dedupe_key(values["baby_id"], values["medicine_name"], values["scheduled_for"]),
    )
    return Reminder(**values)
