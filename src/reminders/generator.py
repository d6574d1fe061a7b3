"""Turn a medicine dosing schedule into concrete pending reminders."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from datetime import UTC, datetime, time, timedelta
from zoneinfo import ZoneInfo

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.database.reminders import create_reminder, reminder_exists
from src.reminders.config import ReminderConfig, get_reminder_settings
from src.reminders.exceptions import ReminderValidationError
from src.reminders.models import GenerationResult, MedicineDescriptor

logger = logging.getLogger(__name__)

# Used when a medicine has neither a dose schedule nor a suggested start time
DEFAULT_DOSE_TIME = "08:00"

_DOSE_TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def parse_dose_time(value: str) -> time:
    """Parse an HH:MM time of day.

    :param value: Time string, e.g. "08:00" or "8:00".
    :returns: The parsed time.
    :raises ReminderValidationError: If the string is not a valid 24-hour time.
    """
    match = _DOSE_TIME_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        raise ReminderValidationError(f"Invalid dose time {value!r}, expected HH:MM")
    return time(hour=int(match.group(1)), minute=int(match.group(2)))


def dose_occurrences(
    dose_time: time,
    now: datetime,
    window: timedelta,
    tz: ZoneInfo,
) -> list[datetime]:
    """Get every occurrence of a time of day in ``(now, now + window]``.

    Occurrences are computed on the local calendar of ``tz``: today if the
    time is still ahead, otherwise from tomorrow onwards.

    :param dose_time: Local time of day.
    :param now: Current time (timezone-aware).
    :param window: How far ahead to look.
    :param tz: Timezone the dose time is expressed in.
    :returns: Occurrences in UTC, ascending.
    """
    local_now = now.astimezone(tz)
    end = now + window

    day = local_now.date()
    occurrences: list[datetime] = []
    while True:
        candidate = datetime.combine(day, dose_time, tzinfo=tz)
        if candidate > end:
            break
        if candidate > now:
            occurrences.append(candidate.astimezone(UTC))
        day += timedelta(days=1)
    return occurrences


def _resolve_dose_schedule(medicine: MedicineDescriptor) -> list[str]:
    if medicine.dose_schedule:
        return medicine.dose_schedule
    if medicine.suggested_start_time:
        return [medicine.suggested_start_time]
    return [DEFAULT_DOSE_TIME]


def generate_reminders(  # noqa: PLR0913
    session: Session,
    medicine: MedicineDescriptor,
    baby_id: str | None,
    parent_id: str | None,
    *,
    channels: Iterable[str] | None = None,
    now: datetime | None = None,
    settings: ReminderConfig | None = None,
) -> GenerationResult:
    """Create pending reminders for a medicine's upcoming doses.

    One reminder is created per dose occurrence within the generation window.
    Occurrences that already have a reminder are skipped, so generation can be
    re-run safely for the same medicine and window.

    :param session: Database session.
    :param medicine: The medicine and its dose schedule.
    :param baby_id: Baby the medicine is for.
    :param parent_id: Parent to notify.
    :param channels: Channels to notify on (defaults to the configured channels).
    :param now: Current time (defaults to now).
    :param settings: Reminder settings (defaults to the environment settings).
    :returns: The created reminders and the number of duplicates skipped.
    :raises ReminderValidationError: If an ID is missing or a dose time is malformed.
    """
    if not baby_id or not baby_id.strip():
        raise ReminderValidationError("baby_id is required to generate reminders")
    if not parent_id or not parent_id.strip():
        raise ReminderValidationError("parent_id is required to generate reminders")

    settings = settings or get_reminder_settings()
    now = now or datetime.now(UTC)
    channel_list = list(channels) if channels else settings.default_channels_list
    window = timedelta(hours=settings.generation_window_hours)

    # Validate every dose time before writing anything
    dose_times = [(raw.strip(), parse_dose_time(raw)) for raw in _resolve_dose_schedule(medicine)]

    result = GenerationResult(medicine_name=medicine.name)
    for raw, dose_time in dose_times:
        for scheduled_for in dose_occurrences(dose_time, now, window, settings.tz):
            if reminder_exists(session, baby_id, medicine.name, scheduled_for):
                logger.debug(
                    f"Skipping duplicate reminder: medicine={medicine.name!r}, "
                    f"scheduled_for={scheduled_for.isoformat()}"
                )
                result.duplicates_skipped += 1
                continue

            try:
                with session.begin_nested():
                    reminder = create_reminder(
                        session,
                        baby_id=baby_id,
                        parent_id=parent_id,
                        medicine_name=medicine.name,
                        dosage=medicine.dosage,
                        frequency=medicine.frequency,
                        dose_time=dose_time.strftime("%H:%M"),
                        scheduled_for=scheduled_for,
                        channels=channel_list,
                        now=now,
                    )
            except IntegrityError:
                # Another writer created the same occurrence after our check
                logger.info(
                    f"Reminder created concurrently, skipping: medicine={medicine.name!r}, "
                    f"dose_time={raw}, scheduled_for={scheduled_for.isoformat()}"
                )
                result.duplicates_skipped += 1
                continue

            result.reminder_ids.append(reminder.id)
            result.scheduled_for.append(scheduled_for)

    logger.info(
        f"Generated reminders: medicine={medicine.name!r}, baby_id={baby_id}, "
        f"created={result.created}, duplicates_skipped={result.duplicates_skipped}"
    )
    return result
