"""Generate reminders when a parent confirms a prescription."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from src.reminders.config import ReminderConfig, get_reminder_settings
from src.reminders.exceptions import ReminderValidationError
from src.reminders.generator import generate_reminders
from src.reminders.models import ConfirmationResult, PrescriptionConfirmation

logger = logging.getLogger(__name__)


def handle_prescription_confirmed(
    session: Session,
    confirmation: PrescriptionConfirmation,
    *,
    now: datetime | None = None,
    settings: ReminderConfig | None = None,
) -> ConfirmationResult:
    """Generate reminders for every medicine in a confirmed prescription.

    Confirming a prescription never fails because of reminder generation:
    invalid input is logged and reported back as a warning instead.

    :param session: Database session.
    :param confirmation: The confirmed prescription.
    :param now: Current time (defaults to now).
    :param settings: Reminder settings (defaults to the environment settings).
    :returns: Counts of created and skipped reminders plus any warnings.
    """
    settings = settings or get_reminder_settings()
    result = ConfirmationResult()

    ids = (("baby_id", confirmation.baby_id), ("parent_id", confirmation.parent_id))
    missing = [
        name
        for name, value in ids
        if not value or not value.strip()
    ]
    if missing:
        warning = f"Reminders not generated: missing {', '.join(missing)}"
        logger.warning(f"{warning} ({len(confirmation.medicines)} medicines confirmed)")
        result.warnings.append(warning)
        return result

    for medicine in confirmation.medicines:
        try:
            generation = generate_reminders(
                session,
                medicine,
                confirmation.baby_id,
                confirmation.parent_id,
                channels=confirmation.channels,
                now=now,
                settings=settings,
            )
        except ReminderValidationError as e:
            warning = f"Reminders not generated for {medicine.name}: {e}"
            logger.warning(warning)
            result.warnings.append(warning)
            continue

        result.medicines_processed += 1
        result.reminders_created += generation.created
        result.duplicates_skipped += generation.duplicates_skipped

    logger.info(
        f"Prescription confirmed: baby_id={confirmation.baby_id}, "
        f"medicines={result.medicines_processed}/{len(confirmation.medicines)}, "
        f"reminders_created={result.reminders_created}, "
        f"duplicates_skipped={result.duplicates_skipped}, warnings={len(result.warnings)}"
    )
    return result
