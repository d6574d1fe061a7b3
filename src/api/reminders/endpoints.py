"""API endpoints for medicine reminders."""

import logging
import time
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, Request, status

from src.api.reminders.models import (
    GenerateRemindersRequest,
    GenerateRemindersResponse,
    QueryRemindersResponse,
    ReminderResponse,
    TodayRemindersResponse,
)
from src.database.connection import get_session
from src.database.reminders import Reminder, ReminderFilters, ReminderStatus
from src.reminders.confirmation import handle_prescription_confirmed
from src.reminders.exceptions import ReminderAccessError, ReminderNotFoundError
from src.reminders.lifecycle import dismiss_reminder as dismiss_reminder_lifecycle
from src.reminders.models import PrescriptionConfirmation, SchedulerStatus
from src.reminders.queries import get_reminder as get_reminder_query
from src.reminders.queries import (
    get_recently_sent_reminders,
    get_today_reminders,
    list_parent_reminders,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reminders", tags=["Reminders"])


def _reminder_to_response(reminder: Reminder) -> ReminderResponse:
    """Convert a reminder model to response.

    :param reminder: The database model.
    :returns: API response model.
    """
    return ReminderResponse(
        id=reminder.id,
        baby_id=reminder.baby_id,
        parent_id=reminder.parent_id,
        medicine_name=reminder.medicine_name,
        dosage=reminder.dosage,
        frequency=reminder.frequency,
        dose_time=reminder.dose_time,
        scheduled_for=reminder.scheduled_for,
        channels=list(reminder.channels or []),
        status=ReminderStatus(reminder.status),
        attempt_count=reminder.attempt_count,
        last_attempt_at=reminder.last_attempt_at,
        error_message=reminder.error_message,
        created_at=reminder.created_at,
        updated_at=reminder.updated_at,
    )


@router.get(
    "/today",
    response_model=TodayRemindersResponse,
    summary="Get today's reminders",
)
def get_today(baby_id: str = Query(..., min_length=1)) -> TodayRemindersResponse:
    """Get a baby's reminders for the current local day, with status counts."""
    start = time.perf_counter()
    logger.info(f"Get today's reminders: baby_id={baby_id}")

    with get_session() as session:
        reminders, summary = get_today_reminders(session, baby_id)
        response = TodayRemindersResponse(
            reminders=[_reminder_to_response(r) for r in reminders],
            summary=summary,
        )

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(
        f"Get today's reminders complete: baby_id={baby_id}, "
        f"count={summary.total}, elapsed={elapsed_ms:.0f}ms"
    )

    return response


@router.get(
    "",
    response_model=QueryRemindersResponse,
    summary="List reminders",
)
def list_reminders(
    parent_id: str = Query(..., min_length=1),
    status_filter: ReminderStatus | None = Query(None, alias="status"),
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
) -> QueryRemindersResponse:
    """List a parent's reminders, optionally filtered by status and scheduled time."""
    start = time.perf_counter()
    logger.info(
        f"List reminders: parent_id={parent_id}, status={status_filter}, "
        f"start_date={start_date}, end_date={end_date}"
    )

    filters = ReminderFilters(status=status_filter, start_date=start_date, end_date=end_date)
    with get_session() as session:
        reminders = list_parent_reminders(session, parent_id, filters)
        results = [_reminder_to_response(r) for r in reminders]

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(f"List reminders complete: count={len(results)}, elapsed={elapsed_ms:.0f}ms")

    return QueryRemindersResponse(results=results, count=len(results))


@router.get(
    "/recently-sent/{baby_id}",
    response_model=QueryRemindersResponse,
    summary="Get recently sent reminders",
)
def get_recently_sent(baby_id: str) -> QueryRemindersResponse:
    """Get a baby's reminders sent in the last five minutes, most recent first."""
    start = time.perf_counter()
    logger.info(f"Get recently sent reminders: baby_id={baby_id}")

    with get_session() as session:
        reminders = get_recently_sent_reminders(session, baby_id)
        results = [_reminder_to_response(r) for r in reminders]

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(
        f"Get recently sent reminders complete: baby_id={baby_id}, "
        f"count={len(results)}, elapsed={elapsed_ms:.0f}ms"
    )

    return QueryRemindersResponse(results=results, count=len(results))


@router.get(
    "/scheduler/status",
    response_model=SchedulerStatus,
    summary="Get scheduler status",
)
def get_scheduler_status(request: Request) -> SchedulerStatus:
    """Get the state of the reminder scheduler running in this process."""
    scheduler = getattr(request.app.state, "reminder_scheduler", None)
    if scheduler is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Reminder scheduler is not running in this process",
        )
    return scheduler.status()


@router.post(
    "/generate",
    response_model=GenerateRemindersResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate reminders",
)
def generate_reminders(request: GenerateRemindersRequest) -> GenerateRemindersResponse:
    """Generate reminders for a confirmed prescription.

    Invalid input (missing IDs, malformed dose times) does not fail the
    request; it is reported in ``warnings``.
    """
    start = time.perf_counter()
    logger.info(
        f"Generate reminders: baby_id={request.baby_id}, medicines={len(request.medicines)}"
    )

    confirmation = PrescriptionConfirmation(
        baby_id=request.baby_id,
        parent_id=request.parent_id,
        medicines=request.medicines,
        channels=request.channels,
    )
    with get_session() as session:
        result = handle_prescription_confirmed(session, confirmation)

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(
        f"Generate reminders complete: created={result.reminders_created}, "
        f"elapsed={elapsed_ms:.0f}ms"
    )

    return GenerateRemindersResponse(
        medicines_processed=result.medicines_processed,
        reminders_created=result.reminders_created,
        duplicates_skipped=result.duplicates_skipped,
        warnings=result.warnings,
    )


@router.get(
    "/{reminder_id}",
    response_model=ReminderResponse,
    summary="Get reminder",
)
def get_reminder(
    reminder_id: UUID,
    parent_id: str | None = Query(None, min_length=1),
) -> ReminderResponse:
    """Get a reminder by ID, optionally checking that it belongs to ``parent_id``."""
    start = time.perf_counter()
    logger.info(f"Get reminder: id={reminder_id}")

    with get_session() as session:
        try:
            reminder = get_reminder_query(session, reminder_id, parent_id=parent_id)
        except ReminderNotFoundError as e:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Reminder not found: {reminder_id}",
            ) from e
        except ReminderAccessError as e:
            logger.warning(f"Reminder access denied: id={reminder_id}, parent_id={parent_id}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Reminder belongs to another parent",
            ) from e
        response = _reminder_to_response(reminder)

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(f"Get reminder complete: id={reminder_id}, elapsed={elapsed_ms:.0f}ms")

    return response


@router.post(
    "/{reminder_id}/dismiss",
    response_model=ReminderResponse,
    summary="Dismiss reminder",
)
def dismiss_reminder(
    reminder_id: UUID,
    parent_id: str | None = Query(None, min_length=1),
) -> ReminderResponse:
    """Dismiss a reminder.

    Pending, sent and failed reminders can all be dismissed. Dismissing an
    already dismissed reminder returns it unchanged. When ``parent_id`` is
    given, reminders belonging to another parent are refused.
    """
    start = time.perf_counter()
    logger.info(f"Dismiss reminder: id={reminder_id}")

    with get_session() as session:
        try:
            reminder = dismiss_reminder_lifecycle(session, reminder_id, parent_id=parent_id)
        except ReminderNotFoundError as e:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Reminder not found: {reminder_id}",
            ) from e
        except ReminderAccessError as e:
            logger.warning(f"Reminder dismiss denied: id={reminder_id}, parent_id={parent_id}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Reminder belongs to another parent",
            ) from e
        response = _reminder_to_response(reminder)

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(f"Dismiss reminder complete: id={reminder_id}, elapsed={elapsed_ms:.0f}ms")

    return response
