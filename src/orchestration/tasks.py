"""Celery tasks for reminder processing and retention cleanup."""

import logging
import os
from functools import lru_cache
from typing import Any

import redis
from celery import Celery, Task
from celery.schedules import crontab
from celery.signals import worker_process_shutdown
from dotenv import load_dotenv
from redis.exceptions import LockError
from sqlalchemy.exc import SQLAlchemyError

from src.orchestration.celery_app import celery_app
from src.reminders.cleanup import run_retention_cleanup
from src.reminders.config import get_reminder_settings
from src.reminders.factory import build_processor
from src.reminders.processor import ReminderProcessor
from src.utils.logging import configure_logging

load_dotenv()
configure_logging()

logger = logging.getLogger(__name__)

# Default retry settings for tasks
DEFAULT_RETRY_KWARGS = {
    "max_retries": 3,
    "default_retry_delay": 60,  # 1 minute
}

# Held by the running dispatch pass so beat ticks on other worker processes skip
PASS_LOCK_NAME = "carenest:process-due-reminders"


class BaseTask(Task):
    """Base task class with common retry and error handling."""

    autoretry_for = (SQLAlchemyError,)
    retry_backoff = True
    retry_backoff_max = 600  # Max 10 minutes between retries
    retry_jitter = True


@lru_cache
def get_processor() -> ReminderProcessor:
    """Get the worker's reminder processor.

    Built once per worker process so notifier clients are reused across runs.

    :returns: The processor.
    """
    return build_processor()


@lru_cache
def get_redis() -> redis.Redis:
    """Get the worker's Redis client for task locks.

    :returns: Redis client connected to the broker instance.
    """
    return redis.Redis.from_url(os.environ["REDIS_URL"])


@worker_process_shutdown.connect
def close_processor(**kwargs: Any) -> None:
    """Release the processor's channel pools when a worker process exits."""
    if get_processor.cache_info().currsize:
        get_processor().close()


@celery_app.task(
    bind=True,
    name="src.orchestration.tasks.process_due_reminders_task",
    # A pass that dies is picked up by the next beat tick
    max_retries=0,
)
def process_due_reminders_task(self: Task) -> dict[str, int | bool | list[str]]:
    """Dispatch every due reminder.

    Only one pass runs at a time across the workers sharing this Redis. A tick
    that finds the lock held is skipped; the next tick picks up anything
    still due. Claims still guard against overlap with the threaded
    scheduler, or with a pass whose lock expired.

    :param self: The Celery task instance (bound).
    :returns: Dictionary with processing statistics.
    """
    logger.info("Starting reminder processing task")

    settings = get_reminder_settings()
    lock = get_redis().lock(
        PASS_LOCK_NAME,
        timeout=settings.claim_lease_seconds + 60,
        blocking=False,
    )
    if not lock.acquire():
        logger.info("Skipping reminder processing: previous pass still running")
        return {
            "found": 0,
            "sent": 0,
            "failed": 0,
            "skipped": 0,
            "deferred": 0,
            "errors": [],
            "pass_skipped": True,
        }

    try:
        stats = get_processor().process_due_reminders()
    except Exception as exc:
        logger.exception(f"Reminder processing failed: {exc}")
        raise
    finally:
        try:
            lock.release()
        except LockError:
            logger.warning("Reminder pass lock expired before the pass finished")

    return {
        "found": stats.found,
        "sent": stats.sent,
        "failed": stats.failed,
        "skipped": stats.skipped,
        "deferred": stats.deferred,
        "errors": stats.errors,
        "pass_skipped": False,
    }


@celery_app.task(
    bind=True,
    base=BaseTask,
    name="src.orchestration.tasks.cleanup_reminders_task",
    **DEFAULT_RETRY_KWARGS,
)
def cleanup_reminders_task(self: Task) -> dict[str, int | str]:
    """Delete finished reminders past the retention window.

    :param self: The Celery task instance (bound).
    :returns: Dictionary with cleanup statistics.
    """
    logger.info("Starting reminder cleanup task")

    try:
        result = run_retention_cleanup()
    except Exception as exc:
        logger.exception(f"Reminder cleanup failed: {exc}")
        raise

    return {
        "deleted": result.deleted,
        "batches": result.batches,
        "cutoff": result.cutoff.isoformat(),
    }


# Beat schedule for periodic tasks
@celery_app.on_after_configure.connect
def setup_periodic_tasks(sender: Celery, **kwargs: Any) -> None:
    """Set up periodic tasks."""
    settings = get_reminder_settings()
    sender.add_periodic_task(
        float(settings.tick_interval_seconds),
        process_due_reminders_task.s(),
        name="process-due-reminders",
    )
    sender.add_periodic_task(
        crontab(minute=0, hour=settings.cleanup_hour),
        cleanup_reminders_task.s(),
        name="cleanup-reminders",
    )
