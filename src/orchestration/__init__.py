"""Celery orchestration for scheduled reminder processing."""

from src.orchestration.celery_app import celery_app
from src.orchestration.tasks import cleanup_reminders_task, process_due_reminders_task

__all__ = [
    "celery_app",
    "cleanup_reminders_task",
    "process_due_reminders_task",
]
