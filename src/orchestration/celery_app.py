"""Celery application for reminder processing and cleanup."""

import os

from celery import Celery

from src.observability.sentry import init_sentry
from src.reminders.config import get_reminder_settings
from src.utils.logging import configure_logging

configure_logging()
init_sentry()

# Redis URL for broker and result backend
REDIS_URL = os.environ["REDIS_URL"]

QUEUE_NAME = "carenest_reminders"

_settings = get_reminder_settings()

celery_app = Celery(
    "carenest_reminders",
    broker=REDIS_URL,
    backend=REDIS_URL,
    include=["src.orchestration.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # Beat crontabs are evaluated in the timezone dose times are expressed in
    timezone=_settings.timezone,
    enable_utc=True,
    task_default_queue=QUEUE_NAME,
    task_default_routing_key=QUEUE_NAME,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    # A pass that outlives several ticks is stuck; claims lapse with their lease
    task_soft_time_limit=_settings.claim_lease_seconds,
    task_time_limit=_settings.claim_lease_seconds + 60,
    # Pass results are only useful for debugging
    result_expires=86400,
    broker_connection_retry_on_startup=True,
    worker_prefetch_multiplier=1,
    worker_concurrency=2,
    worker_hijack_root_logger=False,
    worker_redirect_stdouts=False,
)
