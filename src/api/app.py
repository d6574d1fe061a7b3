"""FastAPI application configuration."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from src.api.dependencies import verify_token
from src.api.health import router as health_router
from src.api.health.endpoints import API_VERSION
from src.api.models import PROTECTED_ROUTE_RESPONSES
from src.api.recipients import router as recipients_router
from src.api.reminders import router as reminders_router
from src.observability.sentry import init_sentry
from src.reminders.config import get_reminder_settings
from src.reminders.factory import build_scheduler
from src.utils.logging import configure_logging

configure_logging()
init_sentry()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Start the reminder scheduler with the API when configured to.

    :param application: The FastAPI application.
    """
    scheduler = None
    if get_reminder_settings().run_scheduler_in_api:
        scheduler = build_scheduler()
        scheduler.start()
        application.state.reminder_scheduler = scheduler

    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.stop()
            application.state.reminder_scheduler = None


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    :returns: Configured FastAPI application instance.
    """
    application = FastAPI(
        title="CareNest Reminders API",
        version=API_VERSION,
        lifespan=lifespan,
    )
    application.state.reminder_scheduler = None

    # Register routers
    application.include_router(health_router)
    for router in (reminders_router, recipients_router):
        application.include_router(
            router,
            dependencies=[Depends(verify_token)],
            responses=PROTECTED_ROUTE_RESPONSES,
        )

    logger.info("FastAPI application created")

    return application


# Application instance for uvicorn
app = create_app()
