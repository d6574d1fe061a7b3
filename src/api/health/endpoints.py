"""Health check endpoints."""

import logging

from fastapi import APIRouter, Request

from src.api.health.models import HealthResponse

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

router = APIRouter(prefix="/health", tags=["health"])


@router.get(
    "",
    response_model=HealthResponse,
    summary="Check service health",
    description="Returns the health status of the API service and its reminder scheduler.",
)
def health_check(request: Request) -> HealthResponse:
    """Check if the API service is healthy.

    A stopped in-process scheduler does not make the API unhealthy; it is
    reported so that monitors can alert on it.

    :param request: Incoming request, used to reach the attached scheduler.
    :returns: Health status response.
    """
    logger.debug("Health check requested")
    scheduler = getattr(request.app.state, "reminder_scheduler", None)
    scheduler_state = scheduler.status().state if scheduler is not None else None
    return HealthResponse(status="healthy", version=API_VERSION, scheduler=scheduler_state)
