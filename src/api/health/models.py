"""Pydantic models for health check endpoints."""

from pydantic import BaseModel, Field

from src.reminders.models import SchedulerState


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str = Field(..., description="Service health status")
    version: str = Field(..., description="Application version")
    scheduler: SchedulerState | None = Field(
        default=None,
        description="State of the in-process reminder scheduler, if one is attached",
    )
