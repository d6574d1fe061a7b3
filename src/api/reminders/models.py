"""Pydantic models for reminders API endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from src.database.reminders.models import ReminderStatus
from src.reminders.models import MedicineDescriptor, ReminderSummary


class ReminderResponse(BaseModel):
    """Response model for a reminder."""

    id: UUID = Field(..., description="Reminder ID")
    baby_id: str = Field(..., description="Baby the reminder is for")
    parent_id: str = Field(..., description="Parent who is notified")
    medicine_name: str = Field(..., description="Medicine name")
    dosage: str = Field(..., description="Dosage")
    frequency: str = Field(..., description="Frequency description")
    dose_time: str = Field(..., description="Local time of day (HH:MM)")
    scheduled_for: datetime = Field(..., description="When the dose is due")
    channels: list[str] = Field(default_factory=list, description="Channels to notify on")
    status: ReminderStatus = Field(..., description="Current status")
    attempt_count: int = Field(..., description="Dispatch attempts made")
    last_attempt_at: datetime | None = Field(None, description="When dispatch was last attempted")
    error_message: str | None = Field(None, description="Why delivery failed")
    created_at: datetime = Field(..., description="When the reminder was created")
    updated_at: datetime = Field(..., description="When the reminder last changed")


class TodayRemindersResponse(BaseModel):
    """Response model for a baby's reminders today."""

    reminders: list[ReminderResponse] = Field(
        default_factory=list,
        description="Today's reminders in scheduled order",
    )
    summary: ReminderSummary = Field(..., description="Counts by status")


class QueryRemindersResponse(BaseModel):
    """Response model for listing a parent's reminders."""

    results: list[ReminderResponse] = Field(
        default_factory=list,
        description="Matching reminders, newest first",
    )
    count: int = Field(..., description="Number of results")


class GenerateRemindersRequest(BaseModel):
    """Request model for generating reminders from a confirmed prescription."""

    baby_id: str | None = Field(None, description="Baby the prescription is for")
    parent_id: str | None = Field(None, description="Parent to notify")
    medicines: list[MedicineDescriptor] = Field(
        ...,
        min_length=1,
        description="Confirmed medicines",
    )
    channels: list[str] | None = Field(
        None,
        description="Channels to notify on (defaults to the configured channels)",
    )


class GenerateRemindersResponse(BaseModel):
    """Response model for reminder generation."""

    medicines_processed: int = Field(..., description="Medicines reminders were made for")
    reminders_created: int = Field(..., description="Reminders created")
    duplicates_skipped: int = Field(..., description="Occurrences that already existed")
    warnings: list[str] = Field(default_factory=list, description="Generation problems")
