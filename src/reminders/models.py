"""Pydantic models for reminder generation, dispatch and scheduling."""

from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, Field

# Reason recorded when a reminder has no channel it can be delivered on
NO_CHANNEL_AVAILABLE = "no delivery channel available"


class MedicineDescriptor(BaseModel):
    """A confirmed medicine and its dosing schedule."""

    name: str = Field(..., min_length=1, max_length=255, description="Medicine name")
    dosage: str = Field(default="", max_length=255, description="Dosage, e.g. '5ml'")
    frequency: str = Field(default="", max_length=255, description="Frequency description")
    dose_schedule: list[str] = Field(
        default_factory=list,
        description="Times of day in HH:MM format",
    )
    suggested_start_time: str | None = Field(
        default=None,
        description="Fallback HH:MM time used when dose_schedule is empty",
    )


class PrescriptionConfirmation(BaseModel):
    """A prescription the parent has reviewed and confirmed."""

    baby_id: str | None = Field(default=None, description="Baby the prescription is for")
    parent_id: str | None = Field(default=None, description="Parent to notify")
    medicines: list[MedicineDescriptor] = Field(
        default_factory=list,
        description="Confirmed medicines",
    )
    channels: list[str] | None = Field(
        default=None,
        description="Channels to notify on (defaults to the configured channels)",
    )


class GenerationResult(BaseModel):
    """Result of generating reminders for one medicine."""

    medicine_name: str = Field(..., description="Medicine the reminders are for")
    reminder_ids: list[UUID] = Field(default_factory=list, description="Created reminder IDs")
    scheduled_for: list[datetime] = Field(
        default_factory=list,
        description="Occurrence times of the created reminders",
    )
    duplicates_skipped: int = Field(default=0, description="Occurrences that already existed")

    @property
    def created(self) -> int:
        """Number of reminders created."""
        return len(self.reminder_ids)


class ConfirmationResult(BaseModel):
    """Result of handling a prescription confirmation."""

    medicines_processed: int = Field(default=0, description="Medicines reminders were made for")
    reminders_created: int = Field(default=0, description="Reminders created")
    duplicates_skipped: int = Field(default=0, description="Occurrences that already existed")
    warnings: list[str] = Field(
        default_factory=list,
        description="Problems that stopped reminders from being generated",
    )


class ChannelResult(BaseModel):
    """Result of one delivery attempt on one channel."""

    channel: str = Field(..., description="Channel identifier")
    success: bool = Field(..., description="Whether the provider accepted the notification")
    provider_message_id: str | None = Field(default=None, description="Provider message ID")
    reason: str | None = Field(default=None, description="Failure reason")


class DispatchOutcome(BaseModel):
    """Aggregated result of dispatching one reminder across its channels."""

    reminder_id: UUID = Field(..., description="Reminder ID")
    results: list[ChannelResult] = Field(
        default_factory=list,
        description="One result per attempted channel",
    )

    @property
    def delivered(self) -> bool:
        """Check if at least one channel delivered."""
        return any(r.success for r in self.results)

    @property
    def error_message(self) -> str | None:
        """Human-readable failure reason, or None when delivered."""
        if self.delivered:
            return None
        if not self.results:
            return NO_CHANNEL_AVAILABLE
        return "; ".join(f"{r.channel}: {r.reason or 'unknown error'}" for r in self.results)


class ReminderSummary(BaseModel):
    """Counts of reminders by status."""

    total: int = Field(default=0, description="All reminders")
    pending: int = Field(default=0, description="Pending reminders")
    sent: int = Field(default=0, description="Sent reminders")
    dismissed: int = Field(default=0, description="Dismissed reminders")
    failed: int = Field(default=0, description="Failed reminders")


class CleanupResult(BaseModel):
    """Result of a retention cleanup run."""

    cutoff: datetime = Field(..., description="Reminders last updated before this were eligible")
    deleted: int = Field(default=0, description="Reminders deleted")
    batches: int = Field(default=0, description="Delete batches executed")


class SchedulerState(StrEnum):
    """Run state of the reminder scheduler."""

    RUNNING = "running"  # A processing pass is in progress
    IDLE = "idle"  # Started, waiting for the next tick
    STOPPED = "stopped"  # Not started, or stopped


class SchedulerStatus(BaseModel):
    """Snapshot of the reminder scheduler's state."""

    state: SchedulerState = Field(..., description="Current run state")
    last_run_at: datetime | None = Field(default=None, description="When the last pass finished")
    last_batch_size: int = Field(default=0, description="Due reminders found by the last pass")
    ticks: int = Field(default=0, description="Timer ticks since start")
    skipped_ticks: int = Field(default=0, description="Ticks skipped because a pass was running")
    passes_completed: int = Field(default=0, description="Processing passes completed")
    last_cleanup_at: datetime | None = Field(default=None, description="When cleanup last ran")
    last_cleanup_deleted: int | None = Field(
        default=None,
        description="Reminders deleted by the last cleanup",
    )
