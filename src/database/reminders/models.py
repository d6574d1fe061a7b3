"""SQLAlchemy ORM models for medicine reminders."""

import uuid as uuid_module
from datetime import UTC, datetime
from enum import StrEnum

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.database.core import Base


class ReminderStatus(StrEnum):
    """Lifecycle status of a reminder."""

    PENDING = "pending"  # Waiting for its dose time to be dispatched
    SENT = "sent"  # At least one channel delivered
    FAILED = "failed"  # Dispatch attempted, no channel delivered
    DISMISSED = "dismissed"  # Parent marked it as handled


TERMINAL_STATUSES = frozenset(
    {ReminderStatus.SENT, ReminderStatus.FAILED, ReminderStatus.DISMISSED}
)


class Reminder(Base):
    """ORM model for a single dose reminder.

    One row per dose occurrence of one medicine for one baby. ``scheduled_for``
    and the descriptive medicine fields are written once by the generator and
    never updated afterwards.
    """

    __tablename__ = "reminders"

    id: Mapped[uuid_module.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid_module.uuid4,
    )
    baby_id: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
    )
    parent_id: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
    )
    medicine_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    dosage: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
    )
    frequency: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
    )
    dose_time: Mapped[str] = mapped_column(
        String(5),
        nullable=False,
    )
    scheduled_for: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    dedupe_key: Mapped[str] = mapped_column(
        String(512),
        nullable=False,
        unique=True,
    )
    channels: Mapped[list[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ReminderStatus.PENDING.value,
    )
    attempt_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    last_attempt_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    error_message: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    retry_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    next_attempt_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    claim_token: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )
    claimed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    # Single-column indexes only; combined predicates are applied in Python.
    __table_args__ = (
        Index("idx_reminders_baby_id", "baby_id"),
        Index("idx_reminders_parent_id", "parent_id"),
        Index("idx_reminders_status", "status"),
    )

    @property
    def is_terminal(self) -> bool:
        """Check if the reminder is in a terminal status."""
        return self.status in TERMINAL_STATUSES

    def __repr__(self) -> str:
        """Return string representation of the reminder."""
        return (
            f"<Reminder(id={self.id}, medicine={self.medicine_name!r}, "
            f"scheduled_for={self.scheduled_for}, status={self.status})>"
        )
