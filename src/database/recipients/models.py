"""SQLAlchemy ORM models for parent notification contacts."""

from datetime import UTC, datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.database.core import Base


class ParentContact(Base):
    """ORM model for where a parent receives reminder notifications."""

    __tablename__ = "parent_contacts"

    parent_id: Mapped[str] = mapped_column(
        String(128),
        primary_key=True,
    )
    push_token: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    phone_number: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    def __repr__(self) -> str:
        """Return string representation of the contact."""
        return (
            f"<ParentContact(parent_id={self.parent_id}, "
            f"has_push_token={self.push_token is not None}, "
            f"has_phone_number={self.phone_number is not None})>"
        )
