"""Pydantic models for recipient contact endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field


class UpsertContactRequest(BaseModel):
    """Request model for setting where a parent receives reminders."""

    push_token: str | None = Field(None, max_length=4096, description="Device push token")
    phone_number: str | None = Field(
        None,
        max_length=32,
        pattern=r"^\s*(\+?[0-9][0-9 \-]{5,30})?\s*$",
        description="Phone number with country code",
    )


class ContactResponse(BaseModel):
    """Response model for a parent's notification contact."""

    parent_id: str = Field(..., description="Parent ID")
    has_push_token: bool = Field(..., description="Whether a push token is stored")
    phone_number: str | None = Field(None, description="Stored phone number")
    updated_at: datetime = Field(..., description="When the contact last changed")
