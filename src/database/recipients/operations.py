"""Database operations for parent notification contacts."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from src.database.recipients.models import ParentContact

logger = logging.getLogger(__name__)


def get_parent_contact(session: Session, parent_id: str) -> ParentContact | None:
    """Get the notification contact for a parent.

    :param session: Database session.
    :param parent_id: Parent ID.
    :returns: The contact or None if the parent never registered one.
    """
    return session.query(ParentContact).filter(ParentContact.parent_id == parent_id).first()


def upsert_parent_contact(
    session: Session,
    parent_id: str,
    push_token: str | None = None,
    phone_number: str | None = None,
    now: datetime | None = None,
) -> ParentContact:
    """Create or replace a parent's notification contact.

    Blank strings are stored as NULL so a cleared address stops being used.

    :param session: Database session.
    :param parent_id: Parent ID.
    :param push_token: Push token for the parent's device.
    :param phone_number: Phone number with country code.
    :param now: Current time (defaults to now).
    :returns: The stored contact.
    """
    if now is None:
        now = datetime.now(UTC)

    push_token = push_token.strip() if push_token and push_token.strip() else None
    phone_number = phone_number.strip() if phone_number and phone_number.strip() else None

    contact = get_parent_contact(session, parent_id)
    if contact is None:
        contact = ParentContact(parent_id=parent_id)
        session.add(contact)

    contact.push_token = push_token
    contact.phone_number = phone_number
    contact.updated_at = now
    session.flush()
    logger.info(
        f"Upserted parent contact: parent_id={parent_id}, "
        f"push_token={'set' if push_token else 'none'}, "
        f"phone_number={'set' if phone_number else 'none'}"
    )
    return contact
