"""Recipient addressing for reminder notifications."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError

from src.database.connection import get_session
from src.database.recipients import get_parent_contact
from src.notifiers.base import AddressKind
from src.reminders.exceptions import PersistenceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Recipient:
    """Where a parent can be reached."""

    parent_id: str
    push_token: str | None = None
    phone_number: str | None = None

    def address_for(self, kind: AddressKind) -> str | None:
        """Get the address for a kind of channel.

        :param kind: Address kind the channel needs.
        :returns: The address, or None if the parent has none.
        """
        if kind == AddressKind.PUSH_TOKEN:
            return self.push_token
        if kind == AddressKind.PHONE_NUMBER:
            return self.phone_number
        return None


class RecipientDirectory(Protocol):
    """Looks up where a parent should be notified."""

    def resolve(self, parent_id: str) -> Recipient:
        """Resolve a parent's notification addresses.

        :param parent_id: Parent ID.
        :returns: The recipient; unknown parents have no addresses.
        :raises PersistenceError: If the lookup itself fails.
        """
        ...


class DatabaseRecipientDirectory:
    """Recipient directory backed by the parent_contacts table."""

    def resolve(self, parent_id: str) -> Recipient:
        """Resolve a parent's notification addresses from the database.

        :param parent_id: Parent ID.
        :returns: The recipient; parents without a stored contact have no addresses.
        :raises PersistenceError: If the database query fails.
        """
        try:
            with get_session() as session:
                contact = get_parent_contact(session, parent_id)
                if contact is None:
                    logger.debug(f"No contact stored for parent: parent_id={parent_id}")
                    return Recipient(parent_id=parent_id)
                return Recipient(
                    parent_id=parent_id,
                    push_token=contact.push_token,
                    phone_number=contact.phone_number,
                )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Recipient lookup failed for parent {parent_id}: {e}") from e
