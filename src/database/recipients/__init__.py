"""Database models and operations for parent notification contacts."""

from src.database.recipients.models import ParentContact
from src.database.recipients.operations import get_parent_contact, upsert_parent_contact

__all__ = [
    "ParentContact",
    "get_parent_contact",
    "upsert_parent_contact",
]
