"""API endpoints for parent notification contacts."""

import logging
import time

from fastapi import APIRouter, HTTPException, status

from src.api.recipients.models import ContactResponse, UpsertContactRequest
from src.database.connection import get_session
from src.database.recipients import ParentContact, get_parent_contact, upsert_parent_contact

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recipients", tags=["Recipients"])


def _contact_to_response(contact: ParentContact) -> ContactResponse:
    return ContactResponse(
        parent_id=contact.parent_id,
        has_push_token=contact.push_token is not None,
        phone_number=contact.phone_number,
        updated_at=contact.updated_at,
    )


@router.put(
    "/{parent_id}",
    response_model=ContactResponse,
    summary="Set notification contact",
)
def put_contact(parent_id: str, request: UpsertContactRequest) -> ContactResponse:
    """Create or replace where a parent receives reminder notifications.

    Omitted or blank fields clear the stored address.
    """
    start = time.perf_counter()
    logger.info(f"Upsert contact: parent_id={parent_id}")

    with get_session() as session:
        contact = upsert_parent_contact(
            session,
            parent_id,
            push_token=request.push_token,
            phone_number=request.phone_number,
        )
        response = _contact_to_response(contact)

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(f"Upsert contact complete: parent_id={parent_id}, elapsed={elapsed_ms:.0f}ms")

    return response


@router.get(
    "/{parent_id}",
    response_model=ContactResponse,
    summary="Get notification contact",
)
def get_contact(parent_id: str) -> ContactResponse:
    """Get where a parent receives reminder notifications."""
    with get_session() as session:
        contact = get_parent_contact(session, parent_id)
        if contact is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Contact not found: {parent_id}",
            )
        return _contact_to_response(contact)
