"""Pydantic models shared by API routers."""

from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error body returned by HTTPException handlers."""

    detail: str = Field(..., description="Error description")


# OpenAPI documentation for errors every protected router can return
PROTECTED_ROUTE_RESPONSES: dict[int | str, dict[str, Any]] = {
    401: {"model": ErrorResponse, "description": "Missing or invalid Bearer token"},
    404: {"model": ErrorResponse, "description": "Reminder or contact not found"},
    500: {"model": ErrorResponse, "description": "Internal server error"},
}
