"""Recipient contact API endpoints."""

from src.api.recipients.endpoints import router

__all__ = ["router"]
