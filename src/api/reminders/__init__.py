"""Reminders API endpoints."""

from src.api.reminders.endpoints import router

__all__ = ["router"]
