"""API module for the CareNest reminder engine."""

from src.api.app import app

__all__ = ["app"]
