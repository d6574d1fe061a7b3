"""Filesystem locations used by configuration."""

from pathlib import Path

# src/paths.py -> project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Shared by every pydantic-settings class
ENV_FILE = PROJECT_ROOT / ".env"
