"""Logging configuration for the reminder engine."""

import logging
import os
import sys
from collections.abc import Iterable

# Scheduler passes and channel sends run on worker threads
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(threadName)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that attach their own handlers unless told otherwise
PROPAGATING_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "celery", "alembic")

# Chatty HTTP and provider SDK loggers
QUIET_LOGGERS = (
    "urllib3",
    "httpx",
    "requests",
    "twilio.http_client",
    "google.auth",
    "firebase_admin",
    "sqlalchemy.engine",
)


def _parse_level(level: str) -> int:
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")
    return numeric_level


def _set_logger_levels(names: Iterable[str], level: int) -> None:
    for name in names:
        logging.getLogger(name).setLevel(level)


def configure_logging() -> None:
    """Configure process-wide logging to stdout.

    Env vars:
      - LOG_LEVEL: DEBUG/INFO/WARNING/ERROR/CRITICAL (default INFO)
      - LOG_UVICORN_ACCESS: true/false (default false)
      - LOG_PROVIDER_DEBUG: true/false (default false), let provider SDKs log below WARNING
    """
    level_name = os.environ.get("LOG_LEVEL", "INFO")
    level = _parse_level(level_name)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Exactly one stdout handler, however often this is called
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(handler)

    for name in PROPAGATING_LOGGERS:
        lib_logger = logging.getLogger(name)
        lib_logger.handlers.clear()
        lib_logger.propagate = True

    access_enabled = os.environ.get("LOG_UVICORN_ACCESS", "false").strip().lower() == "true"
    if not access_enabled:
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    provider_debug = os.environ.get("LOG_PROVIDER_DEBUG", "false").strip().lower() == "true"
    quiet_level = max(level, logging.INFO) if provider_debug else max(level, logging.WARNING)
    _set_logger_levels(QUIET_LOGGERS, level=quiet_level)

    logging.getLogger(__name__).info("Logging configured: level=%s", level_name.upper())
