"""Setup Sentry."""

import logging
import os

import sentry_sdk
from sentry_sdk.integrations.celery import CeleryIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

DEFAULT_TRACES_SAMPLE_RATE = 0.1


def _traces_sample_rate() -> float:
    raw = os.environ.get("SENTRY_TRACES_SAMPLE_RATE")
    if not raw:
        return DEFAULT_TRACES_SAMPLE_RATE
    try:
        return min(max(float(raw), 0.0), 1.0)
    except ValueError:
        logging.getLogger(__name__).warning(
            f"Invalid SENTRY_TRACES_SAMPLE_RATE={raw!r}, using {DEFAULT_TRACES_SAMPLE_RATE}"
        )
        return DEFAULT_TRACES_SAMPLE_RATE


def init_sentry() -> bool:
    """Initialise Sentry if SENTRY_DSN is set.

    Failed reminder passes and channel errors are logged at ERROR, so the
    logging integration turns them into events.

    :returns: True if Sentry was initialised.
    """
    dsn = os.environ.get("SENTRY_DSN")
    if not dsn:
        return False

    # Capture ERROR logs as events, and keep INFO+ as breadcrumbs
    logging_integration = LoggingIntegration(
        level=logging.INFO,  # breadcrumbs
        event_level=logging.ERROR,  # events
    )

    sentry_sdk.init(
        dsn=dsn,
        integrations=[
            CeleryIntegration(),
            SqlalchemyIntegration(),
            logging_integration,
        ],
        environment=os.environ.get("APP_ENV", "local"),
        server_name=os.environ.get("SENTRY_SERVER_NAME", "carenest-reminders"),
        send_default_pii=False,
        traces_sample_rate=_traces_sample_rate(),
    )
    return True
