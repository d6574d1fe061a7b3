"""Standalone runner for the reminder scheduler."""

from __future__ import annotations

import logging
import signal
import threading
from types import FrameType

from dotenv import load_dotenv

from src.database.connection import dispose_engine
from src.observability.sentry import init_sentry
from src.reminders.factory import build_scheduler
from src.reminders.scheduler import ReminderScheduler
from src.utils.logging import configure_logging

logger = logging.getLogger(__name__)


class SchedulerRunner:
    """Runs a reminder scheduler until SIGINT or SIGTERM."""

    def __init__(self, scheduler: ReminderScheduler) -> None:
        """Initialise the runner.

        :param scheduler: Scheduler to run.
        """
        self._scheduler = scheduler
        self._shutdown = threading.Event()

    def run(self) -> None:
        """Start the scheduler and block until shutdown is requested."""
        self._setup_signal_handlers()
        self._scheduler.start()

        try:
            self._shutdown.wait()
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._scheduler.stop()
            logger.info("Scheduler runner stopped")

    def stop(self) -> None:
        """Request shutdown."""
        self._shutdown.set()

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""

        def signal_handler(signum: int, frame: FrameType | None) -> None:
            logger.info(f"Received signal {signum}, initiating shutdown")
            self.stop()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)


def main() -> None:
    """Run the reminder scheduler as a standalone process."""
    load_dotenv()
    configure_logging()
    init_sentry()

    try:
        SchedulerRunner(build_scheduler()).run()
    finally:
        dispose_engine()
