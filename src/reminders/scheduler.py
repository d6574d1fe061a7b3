"""Timer-driven scheduler for reminder processing and retention cleanup."""

from __future__ import annotations

import concurrent.futures
import logging
import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from src.reminders.cleanup import run_retention_cleanup
from src.reminders.config import ReminderConfig, get_reminder_settings
from src.reminders.models import CleanupResult, SchedulerState, SchedulerStatus
from src.reminders.processor import ProcessingStats, ReminderProcessor

logger = logging.getLogger(__name__)

CleanupJob = Callable[[datetime], CleanupResult]


def _utc_now() -> datetime:
    return datetime.now(UTC)


class ReminderScheduler:
    """Drives processing passes and daily cleanup from two timer threads.

    The processing timer ticks every ``tick_interval_seconds``. A tick hands
    the pass to a single worker thread, and a tick that arrives while a pass
    is still running is skipped and counted. The cleanup timer runs once a day
    at ``cleanup_hour`` in the configured timezone.

    All state lives on the instance, so several schedulers (e.g. in tests) can
    coexist in one process.
    """

    def __init__(
        self,
        processor: ReminderProcessor,
        settings: ReminderConfig | None = None,
        cleanup: CleanupJob | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialise the scheduler.

        :param processor: Processor that runs each pass.
        :param settings: Reminder settings (defaults to the environment settings).
        :param cleanup: Cleanup job taking the current time (defaults to retention cleanup).
        :param clock: Source of the current time.
        """
        self._processor = processor
        self._settings = settings or get_reminder_settings()
        self._cleanup = cleanup or (lambda now: run_retention_cleanup(now, self._settings))
        self._clock = clock

        self._stop_event = threading.Event()
        self._pass_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._executor: concurrent.futures.ThreadPoolExecutor | None = None
        self._threads: list[threading.Thread] = []

        self._state = SchedulerState.STOPPED
        self._last_run_at: datetime | None = None
        self._last_batch_size = 0
        self._ticks = 0
        self._skipped_ticks = 0
        self._passes_completed = 0
        self._last_cleanup_at: datetime | None = None
        self._last_cleanup_deleted: int | None = None

    @property
    def is_running(self) -> bool:
        """Check if the timers are running."""
        return bool(self._threads) and not self._stop_event.is_set()

    def start(self) -> None:
        """Start the processing and cleanup timers.

        Starting an already started scheduler does nothing.
        """
        with self._state_lock:
            if self.is_running:
                logger.debug("Reminder scheduler already running")
                return

            self._stop_event.clear()
            self._executor = concurrent.futures.ThreadPoolExecutor(
                max_workers=1,
                thread_name_prefix="reminder-pass",
            )
            self._threads = [
                threading.Thread(target=self._tick_loop, name="reminder-ticker", daemon=True),
                threading.Thread(target=self._cleanup_loop, name="reminder-cleanup", daemon=True),
            ]
            self._state = SchedulerState.IDLE
            for thread in self._threads:
                thread.start()

        logger.info(
            f"Reminder scheduler started: tick_interval={self._settings.tick_interval_seconds}s, "
            f"cleanup_hour={self._settings.cleanup_hour:02d}:00 {self._settings.timezone}"
        )

    def stop(self, timeout: float | None = None) -> None:
        """Stop the timers and wait for an in-flight pass to finish.

        :param timeout: Seconds to wait for each timer thread to exit.
        """
        with self._state_lock:
            if not self._threads:
                self._state = SchedulerState.STOPPED
                return

            logger.info("Stopping reminder scheduler...")
            self._stop_event.set()
            for thread in self._threads:
                thread.join(timeout=timeout)
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None
            self._processor.close()
            self._threads = []
            self._state = SchedulerState.STOPPED

        logger.info("Reminder scheduler stopped")

    def status(self) -> SchedulerStatus:
        """Get a snapshot of the scheduler's state.

        :returns: Current state and counters.
        """
        return SchedulerStatus(
            state=self._state,
            last_run_at=self._last_run_at,
            last_batch_size=self._last_batch_size,
            ticks=self._ticks,
            skipped_ticks=self._skipped_ticks,
            passes_completed=self._passes_completed,
            last_cleanup_at=self._last_cleanup_at,
            last_cleanup_deleted=self._last_cleanup_deleted,
        )

    def tick(self) -> bool:
        """Handle one processing timer tick.

        :returns: True if a pass was started, False if the tick was skipped.
        """
        self._ticks += 1
        if not self._pass_lock.acquire(blocking=False):
            self._skipped_ticks += 1
            logger.warning(
                f"Skipping tick, previous pass still running: skipped={self._skipped_ticks}"
            )
            return False

        executor = self._executor
        if executor is None:
            self._pass_lock.release()
            return False

        try:
            executor.submit(self._run_pass_and_release)
        except RuntimeError:
            # Executor shut down between the check and the submit
            self._pass_lock.release()
            return False
        return True

    def run_processing_pass(self) -> ProcessingStats | None:
        """Run one processing pass in the calling thread.

        :returns: Stats for the pass, or None if another pass was running.
        """
        if not self._pass_lock.acquire(blocking=False):
            logger.info("Processing pass already running, not starting another")
            return None
        try:
            return self._execute_pass()
        finally:
            self._pass_lock.release()

    def run_cleanup(self) -> CleanupResult | None:
        """Run retention cleanup in the calling thread.

        :returns: The cleanup result, or None if cleanup raised.
        """
        now = self._clock()
        try:
            result = self._cleanup(now)
        except Exception:
            logger.exception("Reminder cleanup failed")
            return None

        self._last_cleanup_at = now
        self._last_cleanup_deleted = result.deleted
        return result

    def seconds_until_cleanup(self, now: datetime) -> float:
        """Get the delay until the next cleanup run.

        :param now: Current time (timezone-aware).
        :returns: Seconds until the next ``cleanup_hour`` in the configured timezone.
        """
        local_now = now.astimezone(self._settings.tz)
        next_run = local_now.replace(
            hour=self._settings.cleanup_hour, minute=0, second=0, microsecond=0
        )
        if next_run <= local_now:
            next_run = datetime.combine(
                local_now.date() + timedelta(days=1),
                next_run.timetz(),
            )
        return max((next_run - now).total_seconds(), 0.0)

    def _run_pass_and_release(self) -> None:
        try:
            self._execute_pass()
        finally:
            self._pass_lock.release()

    def _execute_pass(self) -> ProcessingStats | None:
        self._state = SchedulerState.RUNNING
        stats: ProcessingStats | None = None
        try:
            stats = self._processor.process_due_reminders(now=self._clock())
        except Exception:
            logger.exception("Reminder processing pass failed")
        finally:
            self._last_run_at = self._clock()
            self._last_batch_size = stats.found if stats else 0
            self._passes_completed += 1
            if self._state == SchedulerState.RUNNING:
                self._state = (
                    SchedulerState.IDLE if self.is_running else SchedulerState.STOPPED
                )
        return stats

    def _tick_loop(self) -> None:
        interval = self._settings.tick_interval_seconds
        # First pass on start, then one per interval
        while not self._stop_event.is_set():
            self.tick()
            if self._stop_event.wait(interval):
                break

    def _cleanup_loop(self) -> None:
        while not self._stop_event.wait(self.seconds_until_cleanup(self._clock())):
            self.run_cleanup()
