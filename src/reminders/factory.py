"""Wire the reminder engine together from configuration."""

from __future__ import annotations

from src.notifiers import build_notifiers, get_notifier_settings
from src.reminders.config import ReminderConfig, get_reminder_settings
from src.reminders.dispatcher import NotificationDispatcher
from src.reminders.processor import ReminderProcessor
from src.reminders.recipients import DatabaseRecipientDirectory
from src.reminders.scheduler import ReminderScheduler


def build_dispatcher(settings: ReminderConfig | None = None) -> NotificationDispatcher:
    """Create a dispatcher with every configured notification channel.

    :param settings: Reminder settings (defaults to the environment settings).
    :returns: The dispatcher.
    """
    settings = settings or get_reminder_settings()
    notifiers = build_notifiers(get_notifier_settings(), timeout=settings.channel_timeout_seconds)
    return NotificationDispatcher(
        notifiers,
        DatabaseRecipientDirectory(),
        channel_timeout=settings.channel_timeout_seconds,
    )


def build_processor(settings: ReminderConfig | None = None) -> ReminderProcessor:
    """Create a processor backed by the configured dispatcher.

    :param settings: Reminder settings (defaults to the environment settings).
    :returns: The processor.
    """
    settings = settings or get_reminder_settings()
    return ReminderProcessor(build_dispatcher(settings), settings=settings)


def build_scheduler(settings: ReminderConfig | None = None) -> ReminderScheduler:
    """Create a scheduler with its processor and retention cleanup.

    :param settings: Reminder settings (defaults to the environment settings).
    :returns: The scheduler, not yet started.
    """
    settings = settings or get_reminder_settings()
    return ReminderScheduler(build_processor(settings), settings=settings)
