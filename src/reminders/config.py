"""Configuration for the reminder engine using pydantic-settings."""

from functools import cached_property, lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.paths import ENV_FILE


class ReminderConfig(BaseSettings):
    """Configuration for reminder generation, dispatch and cleanup.

    All settings are loaded from environment variables with the REMINDER_ prefix.

    :param tick_interval_seconds: Seconds between processing passes.
    :param cleanup_hour: Local hour of day at which retention cleanup runs.
    :param retention_days: Days a terminal reminder is kept after its last update.
    :param cleanup_batch_size: Reminders deleted per cleanup batch.
    :param generation_window_hours: How far ahead reminders are generated.
    :param timezone: IANA timezone that dose times are expressed in.
    :param default_channels: Comma-separated channels for new reminders.
    :param channel_timeout_seconds: Timeout for one channel delivery attempt.
    :param batch_size: Maximum reminders dispatched per pass.
    :param batch_concurrency: Reminders dispatched in parallel within a pass.
    :param claim_lease_seconds: How long a dispatch claim blocks other workers.
    :param max_persistence_retries: Deferrals allowed before a reminder is failed.
    :param retry_backoff_seconds: Base delay for deferred reminders (doubles per retry).
    :param run_scheduler_in_api: Start the threaded scheduler inside the API process.
    """

    model_config = SettingsConfigDict(
        env_prefix="REMINDER_",
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    tick_interval_seconds: int = Field(
        default=60,
        ge=1,
        le=3600,
        description="Seconds between processing passes",
    )
    cleanup_hour: int = Field(
        default=2,
        ge=0,
        le=23,
        description="Local hour of day for retention cleanup",
    )
    retention_days: int = Field(
        default=7,
        ge=1,
        le=365,
        description="Days to keep sent, failed and dismissed reminders",
    )
    cleanup_batch_size: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Reminders deleted per cleanup batch",
    )
    generation_window_hours: int = Field(
        default=24,
        ge=1,
        le=24 * 14,
        description="Hours ahead that reminders are generated for",
    )
    timezone: str = Field(
        default="UTC",
        description="IANA timezone of dose times",
    )
    default_channels: str = Field(
        default="push,sms",
        description="Comma-separated channels for new reminders",
    )
    channel_timeout_seconds: int = Field(
        default=15,
        ge=10,
        le=30,
        description="Timeout in seconds for one channel delivery attempt",
    )
    batch_size: int = Field(
        default=20,
        ge=1,
        le=100,
        description="Maximum reminders dispatched per pass",
    )
    batch_concurrency: int = Field(
        default=4,
        ge=1,
        le=32,
        description="Reminders dispatched in parallel within a pass",
    )
    claim_lease_seconds: int = Field(
        default=300,
        ge=30,
        le=3600,
        description="Seconds a dispatch claim blocks other workers",
    )
    max_persistence_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Deferrals allowed before a reminder is marked failed",
    )
    retry_backoff_seconds: int = Field(
        default=60,
        ge=1,
        le=3600,
        description="Base backoff in seconds for deferred reminders",
    )
    run_scheduler_in_api: bool = Field(
        default=False,
        description="Start the threaded scheduler inside the API process",
    )

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate that the timezone is a known IANA name.

        :param v: Timezone name.
        :returns: The validated name.
        :raises ValueError: If the timezone is unknown.
        """
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    @field_validator("default_channels")
    @classmethod
    def validate_default_channels(cls, v: str) -> str:
        """Validate that at least one default channel is provided.

        :param v: Raw comma-separated string from environment.
        :returns: The validated string.
        :raises ValueError: If no channel is listed.
        """
        if not [c for c in v.split(",") if c.strip()]:
            raise ValueError("At least one default channel must be configured")
        return v

    @cached_property
    def tz(self) -> ZoneInfo:
        """Get the configured timezone.

        :returns: ZoneInfo for ``timezone``.
        """
        return ZoneInfo(self.timezone)

    @cached_property
    def default_channels_list(self) -> list[str]:
        """Get the default channels as a list, in configured order.

        :returns: Lowercased channel identifiers.
        """
        channels: list[str] = []
        for raw in self.default_channels.split(","):
            channel = raw.strip().lower()
            if channel and channel not in channels:
                channels.append(channel)
        return channels


@lru_cache
def get_reminder_settings() -> ReminderConfig:
    """Get cached reminder settings.

    Settings are loaded once and cached for the lifetime of the process.

    :returns: Configured ReminderConfig instance.
    """
    return ReminderConfig()
