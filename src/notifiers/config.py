"""Configuration for notification providers using pydantic-settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.paths import ENV_FILE

DEFAULT_WHATSAPP_API_URL = "https://graph.facebook.com/v18.0"


class NotifierConfig(BaseSettings):
    """Credentials for the notification providers.

    All settings are loaded from environment variables with the NOTIFY_ prefix.
    A channel is only enabled when all of its credentials are present.

    :param fcm_credentials_json: Service account JSON, inline or as a file path.
    :param fcm_project_id: Firebase project ID.
    :param twilio_account_sid: Twilio account SID.
    :param twilio_auth_token: Twilio auth token.
    :param twilio_from_number: Twilio sender phone number.
    :param whatsapp_api_url: WhatsApp Cloud API base URL.
    :param whatsapp_phone_number_id: WhatsApp sender phone number ID.
    :param whatsapp_access_token: WhatsApp Cloud API access token.
    """

    model_config = SettingsConfigDict(
        env_prefix="NOTIFY_",
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    fcm_credentials_json: str | None = Field(
        default=None,
        description="Firebase service account JSON (inline) or path to it",
    )
    fcm_project_id: str | None = Field(default=None, description="Firebase project ID")
    twilio_account_sid: str | None = Field(default=None, description="Twilio account SID")
    twilio_auth_token: str | None = Field(default=None, description="Twilio auth token")
    twilio_from_number: str | None = Field(default=None, description="Twilio sender number")
    whatsapp_api_url: str = Field(
        default=DEFAULT_WHATSAPP_API_URL,
        description="WhatsApp Cloud API base URL",
    )
    whatsapp_phone_number_id: str | None = Field(
        default=None,
        description="WhatsApp sender phone number ID",
    )
    whatsapp_access_token: str | None = Field(
        default=None,
        description="WhatsApp Cloud API access token",
    )

    @property
    def push_enabled(self) -> bool:
        """Check if push credentials are configured."""
        return bool(self.fcm_credentials_json or self.fcm_project_id)

    @property
    def sms_enabled(self) -> bool:
        """Check if Twilio credentials are configured."""
        return bool(self.twilio_account_sid and self.twilio_auth_token and self.twilio_from_number)

    @property
    def whatsapp_enabled(self) -> bool:
        """Check if WhatsApp credentials are configured."""
        return bool(self.whatsapp_phone_number_id and self.whatsapp_access_token)


@lru_cache
def get_notifier_settings() -> NotifierConfig:
    """Get cached notifier settings.

    :returns: Configured NotifierConfig instance.
    """
    return NotifierConfig()
