"""Build the notifiers that have credentials configured."""

from __future__ import annotations

import logging

from src.notifiers.base import Notifier
from src.notifiers.config import NotifierConfig, get_notifier_settings
from src.notifiers.push import PushNotifier
from src.notifiers.sms import SmsNotifier
from src.notifiers.whatsapp import WhatsAppNotifier

logger = logging.getLogger(__name__)


def build_notifiers(
    settings: NotifierConfig | None = None,
    timeout: int = 15,
) -> dict[str, Notifier]:
    """Create a notifier for every channel with credentials configured.

    Channels without credentials are left out, so the dispatcher reports them
    as unavailable instead of failing on every send.

    :param settings: Notifier settings (defaults to the cached environment settings).
    :param timeout: Per-request provider timeout in seconds.
    :returns: Notifiers keyed by channel identifier.
    """
    settings = settings or get_notifier_settings()
    notifiers: dict[str, Notifier] = {}

    if settings.push_enabled:
        notifiers[PushNotifier.channel] = PushNotifier(
            credentials_json=settings.fcm_credentials_json,
            project_id=settings.fcm_project_id,
            http_timeout=timeout,
        )

    if settings.sms_enabled:
        notifiers[SmsNotifier.channel] = SmsNotifier(
            account_sid=settings.twilio_account_sid or "",
            auth_token=settings.twilio_auth_token or "",
            from_number=settings.twilio_from_number or "",
            timeout=timeout,
        )

    if settings.whatsapp_enabled:
        notifiers[WhatsAppNotifier.channel] = WhatsAppNotifier(
            phone_number_id=settings.whatsapp_phone_number_id or "",
            access_token=settings.whatsapp_access_token or "",
            api_url=settings.whatsapp_api_url,
            timeout=timeout,
        )

    if not notifiers:
        logger.warning("No notification channels configured, reminders will fail to deliver")
    else:
        logger.info(f"Notification channels enabled: {sorted(notifiers)}")

    return notifiers
