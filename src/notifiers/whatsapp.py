"""WhatsApp notifications via the WhatsApp Business Cloud API."""

from __future__ import annotations

import logging

import requests

from src.notifiers.base import AddressKind, ChannelDeliveryError, Notifier, NotificationPayload
from src.notifiers.config import DEFAULT_WHATSAPP_API_URL

logger = logging.getLogger(__name__)

WHATSAPP_CHANNEL = "whatsapp"

# Default API timeout in seconds
DEFAULT_REQUEST_TIMEOUT = 15


class WhatsAppNotifier(Notifier):
    """Notifier that sends text messages through the WhatsApp Cloud API."""

    channel = WHATSAPP_CHANNEL
    address_kind = AddressKind.PHONE_NUMBER

    def __init__(
        self,
        *,
        phone_number_id: str,
        access_token: str,
        api_url: str = DEFAULT_WHATSAPP_API_URL,
        timeout: int = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        """Initialise the WhatsApp notifier.

        :param phone_number_id: Sender phone number ID.
        :param access_token: Cloud API access token.
        :param api_url: Cloud API base URL.
        :param timeout: Timeout in seconds for each request.
        """
        self._access_token = access_token
        self._timeout = timeout
        self._url = f"{api_url.rstrip('/')}/{phone_number_id}/messages"
        logger.debug(f"WhatsAppNotifier initialised: url={self._url}")

    def send(self, address: str, payload: NotificationPayload) -> str:
        """Send a WhatsApp text message to a phone number.

        :param address: Recipient phone number with country code.
        :param payload: Notification content; ``payload.text`` is sent.
        :returns: WhatsApp message ID.
        :raises ChannelDeliveryError: If the API request fails or returns no message ID.
        """
        body = {
            "messaging_product": "whatsapp",
            "to": address,
            "type": "text",
            "text": {"body": payload.text},
        }
        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": "application/json",
        }

        logger.info(f"Sending WhatsApp message to {address}")
        try:
            response = requests.post(self._url, json=body, headers=headers, timeout=self._timeout)
            response.raise_for_status()
        except requests.exceptions.Timeout as e:
            raise ChannelDeliveryError(
                self.channel, f"WhatsApp API request timed out after {self._timeout}s"
            ) from e
        except requests.exceptions.RequestException as e:
            raise ChannelDeliveryError(self.channel, f"WhatsApp API request failed: {e}") from e

        messages = response.json().get("messages") or []
        message_id = messages[0].get("id") if messages else None
        if not message_id:
            raise ChannelDeliveryError(self.channel, "WhatsApp API returned no message ID")

        logger.info(f"WhatsApp message sent: message_id={message_id}, to={address}")
        return str(message_id)
