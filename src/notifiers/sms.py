"""SMS notifications via Twilio."""

from __future__ import annotations

import logging

import requests
from twilio.base.exceptions import TwilioException, TwilioRestException
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client

from src.notifiers.base import AddressKind, ChannelDeliveryError, Notifier, NotificationPayload

logger = logging.getLogger(__name__)

SMS_CHANNEL = "sms"

# Seconds before the Twilio HTTP call gives up
DEFAULT_REQUEST_TIMEOUT = 15


class SmsNotifier(Notifier):
    """Notifier that sends text messages through Twilio."""

    channel = SMS_CHANNEL
    address_kind = AddressKind.PHONE_NUMBER

    def __init__(
        self,
        *,
        account_sid: str,
        auth_token: str,
        from_number: str,
        timeout: int = DEFAULT_REQUEST_TIMEOUT,
        client: Client | None = None,
    ) -> None:
        """Initialise the SMS notifier.

        :param account_sid: Twilio account SID.
        :param auth_token: Twilio auth token.
        :param from_number: Sender phone number.
        :param timeout: Timeout in seconds for each Twilio request.
        :param client: Pre-built Twilio client (mainly for tests).
        """
        self._from_number = from_number
        self._client = client or Client(
            account_sid,
            auth_token,
            http_client=TwilioHttpClient(timeout=timeout),
        )
        logger.debug(f"SmsNotifier initialised: from_number={from_number}")

    def send(self, address: str, payload: NotificationPayload) -> str:
        """Send an SMS to a phone number.

        :param address: Recipient phone number with country code.
        :param payload: Notification content; ``payload.text`` is sent.
        :returns: Twilio message SID.
        :raises ChannelDeliveryError: If Twilio rejects the message or the call fails.
        """
        logger.info(f"Sending SMS to {address}")

        try:
            message = self._client.messages.create(
                from_=self._from_number,
                to=address,
                body=payload.text,
            )
        except TwilioRestException as e:
            raise ChannelDeliveryError(self.channel, f"Twilio rejected message: {e.msg}") from e
        except (TwilioException, requests.exceptions.RequestException) as e:
            raise ChannelDeliveryError(self.channel, f"Twilio request failed: {e}") from e

        logger.info(f"SMS sent: sid={message.sid}, to={address}")
        return str(message.sid)
