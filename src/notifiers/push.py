"""Push notifications via Firebase Cloud Messaging."""

from __future__ import annotations

import json
import logging
import os
import uuid

import firebase_admin
from firebase_admin import credentials, exceptions, messaging

from src.notifiers.base import AddressKind, ChannelDeliveryError, Notifier, NotificationPayload

logger = logging.getLogger(__name__)

PUSH_CHANNEL = "push"

# Seconds before the FCM HTTP call gives up
DEFAULT_HTTP_TIMEOUT = 15

# Notifications for the same baby replace each other on web clients
WEB_NOTIFICATION_TAG_PREFIX = "reminder-"


def _load_credential(credentials_json: str | None) -> credentials.Base:
    """Build a Firebase credential from inline JSON, a file path, or ADC.

    :param credentials_json: Inline service account JSON or a path to one.
    :returns: The credential.
    """
    if credentials_json and credentials_json.strip().startswith("{"):
        return credentials.Certificate(json.loads(credentials_json))
    if credentials_json and os.path.exists(credentials_json):
        return credentials.Certificate(credentials_json)
    return credentials.ApplicationDefault()


class PushNotifier(Notifier):
    """Notifier that sends push notifications through FCM."""

    channel = PUSH_CHANNEL
    address_kind = AddressKind.PUSH_TOKEN

    def __init__(
        self,
        *,
        credentials_json: str | None = None,
        project_id: str | None = None,
        http_timeout: int = DEFAULT_HTTP_TIMEOUT,
        app: firebase_admin.App | None = None,
    ) -> None:
        """Initialise the push notifier.

        :param credentials_json: Inline service account JSON or a path to one.
            Application default credentials are used when omitted.
        :param project_id: Firebase project ID.
        :param http_timeout: Timeout in seconds for each FCM request.
        :param app: Pre-initialised Firebase app (mainly for tests).
        """
        if app is None:
            options: dict[str, object] = {"httpTimeout": http_timeout}
            if project_id:
                options["projectId"] = project_id
            app = firebase_admin.initialize_app(
                _load_credential(credentials_json),
                options=options,
                name=f"carenest-push-{uuid.uuid4().hex[:8]}",
            )
        self._app = app
        logger.debug(f"PushNotifier initialised: project_id={project_id}")

    def _build_message(self, token: str, payload: NotificationPayload) -> messaging.Message:
        tag = WEB_NOTIFICATION_TAG_PREFIX + payload.metadata.get("baby_id", "")
        return messaging.Message(
            token=token,
            notification=messaging.Notification(title=payload.title, body=payload.body),
            data=payload.metadata,
            android=messaging.AndroidConfig(
                priority="high",
                notification=messaging.AndroidNotification(sound="default"),
            ),
            apns=messaging.APNSConfig(headers={"apns-priority": "10"}),
            webpush=messaging.WebpushConfig(
                notification=messaging.WebpushNotification(
                    tag=tag,
                    require_interaction=True,
                ),
                fcm_options=messaging.WebpushFCMOptions(link="/dashboard"),
            ),
        )

    def send(self, address: str, payload: NotificationPayload) -> str:
        """Send a push notification to a device token.

        :param address: FCM registration token.
        :param payload: Notification content.
        :returns: FCM message ID.
        :raises ChannelDeliveryError: If FCM rejects the message or the call fails.
        """
        message = self._build_message(address, payload)

        try:
            message_id = messaging.send(message, app=self._app)
        except messaging.UnregisteredError as e:
            raise ChannelDeliveryError(self.channel, "push token is no longer registered") from e
        except exceptions.FirebaseError as e:
            raise ChannelDeliveryError(self.channel, f"FCM error: {e}") from e
        except ValueError as e:
            raise ChannelDeliveryError(self.channel, f"invalid push message: {e}") from e

        logger.info(
            f"Push notification sent: message_id={message_id}, "
            f"reminder_id={payload.metadata.get('reminder_id')}, token={address[:12]}..."
        )
        return message_id
