"""Tests for the FCM push notifier."""

import unittest
from unittest.mock import MagicMock, patch

from firebase_admin import exceptions, messaging

from src.notifiers.base import ChannelDeliveryError, NotificationPayload
from src.notifiers.push import PushNotifier


def _payload() -> NotificationPayload:
    return NotificationPayload(
        title="Medicine Reminder",
        body="Time to give Amoxicillin (5ml)",
        text="Time to give Amoxicillin (5ml)",
        metadata={"reminder_id": "r-1", "baby_id": "baby-1"},
    )


class TestPushNotifier(unittest.TestCase):
    """Tests for PushNotifier."""

    def setUp(self) -> None:
        """Set up a notifier with a stub Firebase app."""
        self.app = MagicMock()
        self.notifier = PushNotifier(app=self.app)

    @patch("src.notifiers.push.messaging.send")
    def test_send_returns_message_id(self, mock_send: MagicMock) -> None:
        """Test a successful push."""
        mock_send.return_value = "projects/p/messages/123"

        result = self.notifier.send("device-token-abcdef", _payload())

        self.assertEqual(result, "projects/p/messages/123")
        message = mock_send.call_args[0][0]
        self.assertEqual(message.token, "device-token-abcdef")
        self.assertEqual(message.notification.title, "Medicine Reminder")
        self.assertEqual(message.data["reminder_id"], "r-1")
        self.assertIs(mock_send.call_args[1]["app"], self.app)

    @patch("src.notifiers.push.messaging.send")
    def test_unregistered_token_raises_delivery_error(self, mock_send: MagicMock) -> None:
        """Test that a stale token is reported as a channel failure."""
        mock_send.side_effect = messaging.UnregisteredError("gone")

        with self.assertRaises(ChannelDeliveryError) as ctx:
            self.notifier.send("device-token", _payload())

        self.assertEqual(ctx.exception.channel, "push")
        self.assertIn("no longer registered", ctx.exception.reason)

    @patch("src.notifiers.push.messaging.send")
    def test_firebase_error_raises_delivery_error(self, mock_send: MagicMock) -> None:
        """Test that provider errors become channel failures."""
        mock_send.side_effect = exceptions.UnavailableError("service unavailable")

        with self.assertRaises(ChannelDeliveryError) as ctx:
            self.notifier.send("device-token", _payload())

        self.assertIn("FCM error", ctx.exception.reason)

    def test_channel_metadata(self) -> None:
        """Test the notifier's channel identity."""
        self.assertEqual(self.notifier.channel, "push")
        self.assertEqual(self.notifier.address_kind, "push_token")


if __name__ == "__main__":
    unittest.main()
