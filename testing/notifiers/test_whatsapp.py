"""Tests for the WhatsApp notifier."""

import unittest
from unittest.mock import MagicMock, patch

import requests

from src.notifiers.base import ChannelDeliveryError, NotificationPayload
from src.notifiers.whatsapp import WhatsAppNotifier


def _payload() -> NotificationPayload:
    return NotificationPayload(
        title="Medicine Reminder",
        body="Time to give Amoxicillin (5ml)",
        text="Time to give Amoxicillin (5ml)\nFrequency: 4 times daily",
    )


class TestWhatsAppNotifier(unittest.TestCase):
    """Tests for WhatsAppNotifier."""

    def setUp(self) -> None:
        """Set up the notifier."""
        self.notifier = WhatsAppNotifier(
            phone_number_id="12345",
            access_token="wa-token",
            api_url="https://graph.example.com/v18.0/",
            timeout=10,
        )

    @patch("src.notifiers.whatsapp.requests.post")
    def test_send_posts_text_message(self, mock_post: MagicMock) -> None:
        """Test the request sent to the Cloud API."""
        mock_post.return_value.json.return_value = {"messages": [{"id": "wamid.1"}]}

        result = self.notifier.send("+15550001", _payload())

        self.assertEqual(result, "wamid.1")
        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], "https://graph.example.com/v18.0/12345/messages")
        self.assertEqual(kwargs["json"]["to"], "+15550001")
        self.assertEqual(kwargs["json"]["text"]["body"], _payload().text)
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer wa-token")
        self.assertEqual(kwargs["timeout"], 10)

    @patch("src.notifiers.whatsapp.requests.post")
    def test_timeout_raises_delivery_error(self, mock_post: MagicMock) -> None:
        """Test that a timeout becomes a channel failure."""
        mock_post.side_effect = requests.exceptions.Timeout()

        with self.assertRaises(ChannelDeliveryError) as ctx:
            self.notifier.send("+15550001", _payload())

        self.assertEqual(ctx.exception.channel, "whatsapp")
        self.assertIn("timed out", ctx.exception.reason)

    @patch("src.notifiers.whatsapp.requests.post")
    def test_http_error_raises_delivery_error(self, mock_post: MagicMock) -> None:
        """Test that an HTTP error status becomes a channel failure."""
        mock_post.return_value.raise_for_status.side_effect = requests.exceptions.HTTPError(
            "401 Unauthorized"
        )

        with self.assertRaises(ChannelDeliveryError) as ctx:
            self.notifier.send("+15550001", _payload())

        self.assertIn("401", ctx.exception.reason)

    @patch("src.notifiers.whatsapp.requests.post")
    def test_missing_message_id_raises_delivery_error(self, mock_post: MagicMock) -> None:
        """Test that a response without a message ID is a failure."""
        mock_post.return_value.json.return_value = {"messages": []}

        with self.assertRaises(ChannelDeliveryError):
            self.notifier.send("+15550001", _payload())


if __name__ == "__main__":
    unittest.main()
