"""Notification channels for reminder delivery."""

from src.notifiers.base import AddressKind, ChannelDeliveryError, NotificationPayload, Notifier
from src.notifiers.config import NotifierConfig, get_notifier_settings
from src.notifiers.factory import build_notifiers
from src.notifiers.push import PUSH_CHANNEL, PushNotifier
from src.notifiers.sms import SMS_CHANNEL, SmsNotifier
from src.notifiers.whatsapp import WHATSAPP_CHANNEL, WhatsAppNotifier

__all__ = [
    "PUSH_CHANNEL",
    "SMS_CHANNEL",
    "WHATSAPP_CHANNEL",
    "AddressKind",
    "ChannelDeliveryError",
    "NotificationPayload",
    "Notifier",
    "NotifierConfig",
    "PushNotifier",
    "SmsNotifier",
    "WhatsAppNotifier",
    "build_notifiers",
    "get_notifier_settings",
]
