"""Base classes for notification channels.

Each channel is a ``Notifier`` behind one interface, so new channels can be
registered with the dispatcher without touching its aggregation logic.
"""

from abc import ABC, abstractmethod
from enum import StrEnum

from pydantic import BaseModel, Field


class AddressKind(StrEnum):
    """Kind of recipient address a channel delivers to."""

    PUSH_TOKEN = "push_token"
    PHONE_NUMBER = "phone_number"


class NotificationPayload(BaseModel):
    """Channel-neutral content of one reminder notification."""

    title: str = Field(..., description="Short title shown by push notifications")
    body: str = Field(..., description="One-line body shown by push notifications")
    text: str = Field(..., description="Full plain-text message for phone channels")
    metadata: dict[str, str] = Field(
        default_factory=dict,
        description="String key/value data attached to push notifications",
    )


class ChannelDeliveryError(Exception):
    """Raised when a channel fails to deliver a notification."""

    def __init__(self, channel: str, reason: str) -> None:
        """Initialise ChannelDeliveryError.

        :param channel: Channel identifier.
        :param reason: Human-readable failure reason.
        """
        self.channel = channel
        self.reason = reason
        super().__init__(f"{channel}: {reason}")


class Notifier(ABC):
    """Abstract base class for notification channels."""

    #: Channel identifier stored on reminders (e.g. "push")
    channel: str
    #: Which recipient address this channel needs
    address_kind: AddressKind

    @abstractmethod
    def send(self, address: str, payload: NotificationPayload) -> str:
        """Deliver a notification.

        :param address: Recipient address of ``address_kind``.
        :param payload: Notification content.
        :returns: Provider message ID.
        :raises ChannelDeliveryError: If the provider rejects or fails the delivery.
        """
        ...
