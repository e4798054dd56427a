"""Canonical WhatsApp event models.

Every provider adapter turns its own webhook shape into these types. Nothing
provider-specific is allowed past the adapter boundary.

ATTENTION PII:
- `chat_id`, `body.text` and `sender_display_name` are PII
- never log them raw, always go through safe_log_context()
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Union

Provider = Literal["greenapi", "wazzup", "evolution"]
Direction = Literal["incoming", "outgoing"]
ChatType = Literal["individual", "group"]
MediaType = Literal["image", "video", "audio", "document"]
MessageStatus = Literal["sent", "delivered", "read", "failed"]
ConnectionState = Literal["open", "connecting", "disconnected", "qr"]

MESSAGE_STATUSES: tuple[str, ...] = ("sent", "delivered", "read", "failed")


@dataclass(frozen=True)
class MediaAttachment:
    """Downloadable media attached to a message."""

    url: str | None
    media_type: MediaType
    filename: str | None = None


@dataclass(frozen=True)
class MessageBody:
    """Text content plus optional media."""

    text: str = ""
    media: MediaAttachment | None = None


@dataclass(frozen=True)
class NewMessage:
    """A message sent or received on a provider chat."""

    provider_message_id: str
    chat_id: str
    direction: Direction
    occurred_at: datetime
    body: MessageBody
    provider: Provider
    chat_type: ChatType = "individual"
    sender_display_name: str | None = None
    chat_name: str | None = None
    organization_id: str | None = None
    instance_id: str | None = None

    @property
    def is_group(self) -> bool:
        return self.chat_type == "group"


@dataclass(frozen=True)
class StatusUpdate:
    """Delivery-state change for a previously sent message."""

    provider_message_id: str
    new_status: MessageStatus
    provider: Provider
    occurred_at: datetime | None = None


@dataclass(frozen=True)
class ConnectionStateChange:
    """Provider instance connection state (QR scan, connect, disconnect)."""

    provider: Provider
    instance_id: str
    state: ConnectionState
    phone_number: str | None = None
    qr_code: str | None = None


@dataclass(frozen=True)
class RejectedEntry:
    """One entry of a batch webhook that could not be parsed.

    Siblings in the same batch are still delivered as canonical events.
    """

    provider: Provider
    reason: str
    index: int


CanonicalEvent = Union[NewMessage, StatusUpdate, ConnectionStateChange, RejectedEntry]


@dataclass(frozen=True)
class Message:
    """Persisted shape of a whatsapp_messages row (stable across providers)."""

    provider_message_id: str
    chat_id: str
    organization_id: str
    direction: Direction
    content: str
    status: MessageStatus
    timestamp: datetime
    provider: Provider
    chat_type: ChatType = "individual"
    client_id: str | None = None
    media_url: str | None = None
    media_type: MediaType | None = None
    media_filename: str | None = None
    sender_name: str | None = None
    channel_id: str | None = None
    is_read: bool = False


@dataclass(frozen=True)
class Chat:
    """Persisted shape of a whatsapp_chats row."""

    chat_id: str
    organization_id: str
    chat_type: ChatType
    display_name: str
    last_message_at: datetime
    provider: Provider
    client_id: str | None = None
    phone: str | None = None
    # Only a provider-supplied name may overwrite an existing display name
    name_from_provider: bool = field(default=False, compare=False)
