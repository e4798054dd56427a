"""GreenAPI adapter - validate and normalize webhook payloads.

GreenAPI discriminates events with `typeWebhook`. Direction is encoded in
the event type name itself (incoming vs outgoing*), not in a flag.
"""

from typing import Any

from inboxly.domain.errors import ParseError
from inboxly.domain.phone import is_group_chat_id, phone_from_chat_id
from inboxly.infra.time import from_unix

from .fields import as_id, as_object, dig, first_str
from .models import (
    CanonicalEvent,
    ConnectionStateChange,
    MediaAttachment,
    MessageBody,
    NewMessage,
    StatusUpdate,
)
from .placeholders import placeholder

PROVIDER = "greenapi"

_INCOMING_TYPES = {"incomingMessageReceived"}
_OUTGOING_TYPES = {"outgoingMessageReceived", "outgoingAPIMessageReceived"}

_STATUS_MAP = {
    "sent": "sent",
    "delivered": "delivered",
    "read": "read",
    "failed": "failed",
    "noAccount": "failed",
    "notInGroup": "failed",
    "yellowCard": "failed",
}

_STATE_MAP = {
    "authorized": "open",
    "notAuthorized": "qr",
    "starting": "connecting",
}

_MEDIA_TYPES = {
    "imageMessage": ("image", "imageMessageData"),
    "videoMessage": ("video", "videoMessageData"),
    "audioMessage": ("audio", "audioMessageData"),
    "documentMessage": ("document", "documentMessageData"),
}


def parse(
    payload: dict[str, Any],
    *,
    organization_id: str | None = None,
    locale: str = "ru",
) -> list[CanonicalEvent]:
    """Parse a GreenAPI webhook into canonical events.

    Args:
        payload: Raw webhook payload from GreenAPI.
        organization_id: Organization the webhook was addressed to, if known.
        locale: Placeholder caption locale.

    Returns:
        Zero or one canonical events. Unknown webhook types yield [].

    Raises:
        ParseError: If the payload shape is unrecognized or mandatory
            message fields are missing.
    """
    if not isinstance(payload, dict):
        raise ParseError("payload is not an object")

    type_webhook = payload.get("typeWebhook")
    if not type_webhook or not isinstance(type_webhook, str):
        raise ParseError("missing typeWebhook")

    if type_webhook in _INCOMING_TYPES or type_webhook in _OUTGOING_TYPES:
        return [_new_message(payload, type_webhook, organization_id, locale)]

    if type_webhook == "outgoingMessageStatus":
        status = _status_update(payload)
        return [status] if status else []

    if type_webhook == "stateInstanceChanged":
        change = _state_change(payload)
        return [change] if change else []

    return []


def _new_message(
    payload: dict[str, Any],
    type_webhook: str,
    organization_id: str | None,
    locale: str,
) -> NewMessage:
    message_id = as_id(payload.get("idMessage"))
    if not message_id:
        raise ParseError("missing idMessage")

    sender_data = as_object(payload.get("senderData"), "senderData")
    chat_id = first_str(dig(sender_data, "chatId"))
    if not chat_id:
        raise ParseError("missing senderData.chatId")

    chat_name = first_str(sender_data.get("chatName"))
    sender_name = first_str(sender_data.get("senderName"), chat_name)

    return NewMessage(
        provider_message_id=message_id,
        chat_id=chat_id,
        direction="incoming" if type_webhook in _INCOMING_TYPES else "outgoing",
        occurred_at=from_unix(payload.get("timestamp")),
        body=_extract_body(as_object(payload.get("messageData"), "messageData"), locale),
        provider=PROVIDER,
        chat_type="group" if is_group_chat_id(chat_id) else "individual",
        sender_display_name=sender_name or phone_from_chat_id(chat_id),
        chat_name=chat_name,
        organization_id=organization_id,
        instance_id=as_id(dig(payload, "instanceData", "idInstance")),
    )


def _extract_body(message_data: dict[str, Any], locale: str) -> MessageBody:
    """Extract text and media from GreenAPI messageData.

    Media may live under the subtype-specific key (imageMessageData, ...),
    the generic fileMessageData, or directly on messageData.
    """
    type_message = first_str(message_data.get("typeMessage"))

    if type_message == "textMessage":
        text = first_str(dig(message_data, "textMessageData", "textMessage"))
        return MessageBody(text=text or "")

    if type_message in ("extendedTextMessage", "quotedMessage"):
        text = first_str(
            dig(message_data, "extendedTextMessageData", "text"),
            dig(message_data, "textMessageData", "textMessage"),
        )
        return MessageBody(text=text or "")

    if type_message not in _MEDIA_TYPES:
        return MessageBody(text="")

    media_type, specific_key = _MEDIA_TYPES[type_message]
    specific = as_object(message_data.get(specific_key), specific_key)
    generic = as_object(message_data.get("fileMessageData"), "fileMessageData")

    url = first_str(
        specific.get("downloadUrl"),
        generic.get("downloadUrl"),
        message_data.get("downloadUrl"),
    )
    filename = first_str(specific.get("fileName"), generic.get("fileName"))
    caption = first_str(
        specific.get("caption"),
        generic.get("caption"),
        message_data.get("caption"),
    )

    if media_type == "audio":
        text = placeholder("audio", locale)
    elif media_type == "document":
        text = caption or filename or placeholder("document", locale)
    else:
        text = caption or placeholder(media_type, locale)

    return MessageBody(
        text=text,
        media=MediaAttachment(url=url, media_type=media_type, filename=filename),
    )


def _status_update(payload: dict[str, Any]) -> StatusUpdate | None:
    message_id = as_id(payload.get("idMessage"))
    raw_status = first_str(payload.get("status"))
    if not message_id or not raw_status:
        raise ParseError("status webhook without idMessage/status")

    status = _STATUS_MAP.get(raw_status)
    if status is None:
        return None

    return StatusUpdate(
        provider_message_id=message_id,
        new_status=status,
        provider=PROVIDER,
        occurred_at=from_unix(payload.get("timestamp")),
    )


def _state_change(payload: dict[str, Any]) -> ConnectionStateChange | None:
    instance_id = as_id(dig(payload, "instanceData", "idInstance"))
    raw_state = first_str(payload.get("stateInstance"))
    if not instance_id or not raw_state:
        return None

    state = _STATE_MAP.get(raw_state, "disconnected")
    phone = None
    if state == "open":
        wid = first_str(dig(payload, "instanceData", "wid"))
        phone = phone_from_chat_id(wid) if wid else None

    return ConnectionStateChange(
        provider=PROVIDER,
        instance_id=instance_id,
        state=state,
        phone_number=phone,
    )


def webhook_type(payload: Any) -> str | None:
    """Return the GreenAPI webhook type label for audit records."""
    if not isinstance(payload, dict):
        return None
    return first_str(payload.get("typeWebhook"))
