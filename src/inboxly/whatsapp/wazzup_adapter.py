"""Wazzup24 adapter - validate and normalize webhook payloads.

One Wazzup webhook may carry several messages and several status updates.
Direction comes from the `isEcho` flag: echoes are messages the organization
itself sent (from the phone or another Wazzup client).
"""

from typing import Any

from inboxly.domain.errors import ParseError
from inboxly.domain.phone import is_group_chat_id
from inboxly.infra.time import from_iso

from .fields import as_id, dig, first_str
from .models import (
    CanonicalEvent,
    MediaAttachment,
    MessageBody,
    NewMessage,
    RejectedEntry,
    StatusUpdate,
)
from .placeholders import placeholder

PROVIDER = "wazzup"

_GROUP_CHAT_TYPES = {"whatsgroup"}

_MEDIA_TYPES = {
    "image": "image",
    "video": "video",
    "audio": "audio",
    "voice": "audio",
    "document": "document",
    "file": "document",
}

# "inbound" marks incoming messages, it is not a delivery state
_STATUS_MAP = {
    "sent": "sent",
    "delivered": "delivered",
    "read": "read",
    "error": "failed",
}


def parse(
    payload: dict[str, Any],
    *,
    organization_id: str | None = None,
    locale: str = "ru",
) -> list[CanonicalEvent]:
    """Parse a Wazzup24 webhook into canonical events.

    Args:
        payload: Raw webhook payload from Wazzup24.
        organization_id: Organization the webhook was addressed to, if known.
        locale: Placeholder caption locale.

    Returns:
        Messages first, then status updates. Test pings yield []. An entry
        lacking messageId/chatId becomes a RejectedEntry in its place.

    Raises:
        ParseError: If the payload is not an object or the message/status
            arrays are malformed.
    """
    if not isinstance(payload, dict):
        raise ParseError("payload is not an object")

    if payload.get("test") is True:
        return []

    messages = payload.get("messages") or []
    statuses = payload.get("statuses") or []
    if not isinstance(messages, list) or not isinstance(statuses, list):
        raise ParseError("messages/statuses must be arrays")

    events: list[CanonicalEvent] = []
    for index, raw in enumerate(messages):
        try:
            events.append(_new_message(raw, organization_id, locale))
        except ParseError as e:
            events.append(RejectedEntry(provider=PROVIDER, reason=str(e), index=index))
    for index, raw in enumerate(statuses):
        try:
            status = _status_update(raw)
        except ParseError as e:
            events.append(RejectedEntry(provider=PROVIDER, reason=str(e), index=index))
            continue
        if status:
            events.append(status)
    return events


def _new_message(
    raw: Any,
    organization_id: str | None,
    locale: str,
) -> NewMessage:
    if not isinstance(raw, dict):
        raise ParseError("message entry is not an object")

    message_id = as_id(raw.get("messageId"))
    if not message_id:
        raise ParseError("missing messageId")

    chat_id = as_id(raw.get("chatId"))
    if not chat_id:
        raise ParseError("missing chatId")

    is_group = first_str(raw.get("chatType")) in _GROUP_CHAT_TYPES or is_group_chat_id(chat_id)
    contact_name = first_str(dig(raw, "contact", "name"))

    return NewMessage(
        provider_message_id=message_id,
        chat_id=chat_id,
        direction="outgoing" if raw.get("isEcho") is True else "incoming",
        occurred_at=from_iso(raw.get("dateTime")),
        body=_extract_body(raw, locale),
        provider=PROVIDER,
        chat_type="group" if is_group else "individual",
        sender_display_name=contact_name or chat_id,
        chat_name=contact_name,
        organization_id=organization_id,
        instance_id=as_id(raw.get("channelId")),
    )


def _extract_body(raw: dict[str, Any], locale: str) -> MessageBody:
    """Wazzup only attaches media when contentUri is present."""
    text = first_str(raw.get("text")) or ""
    content_uri = first_str(raw.get("contentUri"))
    if not content_uri:
        return MessageBody(text=text)

    message_type = first_str(raw.get("type"))
    media_type = _MEDIA_TYPES.get(message_type, "document")
    caption_kind = media_type if message_type in _MEDIA_TYPES else "file"

    return MessageBody(
        text=text or placeholder(caption_kind, locale),
        media=MediaAttachment(
            url=content_uri,
            media_type=media_type,
            filename=first_str(raw.get("fileName"), raw.get("filename")),
        ),
    )


def _status_update(raw: Any) -> StatusUpdate | None:
    if not isinstance(raw, dict):
        raise ParseError("status entry is not an object")

    message_id = as_id(raw.get("messageId"))
    if not message_id:
        raise ParseError("status without messageId")

    status = _STATUS_MAP.get(first_str(raw.get("status")))
    if status is None:
        return None

    timestamp = raw.get("timestamp")
    return StatusUpdate(
        provider_message_id=message_id,
        new_status=status,
        provider=PROVIDER,
        occurred_at=from_iso(timestamp) if timestamp else None,
    )


def webhook_type(payload: Any) -> str | None:
    """Wazzup has no type field; label by what the payload carries."""
    if not isinstance(payload, dict):
        return None
    if payload.get("test") is True:
        return "test"
    kinds = [key for key in ("messages", "statuses") if payload.get(key)]
    return "+".join(kinds) or None
