"""Evolution API adapter - validate and normalize webhook payloads.

Evolution sends `event` either as "messages.upsert" (v2) or "MESSAGES_UPSERT"
(v1); both are normalized to the upper-case form. Direction comes from
`key.fromMe`. `data` is usually an object but may be a list of objects.
"""

from typing import Any, Callable

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
    RejectedEntry,
    StatusUpdate,
)
from .placeholders import placeholder

PROVIDER = "evolution"

# Baileys ack codes as Evolution forwards them
_NUMERIC_STATUS = {0: "failed", 1: "sent", 2: "delivered", 3: "read"}
_NAMED_STATUS = {
    "ERROR": "failed",
    "PENDING": "sent",
    "SERVER_ACK": "sent",
    "DELIVERY_ACK": "delivered",
    "READ": "read",
    "PLAYED": "read",
}

_CONNECTION_STATES = {"open": "open", "connecting": "connecting", "close": "disconnected"}

_MEDIA_KEYS = (
    ("imageMessage", "image"),
    ("videoMessage", "video"),
    ("audioMessage", "audio"),
    ("documentMessage", "document"),
    ("documentWithCaptionMessage", "document"),
)


def normalize_event_name(event: Any) -> str:
    """Map "messages.upsert" and "MESSAGES_UPSERT" to the same name."""
    if not isinstance(event, str):
        return ""
    return event.strip().upper().replace(".", "_")


def parse(
    payload: dict[str, Any],
    *,
    organization_id: str | None = None,
    locale: str = "ru",
) -> list[CanonicalEvent]:
    """Parse an Evolution API webhook into canonical events.

    Args:
        payload: Raw webhook payload from Evolution API.
        organization_id: Organization the webhook was addressed to, if known.
        locale: Placeholder caption locale.

    Returns:
        Canonical events in payload order. Unknown events yield []. When
        `data` is a list, an entry that cannot be parsed becomes a
        RejectedEntry in its place.

    Raises:
        ParseError: If `event` is missing, or a single-object `data` lacks
            key.id / key.remoteJid.
    """
    if not isinstance(payload, dict):
        raise ParseError("payload is not an object")

    event = normalize_event_name(payload.get("event"))
    if not event:
        raise ParseError("missing event")

    instance = first_str(payload.get("instance"))
    data = payload.get("data")

    if event == "MESSAGES_UPSERT":
        if isinstance(data, list):
            return _each_entry(
                data,
                lambda entry: _new_message(entry, instance, organization_id, locale),
            )
        if not isinstance(data, dict):
            raise ParseError("messages.upsert without data")
        return [_new_message(data, instance, organization_id, locale)]

    if event == "MESSAGES_UPDATE":
        if isinstance(data, list):
            return _each_entry(data, _status_update)
        if not isinstance(data, dict):
            return []
        update = _status_update(data)
        return [update] if update else []

    if event == "CONNECTION_UPDATE":
        change = _connection_update(payload.get("data"), instance)
        return [change] if change else []

    if event == "QRCODE_UPDATED":
        change = _qrcode_update(payload.get("data"), instance)
        return [change] if change else []

    return []


def _each_entry(
    entries: list[Any],
    parse_entry: Callable[[dict[str, Any]], CanonicalEvent | None],
) -> list[CanonicalEvent]:
    """Parse list entries one by one; a bad entry never drops its siblings."""
    events: list[CanonicalEvent] = []
    for index, entry in enumerate(entries):
        try:
            if not isinstance(entry, dict):
                raise ParseError("data entry is not an object")
            event = parse_entry(entry)
        except ParseError as e:
            events.append(RejectedEntry(provider=PROVIDER, reason=str(e), index=index))
            continue
        if event is not None:
            events.append(event)
    return events


def _new_message(
    data: dict[str, Any],
    instance: str | None,
    organization_id: str | None,
    locale: str,
) -> NewMessage:
    key = as_object(data.get("key"), "key")

    message_id = as_id(key.get("id"))
    if not message_id:
        raise ParseError("missing key.id")

    remote_jid = first_str(key.get("remoteJid"))
    if not remote_jid:
        raise ParseError("missing key.remoteJid")

    is_group = is_group_chat_id(remote_jid)
    push_name = first_str(data.get("pushName"))
    from_me = key.get("fromMe") is True

    return NewMessage(
        provider_message_id=message_id,
        chat_id=remote_jid,
        direction="outgoing" if from_me else "incoming",
        occurred_at=from_unix(data.get("messageTimestamp")),
        body=_extract_body(data, locale),
        provider=PROVIDER,
        chat_type="group" if is_group else "individual",
        sender_display_name=push_name or phone_from_chat_id(remote_jid),
        # pushName is the sender, it only names the chat for 1:1 incoming
        chat_name=push_name if not is_group and not from_me else None,
        organization_id=organization_id,
        instance_id=instance,
    )


def _extract_body(data: dict[str, Any], locale: str) -> MessageBody:
    message = as_object(data.get("message"), "message")

    text = first_str(
        message.get("conversation"),
        dig(message, "extendedTextMessage", "text"),
    )
    if text:
        return MessageBody(text=text)

    for key, media_type in _MEDIA_KEYS:
        media = message.get(key)
        if not isinstance(media, dict):
            continue
        if key == "documentWithCaptionMessage":
            nested = dig(media, "message", "documentMessage")
            if isinstance(nested, dict):
                media = nested

        url = first_str(media.get("url"), message.get("mediaUrl"), data.get("mediaUrl"))
        filename = first_str(media.get("fileName"), media.get("title"))
        caption = first_str(media.get("caption"))

        if media_type == "audio":
            caption_text = placeholder("audio", locale)
        elif media_type == "document":
            caption_text = caption or filename or placeholder("document", locale)
        else:
            caption_text = caption or placeholder(media_type, locale)

        return MessageBody(
            text=caption_text,
            media=MediaAttachment(url=url, media_type=media_type, filename=filename),
        )

    return MessageBody(text="")


def _status_update(data: dict[str, Any]) -> StatusUpdate | None:
    """Evolution v1 nests the ack under update.status, v2 flattens it."""
    message_id = as_id(dig(data, "key", "id")) or as_id(data.get("keyId"))
    if not message_id:
        return None

    raw_status = dig(data, "update", "status")
    if raw_status is None:
        raw_status = data.get("status")

    status = _map_status(raw_status)
    if status is None:
        return None

    return StatusUpdate(
        provider_message_id=message_id,
        new_status=status,
        provider=PROVIDER,
    )


def _map_status(raw_status: Any) -> str | None:
    if isinstance(raw_status, bool) or raw_status is None:
        return None
    if isinstance(raw_status, int):
        return _NUMERIC_STATUS.get(raw_status, "sent")
    if isinstance(raw_status, str):
        return _NAMED_STATUS.get(raw_status.strip().upper())
    return None


def _connection_update(data: Any, instance: str | None) -> ConnectionStateChange | None:
    state = first_str(dig(data, "state"))
    if not instance or not state:
        return None

    mapped = _CONNECTION_STATES.get(state, "disconnected")
    phone = None
    if mapped == "open":
        wuid = first_str(dig(data, "wuid"), dig(data, "instance", "wuid"))
        phone = phone_from_chat_id(wuid) if wuid else None

    return ConnectionStateChange(
        provider=PROVIDER,
        instance_id=instance,
        state=mapped,
        phone_number=phone,
    )


def _qrcode_update(data: Any, instance: str | None) -> ConnectionStateChange | None:
    qrcode = dig(data, "qrcode")
    qr = first_str(dig(qrcode, "base64"), qrcode)
    if not instance or not qr:
        return None

    return ConnectionStateChange(
        provider=PROVIDER,
        instance_id=instance,
        state="qr",
        qr_code=qr,
    )


def webhook_type(payload: Any) -> str | None:
    """Return the normalized Evolution event name for audit records."""
    if not isinstance(payload, dict):
        return None
    return normalize_event_name(payload.get("event")) or None
