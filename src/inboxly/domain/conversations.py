"""Conversation (chat) summary tracking.

One whatsapp_chats row per (chat_id, organization_id), upserted on every new
message. The row is an advisory cache for chat-list ordering, not an
authority: concurrent upserts are last-write-wins except last_message_at,
which the store only moves forward.
"""

from inboxly.whatsapp.models import Chat, NewMessage
from inboxly.whatsapp.placeholders import group_name

from .identity import Resolution
from .phone import phone_from_chat_id
from .ports import Stores


def display_name_for(event: NewMessage, locale: str = "ru") -> tuple[str, bool]:
    """Pick a display name for the chat.

    Returns:
        Tuple of (name, from_provider). from_provider is True only when the
        provider itself named the chat; fallbacks never overwrite a stored
        name.
    """
    raw_id = phone_from_chat_id(event.chat_id)
    if event.chat_name:
        return (event.chat_name, True)
    if event.is_group:
        return (group_name(raw_id, locale), False)
    if event.direction == "incoming" and event.sender_display_name:
        return (event.sender_display_name, False)
    return (raw_id, False)


def track(
    stores: Stores,
    event: NewMessage,
    resolution: Resolution,
    locale: str = "ru",
) -> Chat:
    """Upsert the chat row for a new message.

    Args:
        stores: Collaborators for the current unit of work.
        event: The new message.
        resolution: Identity resolution result (organization + client).
        locale: Locale for fallback group names.

    Returns:
        The chat row as stored.
    """
    name, from_provider = display_name_for(event, locale)
    return stores.chats.upsert(
        Chat(
            chat_id=event.chat_id,
            organization_id=resolution.organization_id,
            chat_type=event.chat_type,
            display_name=name,
            last_message_at=event.occurred_at,
            provider=event.provider,
            client_id=resolution.client_id,
            phone=None if event.is_group else phone_from_chat_id(event.chat_id),
            name_from_provider=from_provider,
        )
    )
