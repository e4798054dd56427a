"""Duplicate-delivery guard for provider message ids.

Providers retry webhooks, and retries can arrive concurrently. The unique
index on whatsapp_messages.message_id is the authoritative guard: insert()
uses ON CONFLICT DO NOTHING and reports False when the row already existed.
should_persist() is only a pre-check that skips identity resolution and chat
writes for the common sequential retry.
"""

from inboxly.whatsapp.models import Message

from .errors import PersistenceConflict
from .ports import Stores


def should_persist(stores: Stores, provider_message_id: str) -> bool:
    """Return False if a message with this provider id is already stored."""
    return not stores.messages.exists(provider_message_id)


def insert_once(stores: Stores, message: Message) -> None:
    """Insert a message row exactly once.

    Raises:
        PersistenceConflict: If a concurrent delivery stored it first.
    """
    if not stores.messages.insert(message):
        raise PersistenceConflict(message.provider_message_id)
