"""Collaborator interfaces consumed by the ingestion pipeline.

The pipeline never talks to Postgres directly. inboxly.infra.repositories
provides the production implementations; tests use in-memory fakes.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Any, Callable, Protocol

from inboxly.whatsapp.models import Chat, ConnectionStateChange, Message, Provider


@dataclass(frozen=True)
class Client:
    """The slice of a CRM client record the pipeline needs."""

    id: str
    organization_id: str
    name: str
    phone: str | None = None


@dataclass(frozen=True)
class LeadAttributes:
    """Attributes of an auto-created lead."""

    name: str
    phone: str
    phone_normalized: str
    status: str = "New Lead"
    source: str = "WhatsApp"
    utm_source: str = "whatsapp"
    utm_medium: str = "direct"
    utm_campaign: str = "incoming_message"
    description: str = "Автоматически создан из входящего сообщения WhatsApp"


class ClientDirectory(Protocol):
    def find_by_normalized_phone(self, organization_id: str, phone: str) -> Client | None: ...

    def create_lead(self, organization_id: str, attrs: LeadAttributes) -> Client: ...

    def find_integration_organizations(self, provider: Provider) -> list[str]: ...


class MessageStore(Protocol):
    def exists(self, provider_message_id: str) -> bool: ...

    def insert(self, message: Message) -> bool: ...

    def update_status(
        self,
        provider_message_id: str,
        status: str,
        *,
        enforce_order: bool = True,
    ) -> bool: ...


class ChatStore(Protocol):
    def upsert(self, chat: Chat) -> Chat: ...


class AuditLog(Protocol):
    def record(
        self,
        source: str,
        raw_body: str,
        parsed: Any,
        result: str,
        *,
        webhook_type: str | None = None,
        error_message: str | None = None,
    ) -> None: ...


class ConnectionStateStore(Protocol):
    def find_organization(self, provider: Provider, instance_id: str) -> str | None: ...

    def apply(self, change: ConnectionStateChange) -> bool: ...


@dataclass
class Stores:
    """Collaborators bound to one unit of work (one transaction)."""

    clients: ClientDirectory
    messages: MessageStore
    chats: ChatStore
    audit: AuditLog
    connections: ConnectionStateStore


# Opens a unit of work: commits on clean exit, rolls back on exception
SessionFactory = Callable[[], AbstractContextManager[Stores]]
