"""Postgres-backed unit of work for the ingestion pipeline."""

from contextlib import contextmanager
from typing import Iterator

from inboxly.config import Settings
from inboxly.domain.ports import SessionFactory, Stores

from .db import txn
from .repositories.audit_repository import PgAuditLog
from .repositories.chats_repository import PgChatStore
from .repositories.clients_repository import PgClientDirectory
from .repositories.instances_repository import PgConnectionStateStore
from .repositories.messages_repository import PgMessageStore


def stores_for(cur) -> Stores:
    """Bind every collaborator to one cursor (one transaction)."""
    return Stores(
        clients=PgClientDirectory(cur),
        messages=PgMessageStore(cur),
        chats=PgChatStore(cur),
        audit=PgAuditLog(cur),
        connections=PgConnectionStateStore(cur),
    )


def pg_session_factory(settings: Settings) -> SessionFactory:
    """Return a factory opening one transaction per unit of work."""

    @contextmanager
    def session() -> Iterator[Stores]:
        with txn(
            statement_timeout_ms=settings.store_timeout_ms,
            connect_timeout=settings.connect_timeout_s,
        ) as cur:
            yield stores_for(cur)

    return session
