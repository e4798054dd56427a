"""Ingestion pipeline - one webhook call in, canonical rows out.

Per call:

  1. Audit the raw body (own transaction, always, even on parse failure).
  2. Decode JSON. Empty or undecodable body is a TransportError (HTTP 400).
  3. Parse with the provider adapter. ParseError, or any crash inside the
     adapter, ends the call (HTTP 200). A rejected batch entry is audited
     on its own and its siblings continue.
  4. Process each event in its own transaction:
       NewMessage            identity -> dedupe -> insert -> chat upsert
       StatusUpdate          status transition
       ConnectionStateChange instance connection state
  5. A failing event rolls back alone, is logged and audited; siblings
     continue. StoreTimeoutError aborts the whole call (HTTP 503) so the
     provider retries.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Callable

from inboxly.config import Settings
from inboxly.observability.logging import get_logger
from inboxly.observability.redaction import id_prefix, safe_log_context
from inboxly.whatsapp.adapters import ProviderAdapter
from inboxly.whatsapp.models import (
    CanonicalEvent,
    ConnectionStateChange,
    Message,
    NewMessage,
    RejectedEntry,
    StatusUpdate,
)
from inboxly.whatsapp.placeholders import outgoing_sender

from . import conversations, dedupe, identity, status
from .errors import (
    ParseError,
    PersistenceConflict,
    ResolutionError,
    StoreTimeoutError,
    TransportError,
)
from .ports import SessionFactory, Stores

logger = get_logger(__name__)


@dataclass(frozen=True)
class EventOutcome:
    """What happened to one canonical event."""

    kind: str
    outcome: str
    provider_message_id: str | None = None
    client_id: str | None = None
    lead_created: bool = False
    error: str | None = None


@dataclass
class IngestResult:
    """Summary of one webhook call."""

    provider: str
    webhook_type: str | None = None
    parse_error: str | None = None
    outcomes: list[EventOutcome] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.outcome in ("error", "parse_error"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "provider": self.provider,
            "webhook_type": self.webhook_type,
            "parse_error": self.parse_error,
            "events": [
                {k: v for k, v in asdict(o).items() if v not in (None, False)}
                for o in self.outcomes
            ],
        }


def build_message(
    event: NewMessage,
    resolution: identity.Resolution,
    locale: str = "ru",
) -> Message:
    """Map a canonical NewMessage to the persisted row shape.

    Outgoing rows are attributed to the organization with a fixed sender
    label, since providers do not say which operator sent them.
    """
    incoming = event.direction == "incoming"
    media = event.body.media
    return Message(
        provider_message_id=event.provider_message_id,
        chat_id=event.chat_id,
        organization_id=resolution.organization_id,
        direction=event.direction,
        content=event.body.text,
        status="delivered" if incoming else "sent",
        timestamp=event.occurred_at,
        provider=event.provider,
        chat_type=event.chat_type,
        client_id=resolution.client_id,
        media_url=media.url if media else None,
        media_type=media.media_type if media else None,
        media_filename=media.filename if media else None,
        sender_name=event.sender_display_name if incoming else outgoing_sender(locale),
        channel_id=event.instance_id,
        is_read=not incoming,
    )


class IngestionPipeline:
    """Orchestrates adapters and domain steps for webhook calls.

    Holds configuration only; every call is independent.
    """

    def __init__(self, session_factory: SessionFactory, settings: Settings | None = None) -> None:
        self._session = session_factory
        self._settings = settings or Settings()

    def ingest(
        self,
        adapter: ProviderAdapter,
        raw_body: bytes | str,
        *,
        organization_id: str | None = None,
    ) -> IngestResult:
        """Process one webhook call.

        Args:
            adapter: Provider variant the webhook was addressed to.
            raw_body: Request body as received.
            organization_id: Organization from the request, if any.

        Returns:
            IngestResult with per-event outcomes.

        Raises:
            TransportError: Empty body or invalid JSON.
            StoreTimeoutError: A store call exceeded the statement timeout.
        """
        text = raw_body.decode("utf-8", errors="replace") if isinstance(raw_body, bytes) else raw_body
        result = IngestResult(provider=adapter.provider)

        if not text.strip():
            self._audit(adapter, text, None, "empty_body")
            raise TransportError("empty request body")

        try:
            payload = json.loads(text)
        except ValueError as e:
            self._audit(adapter, text, None, "invalid_json", error_message=str(e))
            raise TransportError("invalid json body") from e

        if not isinstance(payload, dict):
            self._audit(adapter, text, None, "invalid_json", error_message="body is not an object")
            raise TransportError("json body must be an object")

        try:
            result.webhook_type = self._run_adapter(adapter, adapter.webhook_type, payload)
            events = self._run_adapter(
                adapter,
                adapter.parse,
                payload,
                organization_id=organization_id,
                locale=self._settings.placeholder_locale,
            )
        except ParseError as e:
            result.parse_error = str(e)
            logger.warning(
                "unrecognized webhook payload",
                extra={
                    "extra_fields": safe_log_context(
                        provider=adapter.provider,
                        webhook_type=result.webhook_type,
                        error=str(e),
                    )
                },
            )
            self._audit(
                adapter,
                text,
                payload,
                "parse_error",
                webhook_type=result.webhook_type,
                error_message=str(e),
            )
            return result

        self._audit(adapter, text, payload, "processing", webhook_type=result.webhook_type)

        for event in events:
            result.outcomes.append(self._process(adapter, text, event))

        logger.info(
            "webhook processed",
            extra={
                "extra_fields": safe_log_context(
                    provider=adapter.provider,
                    webhook_type=result.webhook_type,
                    events=len(result.outcomes),
                    failed=result.failed,
                )
            },
        )
        return result

    def _run_adapter(self, adapter: ProviderAdapter, step: Callable[..., Any], *args, **kwargs) -> Any:
        """Call an adapter step, reporting any crash inside it as a ParseError."""
        try:
            return step(*args, **kwargs)
        except ParseError:
            raise
        except Exception as e:
            logger.exception(
                "adapter failed on webhook payload",
                extra={
                    "extra_fields": safe_log_context(
                        provider=adapter.provider,
                        error_type=type(e).__name__,
                    )
                },
            )
            raise ParseError(f"{type(e).__name__}: {e}") from e

    def _process(self, adapter: ProviderAdapter, raw_text: str, event: CanonicalEvent) -> EventOutcome:
        kind = _event_kind(event)
        if isinstance(event, RejectedEntry):
            return self._reject(adapter, raw_text, event)
        message_id = getattr(event, "provider_message_id", None)
        try:
            with self._session() as stores:
                if isinstance(event, NewMessage):
                    return self._handle_new_message(stores, event)
                if isinstance(event, StatusUpdate):
                    return self._handle_status(stores, event)
                return self._handle_connection(stores, event)
        except PersistenceConflict:
            # Concurrent delivery won the unique index; its work stands
            return EventOutcome(kind=kind, outcome="duplicate", provider_message_id=message_id)
        except StoreTimeoutError:
            raise
        except ResolutionError as e:
            logger.warning(
                "event skipped, organization unresolved",
                extra={
                    "extra_fields": safe_log_context(
                        provider=adapter.provider,
                        kind=kind,
                        error=str(e),
                    )
                },
            )
            self._audit(adapter, raw_text, None, "error", webhook_type=kind, error_message=str(e))
            return EventOutcome(
                kind=kind,
                outcome="error",
                provider_message_id=message_id,
                error="ResolutionError",
            )
        except Exception as e:
            logger.exception(
                "event processing failed",
                extra={
                    "extra_fields": safe_log_context(
                        provider=adapter.provider,
                        kind=kind,
                        message_id_prefix=id_prefix(message_id) if message_id else None,
                        error_type=type(e).__name__,
                    )
                },
            )
            self._audit(
                adapter,
                raw_text,
                None,
                "error",
                webhook_type=kind,
                error_message=f"{type(e).__name__}: {e}",
            )
            return EventOutcome(
                kind=kind,
                outcome="error",
                provider_message_id=message_id,
                error=type(e).__name__,
            )

    def _handle_new_message(self, stores: Stores, event: NewMessage) -> EventOutcome:
        resolution = identity.resolve(stores, event)

        if not dedupe.should_persist(stores, event.provider_message_id):
            logger.info(
                "duplicate message ignored",
                extra={
                    "extra_fields": safe_log_context(
                        provider=event.provider,
                        message_id_prefix=id_prefix(event.provider_message_id),
                    )
                },
            )
            return EventOutcome(
                kind="new_message",
                outcome="duplicate",
                provider_message_id=event.provider_message_id,
                client_id=resolution.client_id,
                lead_created=resolution.created,
            )

        dedupe.insert_once(stores, build_message(event, resolution, self._settings.placeholder_locale))
        conversations.track(stores, event, resolution, self._settings.placeholder_locale)

        return EventOutcome(
            kind="new_message",
            outcome="stored",
            provider_message_id=event.provider_message_id,
            client_id=resolution.client_id,
            lead_created=resolution.created,
        )

    def _handle_status(self, stores: Stores, event: StatusUpdate) -> EventOutcome:
        applied = status.apply(
            stores,
            event,
            enforce_order=self._settings.status_enforce_order,
        )
        return EventOutcome(
            kind="status_update",
            outcome="status_applied" if applied else "status_skipped",
            provider_message_id=event.provider_message_id,
        )

    def _handle_connection(self, stores: Stores, event: ConnectionStateChange) -> EventOutcome:
        updated = stores.connections.apply(event)
        return EventOutcome(
            kind="connection_state",
            outcome="connection_updated" if updated else "connection_ignored",
        )

    def _reject(self, adapter: ProviderAdapter, raw_text: str, entry: RejectedEntry) -> EventOutcome:
        logger.warning(
            "batch entry rejected",
            extra={
                "extra_fields": safe_log_context(
                    provider=adapter.provider,
                    index=entry.index,
                    error=entry.reason,
                )
            },
        )
        self._audit(
            adapter,
            raw_text,
            None,
            "parse_error",
            webhook_type="rejected_entry",
            error_message=f"entry {entry.index}: {entry.reason}",
        )
        return EventOutcome(kind="rejected_entry", outcome="parse_error", error=entry.reason)

    def _audit(
        self,
        adapter: ProviderAdapter,
        raw_text: str,
        payload: Any,
        result: str,
        *,
        webhook_type: str | None = None,
        error_message: str | None = None,
    ) -> None:
        with self._session() as stores:
            stores.audit.record(
                adapter.audit_source,
                raw_text,
                payload,
                result,
                webhook_type=webhook_type,
                error_message=error_message,
            )


def _event_kind(event: CanonicalEvent) -> str:
    if isinstance(event, NewMessage):
        return "new_message"
    if isinstance(event, StatusUpdate):
        return "status_update"
    if isinstance(event, RejectedEntry):
        return "rejected_entry"
    return "connection_state"
