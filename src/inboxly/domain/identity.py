"""Identity resolution - map a chat to a CRM client, minting leads.

Organization resolution
───────────────────────
Every write is scoped to one organization, resolved explicitly:

  1. organization_id carried by the event (request query parameter).
  2. Provider instance registry (instance id -> organization).
  3. The single active integration of the provider type.

No candidate, or more than one active integration, is a ResolutionError;
there is no "first organization" default.

Client resolution
─────────────────
  - Group chat → no client.
  - Indexed lookup by normalized phone within the organization.
  - Miss + incoming → create a "New Lead" client.
  - Miss + outgoing → unresolved (never mint a lead for a number the
    organization itself wrote to).
"""

from dataclasses import dataclass

from inboxly.observability.logging import get_logger
from inboxly.observability.redaction import safe_log_context
from inboxly.whatsapp.models import NewMessage

from .errors import ResolutionError
from .phone import normalize_phone, phone_from_chat_id
from .ports import LeadAttributes, Stores

logger = get_logger(__name__)


@dataclass(frozen=True)
class Resolution:
    """Outcome of identity resolution for one message."""

    organization_id: str
    client_id: str | None = None
    created: bool = False


def resolve_organization(stores: Stores, event: NewMessage) -> str:
    """Resolve the organization that owns a message.

    Raises:
        ResolutionError: If no organization, or an ambiguous set of
            organizations, matches the event.
    """
    if event.organization_id:
        return event.organization_id

    if event.instance_id:
        org_id = stores.connections.find_organization(event.provider, event.instance_id)
        if org_id:
            return org_id

    candidates = stores.clients.find_integration_organizations(event.provider)
    if len(candidates) == 1:
        return candidates[0]
    if not candidates:
        raise ResolutionError(f"no active {event.provider} integration")
    raise ResolutionError(
        f"{len(candidates)} active {event.provider} integrations, organization ambiguous"
    )


def resolve(stores: Stores, event: NewMessage) -> Resolution:
    """Resolve (client_id, organization_id) for a message.

    Args:
        stores: Collaborators for the current unit of work.
        event: Canonical new-message event.

    Returns:
        Resolution with the client id (None when unresolved) and whether a
        lead was created.

    Raises:
        ResolutionError: If the organization cannot be resolved.
    """
    organization_id = resolve_organization(stores, event)

    if event.is_group:
        return Resolution(organization_id=organization_id)

    raw_phone = phone_from_chat_id(event.chat_id)
    normalized = normalize_phone(raw_phone)

    client = stores.clients.find_by_normalized_phone(organization_id, normalized)
    if client is not None:
        return Resolution(organization_id=organization_id, client_id=client.id)

    if event.direction != "incoming":
        logger.info(
            "no client for outgoing message, leaving unresolved",
            extra={
                "extra_fields": safe_log_context(
                    provider=event.provider,
                    organization_id=organization_id,
                )
            },
        )
        return Resolution(organization_id=organization_id)

    lead = stores.clients.create_lead(
        organization_id,
        LeadAttributes(
            name=event.sender_display_name or raw_phone,
            phone=raw_phone,
            phone_normalized=normalized,
        ),
    )
    logger.info(
        "lead created from incoming message",
        extra={
            "extra_fields": safe_log_context(
                provider=event.provider,
                organization_id=organization_id,
                client_id=lead.id,
            )
        },
    )
    return Resolution(organization_id=organization_id, client_id=lead.id, created=True)
