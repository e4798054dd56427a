"""Provider adapter registry.

Each provider variant is a module exposing `parse(payload, *,
organization_id, locale)` and `webhook_type(payload)`. The registry maps the
URL slug used by the webhook routes to the variant and to the audit-log
source label. Batch variants report an unparseable entry as a RejectedEntry
in place of its event.
"""

from dataclasses import dataclass
from typing import Any, Callable

from . import evolution_adapter, green_api_adapter, wazzup_adapter
from .models import CanonicalEvent, Provider

ParseFn = Callable[..., list[CanonicalEvent]]
WebhookTypeFn = Callable[[Any], "str | None"]


@dataclass(frozen=True)
class ProviderAdapter:
    """One provider variant."""

    provider: Provider
    slug: str
    audit_source: str
    display_name: str
    parse_fn: ParseFn
    webhook_type_fn: WebhookTypeFn

    def parse(
        self,
        payload: Any,
        *,
        organization_id: str | None = None,
        locale: str = "ru",
    ) -> list[CanonicalEvent]:
        """Parse a payload; raises ParseError on unrecognized shape."""
        return self.parse_fn(payload, organization_id=organization_id, locale=locale)

    def webhook_type(self, payload: Any) -> str | None:
        """Label used for the audit record."""
        return self.webhook_type_fn(payload)


ADAPTERS: dict[str, ProviderAdapter] = {
    "green-api": ProviderAdapter(
        provider="greenapi",
        slug="green-api",
        audit_source="green-api",
        display_name="Green API",
        parse_fn=green_api_adapter.parse,
        webhook_type_fn=green_api_adapter.webhook_type,
    ),
    "wazzup": ProviderAdapter(
        provider="wazzup",
        slug="wazzup",
        audit_source="wazzup",
        display_name="Wazzup",
        parse_fn=wazzup_adapter.parse,
        webhook_type_fn=wazzup_adapter.webhook_type,
    ),
    "evolution": ProviderAdapter(
        provider="evolution",
        slug="evolution",
        audit_source="evolution_api",
        display_name="Evolution API",
        parse_fn=evolution_adapter.parse,
        webhook_type_fn=evolution_adapter.webhook_type,
    ),
}


def get_adapter(slug: str) -> ProviderAdapter:
    """Return the adapter for a URL slug.

    Raises:
        KeyError: If no adapter is registered for the slug.
    """
    return ADAPTERS[slug]
