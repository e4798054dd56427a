"""Ingestion error taxonomy.

Which of these reach the provider as an HTTP failure is decided in
inboxly.api.routes.webhooks_whatsapp:

- ParseError          -> logged + audited, 200
- ResolutionError     -> event skipped, 200
- PersistenceConflict -> duplicate, treated as success
- TransportError      -> 400
- StoreTimeoutError   -> 503 (provider retries)
"""


class IngestError(Exception):
    """Base class for webhook ingestion errors."""

    pass


class ParseError(IngestError):
    """Raised when a provider payload has an unrecognized shape."""

    pass


class ResolutionError(IngestError):
    """Raised when the organization or client cannot be resolved."""

    pass


class PersistenceConflict(IngestError):
    """Raised when a unique constraint rejects an already stored row."""

    pass


class TransportError(IngestError):
    """Raised for request-level problems (empty body, invalid JSON)."""

    pass


class StoreTimeoutError(IngestError):
    """Raised when a store call exceeds the configured statement timeout."""

    pass
