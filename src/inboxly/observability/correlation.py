"""Correlation ID management for webhook tracing.

Every webhook call gets one correlation id; it is echoed back in the
response header, attached to every log line and stored on audit records so
a provider delivery can be followed end to end.
"""

import uuid
from contextvars import ContextVar, Token

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

CORRELATION_ID_HEADER = "X-Correlation-ID"

# Upper bound for ids accepted from callers
_MAX_INBOUND_LENGTH = 128


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return str(uuid.uuid4())


def accept_or_generate(inbound: str | None) -> str:
    """Reuse a caller-supplied id when sane, otherwise mint one."""
    if inbound and len(inbound) <= _MAX_INBOUND_LENGTH and inbound.isprintable():
        return inbound
    return generate_correlation_id()


def get_correlation_id() -> str:
    """Get current correlation ID from context."""
    return correlation_id_var.get()


def set_correlation_id(cid: str) -> Token[str]:
    """Set correlation ID in context."""
    return correlation_id_var.set(cid)


def reset_correlation_id(token: Token[str]) -> None:
    """Reset correlation ID to previous value."""
    correlation_id_var.reset(token)
