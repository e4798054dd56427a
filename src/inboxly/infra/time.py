"""Time utilities for consistent timestamp handling.

All timestamps leaving this module are timezone-aware UTC.
"""

from datetime import datetime, timezone
from typing import Any


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def from_unix(value: Any) -> datetime:
    """Convert unix seconds (int, float or digit string) to aware UTC.

    Missing or malformed values fall back to the current time.
    """
    if isinstance(value, bool):
        return utc_now()
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return utc_now()
    if isinstance(value, (int, float)) and value > 0:
        # Some gateways send milliseconds
        if value > 10**11:
            value = value / 1000
        return datetime.fromtimestamp(value, tz=timezone.utc)
    return utc_now()


def from_iso(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp, assuming UTC when no offset is given."""
    if not isinstance(value, str) or not value:
        return utc_now()
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return utc_now()
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
