"""Field-extraction helpers shared by the provider adapters.

Providers surface the same data under different keys depending on message
subtype, so adapters express each concept as a fallback chain over these
helpers.
"""

from __future__ import annotations

from typing import Any

from inboxly.domain.errors import ParseError


def dig(data: Any, *keys: str) -> Any:
    """Walk nested dicts, returning None as soon as a level is missing."""
    current = data
    for key in keys:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def first_str(*candidates: Any) -> str | None:
    """Return the first candidate that is a non-empty string."""
    for value in candidates:
        if isinstance(value, str) and value.strip():
            return value
    return None


def as_id(value: Any) -> str | None:
    """Coerce a provider identifier (str or int) to a non-empty string."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    return first_str(value)


def as_object(value: Any, name: str) -> dict[str, Any]:
    """Return a nested object field, treating a missing one as empty.

    Raises:
        ParseError: If the field is present but not an object.
    """
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ParseError(f"{name} is not an object")
    return value
