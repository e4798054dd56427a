"""Phone normalization for identity matching.

The normalized form is only ever compared against other values produced by
normalize_phone(), never shown to users or sent to providers.
"""

import re

_NON_DIGITS = re.compile(r"\D")

GROUP_SUFFIX = "@g.us"
_JID_SUFFIXES = ("@c.us", "@s.whatsapp.net", GROUP_SUFFIX)


def normalize_phone(raw: str | None) -> str:
    """Canonicalize a raw phone string to a digits-only comparison key.

    - strip every non-digit
    - 11 digits starting with 8 -> replace the 8 with 7
    - exactly 10 digits -> prefix 7

    Total: malformed input yields a (possibly meaningless) digit string.
    """
    digits = _NON_DIGITS.sub("", raw or "")
    if len(digits) == 11 and digits.startswith("8"):
        return "7" + digits[1:]
    if len(digits) == 10:
        return "7" + digits
    return digits


def phone_from_chat_id(chat_id: str) -> str:
    """Strip the WhatsApp JID suffix from a chat id ("7701...@c.us" -> "7701...")."""
    for suffix in _JID_SUFFIXES:
        if chat_id.endswith(suffix):
            return chat_id[: -len(suffix)]
    return chat_id


def is_group_chat_id(chat_id: str) -> bool:
    """Return True for group chat ids."""
    return chat_id.endswith(GROUP_SUFFIX)
