"""Captions used when a provider delivers media without text."""

from __future__ import annotations

PLACEHOLDERS: dict[str, dict[str, str]] = {
    "ru": {
        "image": "[Изображение]",
        "video": "[Видео]",
        "audio": "[Голосовое сообщение]",
        "document": "[Документ]",
        "file": "[Файл]",
        "group": "Группа",
        "manager": "Менеджер",
    },
    "en": {
        "image": "[Image]",
        "video": "[Video]",
        "audio": "[Audio]",
        "document": "[Document]",
        "file": "[File]",
        "group": "Group",
        "manager": "Manager",
    },
}


def placeholder(kind: str, locale: str = "ru") -> str:
    """Return the placeholder caption for a media kind.

    Unknown kinds fall back to the generic file caption.
    """
    table = PLACEHOLDERS.get(locale, PLACEHOLDERS["ru"])
    return table.get(kind, table["file"])


def group_name(chat_id: str, locale: str = "ru") -> str:
    """Fallback display name for a group chat the provider did not name."""
    table = PLACEHOLDERS.get(locale, PLACEHOLDERS["ru"])
    return f"{table['group']} {chat_id}"


def outgoing_sender(locale: str = "ru") -> str:
    """Sender label stored on messages the organization sent."""
    table = PLACEHOLDERS.get(locale, PLACEHOLDERS["ru"])
    return table["manager"]
