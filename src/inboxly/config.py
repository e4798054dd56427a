"""Runtime settings loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

PlaceholderLocale = Literal["ru", "en"]

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Ingestion settings.

    Attributes:
        store_timeout_ms: Postgres statement_timeout applied to every
                          transaction. Exceeding it fails the webhook call
                          with 503 so the provider retries.
        connect_timeout_s: libpq connect_timeout in seconds.
        status_enforce_order: Only move message status forward
                              (sent < delivered < read < failed).
        placeholder_locale: Locale of the captions used for captionless media.
        log_level: Root level for inboxly loggers.
    """

    store_timeout_ms: int = 5000
    connect_timeout_s: int = 5
    status_enforce_order: bool = True
    placeholder_locale: PlaceholderLocale = "ru"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment."""
        locale = os.environ.get("MEDIA_PLACEHOLDER_LOCALE", "ru").strip().lower()
        if locale not in ("ru", "en"):
            raise RuntimeError(
                f"MEDIA_PLACEHOLDER_LOCALE must be 'ru' or 'en', got {locale!r}"
            )
        return cls(
            store_timeout_ms=_int_env("STORE_TIMEOUT_MS", 5000),
            connect_timeout_s=_int_env("DB_CONNECT_TIMEOUT", 5),
            status_enforce_order=_bool_env("STATUS_ENFORCE_ORDER", True),
            placeholder_locale=locale,  # type: ignore[arg-type]
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )


def get_settings() -> Settings:
    """Return settings for the current environment."""
    return Settings.from_env()


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from e
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {value}")
    return value


def _bool_env(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in _TRUTHY
