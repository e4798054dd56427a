"""Structured JSON logging with correlation ID support.

Usage:
    logger = get_logger(__name__)
    logger.info("message stored", extra={"extra_fields": safe_log_context(...)})

Extra fields must be built with safe_log_context(): webhook payloads carry
phone numbers and message text.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

from .correlation import get_correlation_id

_ROOT_LOGGER = "inboxly"


class JsonFormatter(logging.Formatter):
    """JSON formatter that includes correlation ID."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            log_obj["correlationId"] = correlation_id

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            log_obj.update(extra_fields)

        return json.dumps(log_obj, default=str, ensure_ascii=False)


def configure_logging(level: str | None = None) -> None:
    """Attach the JSON handler to the package root logger.

    Idempotent. Level defaults to LOG_LEVEL (INFO when unset).
    """
    root = logging.getLogger(_ROOT_LOGGER)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
        root.addHandler(handler)
        root.propagate = False
    root.setLevel((level or os.environ.get("LOG_LEVEL", "INFO")).upper())


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the JSON-configured package root."""
    configure_logging()
    if name != _ROOT_LOGGER and not name.startswith(_ROOT_LOGGER + "."):
        name = f"{_ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
