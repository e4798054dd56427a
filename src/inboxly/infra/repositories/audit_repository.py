"""Audit repository - write-only log of every webhook call (webhook_logs).

Rows are for diagnostics only; nothing in the pipeline reads them back.
"""

from typing import Any

from psycopg2.extensions import cursor as PgCursor
from psycopg2.extras import Json

from inboxly.observability.correlation import get_correlation_id


class PgAuditLog:
    """AuditLog backed by webhook_logs."""

    def __init__(self, cur: PgCursor) -> None:
        self._cur = cur

    def record(
        self,
        source: str,
        raw_body: str,
        parsed: Any,
        result: str,
        *,
        webhook_type: str | None = None,
        error_message: str | None = None,
    ) -> None:
        self._cur.execute(
            """
            INSERT INTO webhook_logs (
                source, webhook_type, body, parsed_data, result,
                error_message, correlation_id, received_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, now())
            """,
            (
                source,
                webhook_type,
                raw_body,
                Json(parsed) if parsed is not None else None,
                result,
                error_message,
                get_correlation_id() or None,
            ),
        )
