"""Provider instances repository - connection state and org ownership.

Each organization registers its gateway instances (Evolution instance name,
GreenAPI idInstance, Wazzup channelId) in provider_instances. The pipeline
uses the registry to resolve which organization a webhook belongs to, and
ConnectionStateChange events keep the stored connection state current.
"""

from psycopg2.extensions import cursor as PgCursor

from inboxly.whatsapp.models import ConnectionStateChange, Provider


class PgConnectionStateStore:
    """ConnectionStateStore backed by provider_instances."""

    def __init__(self, cur: PgCursor) -> None:
        self._cur = cur

    def find_organization(self, provider: Provider, instance_id: str) -> str | None:
        self._cur.execute(
            """
            SELECT organization_id FROM provider_instances
            WHERE provider_type = %s AND instance_name = %s
            """,
            (provider, instance_id),
        )
        rows = self._cur.fetchall()
        # Same instance name under several organizations is ambiguous
        if len(rows) != 1:
            return None
        return str(rows[0][0])

    def apply(self, change: ConnectionStateChange) -> bool:
        """Store a connection state change. Returns True if an instance matched."""
        if change.state == "qr":
            self._cur.execute(
                """
                UPDATE provider_instances
                SET connection_status = 'qr',
                    qr_code = COALESCE(%s, qr_code),
                    qr_code_updated_at = now(),
                    updated_at = now()
                WHERE provider_type = %s AND instance_name = %s
                """,
                (change.qr_code, change.provider, change.instance_id),
            )
        elif change.state == "open":
            self._cur.execute(
                """
                UPDATE provider_instances
                SET connection_status = 'open',
                    phone_number = COALESCE(%s, phone_number),
                    last_connected_at = now(),
                    error_message = NULL,
                    updated_at = now()
                WHERE provider_type = %s AND instance_name = %s
                """,
                (change.phone_number, change.provider, change.instance_id),
            )
        else:
            self._cur.execute(
                """
                UPDATE provider_instances
                SET connection_status = %s,
                    updated_at = now()
                WHERE provider_type = %s AND instance_name = %s
                """,
                (change.state, change.provider, change.instance_id),
            )
        return self._cur.rowcount > 0
