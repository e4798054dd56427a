"""Messages repository - idempotent storage of whatsapp_messages rows.

The unique index on whatsapp_messages(message_id) is what makes retried
webhooks safe: insert() is ON CONFLICT DO NOTHING and reports whether the
row was actually written.
"""

from psycopg2.extensions import cursor as PgCursor

from inboxly.domain.status import STATUS_RANK
from inboxly.whatsapp.models import Message

# Rank of the stored status, one WHEN per STATUS_RANK entry
_CURRENT_RANK_SQL = "CASE status {} ELSE 0 END".format(
    " ".join(f"WHEN '{name}' THEN {rank}" for name, rank in STATUS_RANK.items())
)


class PgMessageStore:
    """MessageStore backed by whatsapp_messages."""

    def __init__(self, cur: PgCursor) -> None:
        self._cur = cur

    def exists(self, provider_message_id: str) -> bool:
        self._cur.execute(
            "SELECT 1 FROM whatsapp_messages WHERE message_id = %s LIMIT 1",
            (provider_message_id,),
        )
        return self._cur.fetchone() is not None

    def insert(self, message: Message) -> bool:
        """Insert a message. Returns False if the id was already stored."""
        self._cur.execute(
            """
            INSERT INTO whatsapp_messages (
                organization_id, client_id, message_id, direction, content,
                sender_name, status, timestamp, media_url, media_type,
                media_filename, channel_id, chat_id, chat_type, is_read,
                provider_type
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (message_id) DO NOTHING
            """,
            (
                message.organization_id,
                message.client_id,
                message.provider_message_id,
                message.direction,
                message.content,
                message.sender_name,
                message.status,
                message.timestamp,
                message.media_url,
                message.media_type,
                message.media_filename,
                message.channel_id,
                message.chat_id,
                message.chat_type,
                message.is_read,
                message.provider,
            ),
        )
        return self._cur.rowcount == 1

    def update_status(
        self,
        provider_message_id: str,
        status: str,
        *,
        enforce_order: bool = True,
    ) -> bool:
        """Set the delivery status. Returns True if a row changed.

        With enforce_order the UPDATE only matches rows whose current
        status ranks below the new one.
        """
        if not enforce_order:
            self._cur.execute(
                "UPDATE whatsapp_messages SET status = %s WHERE message_id = %s",
                (status, provider_message_id),
            )
            return self._cur.rowcount > 0

        self._cur.execute(
            f"""
            UPDATE whatsapp_messages
            SET status = %s
            WHERE message_id = %s
              AND {_CURRENT_RANK_SQL} < %s
            """,
            (status, provider_message_id, STATUS_RANK[status]),
        )
        return self._cur.rowcount > 0
