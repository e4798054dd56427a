"""Chats repository - per-chat summary rows (whatsapp_chats).

Upsert keyed by (chat_id, organization_id):

  - last_message_at only moves forward (GREATEST)
  - chat_name is replaced only by a provider-supplied name
  - client_id is filled once and never cleared
"""

from psycopg2.extensions import cursor as PgCursor

from inboxly.whatsapp.models import Chat


class PgChatStore:
    """ChatStore backed by whatsapp_chats."""

    def __init__(self, cur: PgCursor) -> None:
        self._cur = cur

    def upsert(self, chat: Chat) -> Chat:
        """Insert or refresh a chat row; returns the row as stored."""
        self._cur.execute(
            """
            INSERT INTO whatsapp_chats (
                chat_id, organization_id, chat_name, chat_type, client_id,
                phone, last_message_at, provider_type, updated_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, now())
            ON CONFLICT (chat_id, organization_id) DO UPDATE SET
                last_message_at = GREATEST(
                    whatsapp_chats.last_message_at, EXCLUDED.last_message_at
                ),
                chat_name = CASE
                    WHEN %s THEN EXCLUDED.chat_name
                    ELSE whatsapp_chats.chat_name
                END,
                client_id = COALESCE(whatsapp_chats.client_id, EXCLUDED.client_id),
                updated_at = now()
            RETURNING chat_id, organization_id, chat_type, chat_name,
                      last_message_at, provider_type, client_id, phone
            """,
            (
                chat.chat_id,
                chat.organization_id,
                chat.display_name,
                chat.chat_type,
                chat.client_id,
                chat.phone,
                chat.last_message_at,
                chat.provider,
                chat.name_from_provider,
            ),
        )
        row = self._cur.fetchone()
        return Chat(
            chat_id=row[0],
            organization_id=str(row[1]),
            chat_type=row[2],
            display_name=row[3],
            last_message_at=row[4],
            provider=row[5],
            client_id=str(row[6]) if row[6] is not None else None,
            phone=row[7],
        )
