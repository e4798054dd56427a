"""Messaging core schema (SQL-only).

Creates clients, integrations, provider_instances, whatsapp_messages (unique
message_id), whatsapp_chats (unique chat_id + organization_id) and
webhook_logs.

Revision ID: 001_messaging_core
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from pathlib import Path

from alembic import op


# revision identifiers, used by Alembic.
revision = "001_messaging_core"
down_revision = None
branch_labels = None
depends_on = None

_SQL_FILE = Path(__file__).resolve().parent.parent / "sql" / "001_messaging_core.sql"


def upgrade() -> None:
    conn = op.get_bind()
    conn.exec_driver_sql(_SQL_FILE.read_text(encoding="utf-8"))


def downgrade() -> None:
    raise NotImplementedError("Downgrade not supported")
