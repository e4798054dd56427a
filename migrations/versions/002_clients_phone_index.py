"""Clients: phone_normalized column, backfill and per-organization index.

Replaces the per-message scan over every client of an organization with an
index probe on (organization_id, phone_normalized).

Revision ID: 002_clients_phone_index
Revises: 001_messaging_core
Create Date: 2026-10-19
"""
from __future__ import annotations

from pathlib import Path

from alembic import op

revision = "002_clients_phone_index"
down_revision = "001_messaging_core"
branch_labels = None
depends_on = None

_SQL_FILE = Path(__file__).resolve().parent.parent / "sql" / "002_clients_phone_index.sql"


def upgrade() -> None:
    op.execute(_SQL_FILE.read_text(encoding="utf-8"))


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS idx_clients_org_phone_normalized")
    op.execute("ALTER TABLE clients DROP COLUMN IF EXISTS phone_normalized")
