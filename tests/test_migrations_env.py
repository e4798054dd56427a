"""Tests for migration URL resolution and the revision chain."""

from __future__ import annotations

import importlib.util
import os
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

# Make migrations.env_helpers importable without alembic context
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from migrations.env_helpers import database_url, libpq_dsn_to_url, parse_libpq_dsn  # noqa: E402

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"


class TestParseLibpqDsn:
    def test_plain(self):
        assert parse_libpq_dsn("dbname=inboxly user=app host=h") == {
            "dbname": "inboxly",
            "user": "app",
            "host": "h",
        }

    def test_quoted_value_with_spaces(self):
        assert parse_libpq_dsn("password='p@ss w0rd' host=h")["password"] == "p@ss w0rd"

    def test_escaped_quote(self):
        assert parse_libpq_dsn(r"password='it\'s' host=h")["password"] == "it's"

    def test_equals_inside_value(self):
        assert parse_libpq_dsn("password=p@ss=word")["password"] == "p@ss=word"


class TestLibpqDsnToUrl:
    def test_unix_socket(self):
        dsn = "dbname=inboxly user=inboxly-sa password=s3cret host=/var/run/postgresql"
        assert libpq_dsn_to_url(dsn) == (
            "postgresql+psycopg2://inboxly-sa:s3cret@/inboxly?host=%2Fvar%2Frun%2Fpostgresql"
        )

    def test_tcp_host(self):
        dsn = "dbname=inboxly user=admin password=pw host=localhost port=5433"
        assert libpq_dsn_to_url(dsn) == "postgresql+psycopg2://admin:pw@localhost:5433/inboxly"

    def test_default_port(self):
        assert libpq_dsn_to_url("dbname=db user=u password=p host=myhost") == (
            "postgresql+psycopg2://u:p@myhost:5432/db"
        )

    def test_special_chars_encoded(self):
        result = libpq_dsn_to_url("dbname=db user=u@domain password=p@ss=word host=h")
        assert "u%40domain" in result
        assert "p%40ss%3Dword" in result

    def test_db_password_env_fallback(self, monkeypatch):
        monkeypatch.setenv("DB_PASSWORD", "from-env")
        assert "from-env" in libpq_dsn_to_url("dbname=db user=u host=h")

    def test_db_password_env_not_used_when_dsn_has_password(self, monkeypatch):
        monkeypatch.setenv("DB_PASSWORD", "from-env")
        result = libpq_dsn_to_url("dbname=db user=u password=from-dsn host=h")
        assert "from-dsn" in result
        assert "from-env" not in result


class TestDatabaseUrl:
    def test_driver_url_passthrough(self):
        with patch.dict(os.environ, {"DATABASE_URL": "postgresql+psycopg2://u:p@h/db"}, clear=True):
            assert database_url() == "postgresql+psycopg2://u:p@h/db"

    @pytest.mark.parametrize("scheme", ["postgres", "postgresql"])
    def test_scheme_gets_driver(self, scheme):
        with patch.dict(os.environ, {"DATABASE_URL": f"{scheme}://u:p@h/db"}, clear=True):
            assert database_url() == "postgresql+psycopg2://u:p@h/db"

    def test_url_db_password_fallback(self):
        env = {"DATABASE_URL": "postgresql://u@h:5432/db", "DB_PASSWORD": "secret"}
        with patch.dict(os.environ, env, clear=True):
            assert database_url() == "postgresql+psycopg2://u:secret@h:5432/db"

    def test_dsn_converted(self):
        with patch.dict(os.environ, {"DATABASE_URL": "dbname=db user=u password=p host=h"}, clear=True):
            assert database_url() == "postgresql+psycopg2://u:p@h:5432/db"

    def test_missing_raises(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(RuntimeError, match="DATABASE_URL is required"):
                database_url()


def _load_revision(path: Path):
    spec = importlib.util.spec_from_file_location(f"revision_{path.stem}", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestRevisions:
    def test_linear_chain(self):
        revisions = {
            module.revision: module.down_revision
            for module in map(_load_revision, sorted((MIGRATIONS_DIR / "versions").glob("*.py")))
        }
        assert revisions == {
            "001_messaging_core": None,
            "002_clients_phone_index": "001_messaging_core",
        }

    def test_message_id_unique_index(self):
        sql = (MIGRATIONS_DIR / "sql" / "001_messaging_core.sql").read_text(encoding="utf-8")
        assert "CREATE UNIQUE INDEX IF NOT EXISTS uq_whatsapp_messages_message_id" in sql
        assert "UNIQUE (chat_id, organization_id)" in sql

    def test_phone_backfill_matches_normalizer(self):
        sql = (MIGRATIONS_DIR / "sql" / "002_clients_phone_index.sql").read_text(encoding="utf-8")
        assert "regexp_replace" in sql
        assert "'7' || substr(d, 2)" in sql
        assert "(organization_id, phone_normalized)" in sql
