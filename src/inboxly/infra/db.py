"""Database access layer using psycopg2.

Provides:
- get_conn(): Get a database connection from DATABASE_URL
- txn(): Context manager for a short transaction with a statement timeout

Every transaction runs with SET LOCAL statement_timeout so a slow store call
fails fast (StoreTimeoutError) instead of holding the webhook open.
"""

import os
from contextlib import contextmanager
from typing import Any, Iterator
from urllib.parse import urlparse

import psycopg2
from psycopg2 import errors as pg_errors
from psycopg2.extensions import connection as PgConnection, cursor as PgCursor

from inboxly.domain.errors import StoreTimeoutError

DEFAULT_STATEMENT_TIMEOUT_MS = 5000


def _dsn_has_password(dsn: str) -> bool:
    if "://" in dsn:
        return bool(urlparse(dsn).password)
    return any(part.startswith("password=") for part in dsn.split())


def get_conn(connect_timeout: int | None = None) -> PgConnection:
    """Get a new database connection from DATABASE_URL.

    DB_PASSWORD is used when the DSN itself carries no password.

    Args:
        connect_timeout: libpq connect_timeout in seconds (optional).

    Returns:
        psycopg2 connection object.

    Raises:
        RuntimeError: If DATABASE_URL is not set.
        psycopg2.Error: On connection failure.
    """
    dsn = os.environ.get("DATABASE_URL")
    if not dsn:
        raise RuntimeError("DATABASE_URL environment variable not set")

    kwargs: dict[str, Any] = {}
    db_password = os.environ.get("DB_PASSWORD", "")
    if db_password and not _dsn_has_password(dsn):
        kwargs["password"] = db_password
    if connect_timeout:
        kwargs["connect_timeout"] = connect_timeout

    return psycopg2.connect(dsn, **kwargs)


@contextmanager
def txn(
    conn: PgConnection | None = None,
    *,
    statement_timeout_ms: int = DEFAULT_STATEMENT_TIMEOUT_MS,
    connect_timeout: int | None = None,
) -> Iterator[PgCursor]:
    """Context manager for a short, safe transaction.

    If conn is None, creates a new connection that is closed on exit.
    Commits on successful exit, rolls back on exception.

    Args:
        conn: Optional existing connection. If None, creates new one.
        statement_timeout_ms: Per-statement limit for this transaction.
        connect_timeout: Connect timeout (seconds) for a new connection.

    Yields:
        Cursor for executing queries within the transaction.

    Raises:
        StoreTimeoutError: If a statement exceeded statement_timeout_ms.

    Example:
        with txn() as cur:
            cur.execute("INSERT INTO t (x) VALUES (%s)", (1,))
    """
    owns_conn = conn is None
    if owns_conn:
        conn = get_conn(connect_timeout=connect_timeout)

    try:
        with conn.cursor() as cur:
            cur.execute("SET LOCAL statement_timeout = %s", (int(statement_timeout_ms),))
            yield cur
        conn.commit()
    except pg_errors.QueryCanceled as e:
        conn.rollback()
        raise StoreTimeoutError(f"statement exceeded {statement_timeout_ms}ms") from e
    except Exception:
        conn.rollback()
        raise
    finally:
        if owns_conn:
            conn.close()
