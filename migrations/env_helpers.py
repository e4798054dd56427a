"""Database URL resolution for Alembic.

Kept out of env.py so it can be tested without an alembic context.
Accepts DATABASE_URL either as a URL (postgres://, postgresql://,
postgresql+psycopg2://) or as a libpq key=value DSN, and applies the same
DB_PASSWORD fallback as inboxly.infra.db.get_conn().
"""

from __future__ import annotations

import os
from urllib.parse import quote_plus, urlparse, urlunparse

DRIVER_SCHEME = "postgresql+psycopg2://"
_SCHEME_ALIASES = ("postgres://", "postgresql://")


def parse_libpq_dsn(dsn: str) -> dict[str, str]:
    """Split a libpq DSN into keywords.

    Values may be single-quoted; backslash escapes the next character.
    """
    tokens: dict[str, str] = {}
    pos, end = 0, len(dsn)
    while pos < end:
        while pos < end and dsn[pos].isspace():
            pos += 1
        eq = dsn.find("=", pos)
        if pos >= end or eq == -1:
            break
        key = dsn[pos:eq].strip()
        pos = eq + 1

        chars: list[str] = []
        quoted = pos < end and dsn[pos] == "'"
        if quoted:
            pos += 1
        while pos < end:
            ch = dsn[pos]
            if ch == "\\" and pos + 1 < end:
                chars.append(dsn[pos + 1])
                pos += 2
                continue
            if (quoted and ch == "'") or (not quoted and ch.isspace()):
                pos += 1
                break
            chars.append(ch)
            pos += 1
        tokens[key] = "".join(chars)
    return tokens


def libpq_dsn_to_url(dsn: str) -> str:
    """Convert a libpq DSN to a SQLAlchemy URL.

    A host starting with "/" is a unix socket directory and goes into the
    query string; anything else becomes host:port.
    """
    tokens = parse_libpq_dsn(dsn)
    password = tokens.get("password") or os.environ.get("DB_PASSWORD", "")

    credentials = f"{quote_plus(tokens.get('user', ''))}:{quote_plus(password)}"
    dbname = quote_plus(tokens.get("dbname", ""))
    host = tokens.get("host", "localhost")

    if host.startswith("/"):
        return f"{DRIVER_SCHEME}{credentials}@/{dbname}?host={quote_plus(host)}"
    return f"{DRIVER_SCHEME}{credentials}@{host}:{tokens.get('port', '5432')}/{dbname}"


def _with_driver(url: str) -> str:
    for alias in _SCHEME_ALIASES:
        if url.startswith(alias):
            return DRIVER_SCHEME + url[len(alias):]
    return url


def _with_password(url: str, password: str) -> str:
    parsed = urlparse(url)
    if parsed.password or not password:
        return url
    netloc = f"{quote_plus(parsed.username or '')}:{quote_plus(password)}@{parsed.hostname}"
    if parsed.port:
        netloc += f":{parsed.port}"
    return urlunparse(parsed._replace(netloc=netloc))


def database_url() -> str:
    """Return the SQLAlchemy URL for DATABASE_URL.

    Raises:
        RuntimeError: If DATABASE_URL is not set.
    """
    raw = os.environ.get("DATABASE_URL")
    if not raw:
        raise RuntimeError("DATABASE_URL is required to run migrations")
    if "://" not in raw:
        return libpq_dsn_to_url(raw)
    return _with_password(_with_driver(raw), os.environ.get("DB_PASSWORD", ""))
