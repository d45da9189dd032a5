"""Database URL resolution for Alembic.

Kept apart from env.py so it can be imported (and tested) without an
active alembic context.
"""

from __future__ import annotations

import os
import re
from typing import Mapping
from urllib.parse import quote_plus, urlsplit, urlunsplit

_DRIVER_PREFIX = "postgresql+psycopg2://"

# key=value pairs; values may be single-quoted with backslash escapes
_LIBPQ_PAIR = re.compile(r"(\w+)\s*=\s*('(?:[^'\\]|\\.)*'|\S+)")
_ESCAPE = re.compile(r"\\(.)")


def parse_libpq_dsn(dsn: str) -> dict[str, str]:
    """Split a libpq ``key=value`` DSN into a dict."""
    params: dict[str, str] = {}
    for key, raw in _LIBPQ_PAIR.findall(dsn):
        if raw.startswith("'"):
            raw = _ESCAPE.sub(r"\1", raw[1:-1])
        params[key] = raw
    return params


def libpq_dsn_to_url(dsn: str, password: str = "") -> str:
    """Convert a libpq DSN to a SQLAlchemy URL.

    A host starting with ``/`` is a Unix socket directory and goes into the
    query string. ``password`` is used only when the DSN has none.
    """
    params = parse_libpq_dsn(dsn)
    user = quote_plus(params.get("user", ""))
    secret = quote_plus(params.get("password") or password)
    dbname = quote_plus(params.get("dbname", ""))
    host = params.get("host", "localhost")
    port = params.get("port", "5432")

    if host.startswith("/"):
        return f"{_DRIVER_PREFIX}{user}:{secret}@/{dbname}?host={quote_plus(host)}"
    return f"{_DRIVER_PREFIX}{user}:{secret}@{host}:{port}/{dbname}"


def _normalize_url(url: str, password: str) -> str:
    scheme, rest = url.split("://", 1)
    if scheme in ("postgres", "postgresql"):
        url = _DRIVER_PREFIX + rest

    parts = urlsplit(url)
    if password and not parts.password:
        netloc = f"{quote_plus(parts.username or '')}:{quote_plus(password)}@{parts.hostname}"
        if parts.port:
            netloc += f":{parts.port}"
        url = urlunsplit(parts._replace(netloc=netloc))
    return url


def database_url(environ: Mapping[str, str] | None = None) -> str:
    """SQLAlchemy URL for migrations, from DATABASE_URL (+ DB_PASSWORD).

    Raises:
        RuntimeError: If DATABASE_URL is not set.
    """
    if environ is None:
        environ = os.environ
    url = environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is required to run migrations")

    password = environ.get("DB_PASSWORD", "")
    if "://" in url:
        return _normalize_url(url, password)
    return libpq_dsn_to_url(url, password)
