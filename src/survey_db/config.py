"""Database configuration — reads connection parameters from environment.

Supports two modes:
1. A single ``DATABASE_URL`` env var (takes precedence).
2. Individual ``PG_HOST``, ``PG_PORT``, ``PG_USER``, ``PG_PASSWORD``,
   ``PG_DATABASE`` env vars (convenient for docker-compose).

``get_sync_url`` feeds Alembic; ``get_async_url`` feeds the asyncpg engine.
"""

import os

_ASYNC_PREFIX = "postgresql+asyncpg://"
_SYNC_PREFIX = "postgresql://"


def _build_url_from_parts() -> str:
    host = os.getenv("PG_HOST", "localhost")
    port = os.getenv("PG_PORT", "5432")
    user = os.getenv("PG_USER", "survey")
    password = os.getenv("PG_PASSWORD", "survey")
    database = os.getenv("PG_DATABASE", "survey")
    return f"{_SYNC_PREFIX}{user}:{password}@{host}:{port}/{database}"


def to_sync_url(url: str) -> str:
    """Rewrite any accepted PostgreSQL URL to the default (psycopg2) driver."""
    if url.startswith(_ASYNC_PREFIX):
        return url.replace(_ASYNC_PREFIX, _SYNC_PREFIX, 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", _SYNC_PREFIX, 1)
    return url


def get_sync_url() -> str:
    """Connection URL for Alembic, which runs migrations synchronously."""
    return to_sync_url(os.getenv("DATABASE_URL") or _build_url_from_parts())


def to_async_url(url: str) -> str:
    """Rewrite a plain PostgreSQL URL to use the asyncpg driver."""
    if url.startswith(_SYNC_PREFIX):
        return url.replace(_SYNC_PREFIX, _ASYNC_PREFIX, 1)
    # postgres:// is still common in hosted-database connection strings
    if url.startswith("postgres://"):
        return url.replace("postgres://", _ASYNC_PREFIX, 1)
    return url


def get_async_url() -> str:
    """Connection URL with the asyncpg driver for the runtime engine."""
    return to_async_url(os.getenv("DATABASE_URL") or _build_url_from_parts())
