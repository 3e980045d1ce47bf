"""Alembic environment for the survey session schema.

Online migrations run over the same asyncpg driver as the session store,
so no synchronous PostgreSQL driver is needed.  Offline mode (``--sql``)
only renders SQL and uses the plain URL.

The target database may be shared with the application that owns the
response records, so this environment only manages the tables declared on
``survey_db`` metadata and keeps its own version table.

URL precedence: ``alembic -x url=...``, then ``DATABASE_URL`` / ``PG_*``.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from survey_db.config import get_sync_url, to_async_url, to_sync_url
from survey_db.models.base import Base

# Registers the survey_sessions table on Base.metadata for autogenerate
import survey_db.models.survey_session  # noqa: F401

VERSION_TABLE = "survey_engine_alembic_version"

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    override = context.get_x_argument(as_dictionary=True).get("url")
    return to_sync_url(override) if override else get_sync_url()


def _include_object(obj, name, type_, reflected, compare_to) -> bool:
    """Leave tables that belong to other applications alone."""
    if type_ == "table" and reflected and compare_to is None:
        return name in target_metadata.tables
    return True


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        version_table=VERSION_TABLE,
        include_object=_include_object,
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit SQL to stdout without connecting."""
    _configure(
        url=_database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_sync_migrations(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine(to_async_url(_database_url()), poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_sync_migrations)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
