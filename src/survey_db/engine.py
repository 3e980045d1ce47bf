"""Connection pool ownership for the PostgreSQL session store.

A :class:`SessionDatabase` wraps one ``AsyncEngine`` and its session
factory.  The engine is created on the first session request, so building
a store (e.g. while wiring the app or validating settings) never opens a
connection.  Whoever constructs the database disposes it:
``SqlSessionStore.close()`` does so for a database it created itself.

Pool sizing comes from ``PG_POOL_SIZE`` / ``PG_MAX_OVERFLOW``.  Session
rows are small and each engine call holds a connection for a single short
transaction, so the defaults stay low.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from survey_db.config import get_async_url, to_async_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection settings for one session database."""

    url: str
    pool_size: int = 5
    max_overflow: int = 10
    # Recycle connections before typical managed-Postgres idle timeouts
    pool_recycle_seconds: int = 1800
    echo: bool = False

    @classmethod
    def from_env(cls, url: str | None = None) -> "DatabaseSettings":
        """Build settings from ``PG_*`` variables; ``url`` overrides the URL."""
        return cls(
            url=to_async_url(url) if url else get_async_url(),
            pool_size=int(os.getenv("PG_POOL_SIZE", "5")),
            max_overflow=int(os.getenv("PG_MAX_OVERFLOW", "10")),
            pool_recycle_seconds=int(os.getenv("PG_POOL_RECYCLE_SECONDS", "1800")),
            echo=os.getenv("PG_ECHO", "").strip().lower() in ("1", "true", "yes"),
        )


class SessionDatabase:
    """Lazily created async engine plus session factory.

    Args:
        settings: connection settings; defaults to :meth:`DatabaseSettings.from_env`
    """

    def __init__(self, settings: DatabaseSettings | None = None) -> None:
        self.settings = settings or DatabaseSettings.from_env()
        self._engine: AsyncEngine | None = None
        self._factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = create_async_engine(
                self.settings.url,
                echo=self.settings.echo,
                pool_size=self.settings.pool_size,
                max_overflow=self.settings.max_overflow,
                pool_recycle=self.settings.pool_recycle_seconds,
                pool_pre_ping=True,
            )
            logger.info(
                "Session database pool created: pool_size=%d, max_overflow=%d",
                self.settings.pool_size, self.settings.max_overflow,
            )
        return self._engine

    def session(self) -> AsyncSession:
        """Open a new ``AsyncSession``; use it as an async context manager."""
        if self._factory is None:
            self._factory = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
        return self._factory()

    async def dispose(self) -> None:
        """Close the pool.  A later ``session()`` call opens a fresh one."""
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._factory = None
        logger.info("Session database pool disposed")
