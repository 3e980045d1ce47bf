"""SqlSessionStore — PostgreSQL implementation of ``SessionStore``.

Each public method opens its own ``AsyncSession`` from the factory and
commits before returning, so one engine call maps to one short transaction:

  - ``get``           SELECT, ignoring rows whose ``expires_at`` has passed
  - ``set``           INSERT ... ON CONFLICT (session_id) DO UPDATE
  - ``delete``        DELETE by primary key
  - ``purge_expired`` bulk DELETE of expired rows (``survey-engine cleanup``)

Any ``SQLAlchemyError`` is logged and re-raised as ``SessionStoreError``;
the engine never mistakes a backend failure for an unknown session.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from pydantic import ValidationError
from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from survey_engine.errors import SessionStoreError
from survey_engine.interfaces import SessionStore
from survey_engine.models.session import SurveyState

from survey_db.engine import DatabaseSettings, SessionDatabase
from survey_db.models.survey_session import SurveySessionRow

logger = logging.getLogger(__name__)


class SqlSessionStore(SessionStore):
    """Async read/write operations on the ``survey_sessions`` table.

    Args:
        database: connection pool to use; a store given none builds a
            :class:`SessionDatabase` from the environment and disposes it in
            :meth:`close`.  A database passed in belongs to the caller.
        session_factory: bypasses the pool entirely (any callable returning
            an ``AsyncSession``); used by tests and by callers that already
            manage their own sessions
    """

    def __init__(
        self,
        database: SessionDatabase | None = None,
        *,
        session_factory: Callable[[], AsyncSession] | None = None,
    ) -> None:
        self._owns_database = database is None and session_factory is None
        self._database = database
        self._factory = session_factory

    @property
    def database(self) -> SessionDatabase:
        if self._database is None:
            self._database = SessionDatabase()
        return self._database

    def _session(self) -> AsyncSession:
        if self._factory is not None:
            return self._factory()
        return self.database.session()

    @classmethod
    def from_url(cls, url: str | None = None) -> "SqlSessionStore":
        """Store with its own pool; ``url`` falls back to ``DATABASE_URL`` / ``PG_*``."""
        store = cls(SessionDatabase(DatabaseSettings.from_env(url)))
        store._owns_database = True
        return store

    async def close(self) -> None:
        """Dispose the connection pool if this store created it."""
        if self._owns_database and self._database is not None:
            await self._database.dispose()

    # ------------------------------------------------------------------
    # SessionStore
    # ------------------------------------------------------------------

    async def get(self, session_id: str) -> SurveyState | None:
        stmt = select(SurveySessionRow.state).where(
            SurveySessionRow.session_id == session_id,
            SurveySessionRow.expires_at > func.now(),
        )
        try:
            async with self._session() as db:
                result = await db.execute(stmt)
                payload = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error("Failed to load session %s: %s", session_id, exc)
            raise SessionStoreError(f"Failed to load session {session_id}") from exc

        if payload is None:
            return None
        try:
            return SurveyState.model_validate(payload)
        except ValidationError as exc:
            logger.error("Stored state for session %s is unreadable: %s", session_id, exc)
            raise SessionStoreError(f"Stored state for session {session_id} is unreadable") from exc

    async def set(self, session_id: str, state: SurveyState, ttl_seconds: int) -> None:
        now = datetime.now(timezone.utc)
        values = {
            "session_id": session_id,
            "survey_id": state.survey_id,
            "response_id": state.response_id,
            "state": state.model_dump(mode="json", by_alias=True),
            "expires_at": now + timedelta(seconds=ttl_seconds),
            "created_at": now,
            "updated_at": now,
        }
        stmt = insert(SurveySessionRow).values(**values)
        # Keep created_at from the first insert
        stmt = stmt.on_conflict_do_update(
            index_elements=[SurveySessionRow.session_id],
            set_={
                "survey_id": stmt.excluded.survey_id,
                "response_id": stmt.excluded.response_id,
                "state": stmt.excluded.state,
                "expires_at": stmt.excluded.expires_at,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        try:
            async with self._session() as db:
                await db.execute(stmt)
                await db.commit()
        except SQLAlchemyError as exc:
            logger.error("Failed to save session %s: %s", session_id, exc)
            raise SessionStoreError(f"Failed to save session {session_id}") from exc

    async def delete(self, session_id: str) -> None:
        stmt = delete(SurveySessionRow).where(SurveySessionRow.session_id == session_id)
        try:
            async with self._session() as db:
                await db.execute(stmt)
                await db.commit()
        except SQLAlchemyError as exc:
            logger.error("Failed to delete session %s: %s", session_id, exc)
            raise SessionStoreError(f"Failed to delete session {session_id}") from exc

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def purge_expired(self) -> int:
        """Delete every expired row and return how many were removed."""
        stmt = delete(SurveySessionRow).where(SurveySessionRow.expires_at <= func.now())
        try:
            async with self._session() as db:
                result = await db.execute(stmt)
                await db.commit()
        except SQLAlchemyError as exc:
            logger.error("Failed to purge expired sessions: %s", exc)
            raise SessionStoreError("Failed to purge expired sessions") from exc

        removed = result.rowcount or 0
        logger.info("Purged %d expired survey sessions", removed)
        return removed
