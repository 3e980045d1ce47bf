"""Abstract session-store interface.

The engine persists one ``SurveyState`` per session through this contract
and never talks to a backend directly.  Two implementations ship:

  - ``survey_engine.session_store.InMemorySessionStore`` — process-local,
    for tests and single-process deployments
  - ``survey_db.repository.SqlSessionStore`` — PostgreSQL via async
    SQLAlchemy, shared across workers

Typical wiring::

    store: SessionStore = SqlSessionStore.from_url(database_url)
    engine = SurveyEngine(catalog, store, session_ttl=86400)
    ...
    await engine.close()

Implementations must return an independent ``SurveyState`` from every
``get`` (no shared mutable objects between callers) and raise
``SessionStoreError`` on backend failure.  A missing or expired session is
not a failure: ``get`` returns None.
"""

from abc import ABC, abstractmethod

from survey_engine.models.session import SurveyState


class SessionStore(ABC):
    """Key/value persistence for survey sessions with a per-entry TTL."""

    @abstractmethod
    async def get(self, session_id: str) -> SurveyState | None:
        """Load the state for ``session_id``.

        Returns
        -------
        SurveyState | None
            A fresh copy of the stored state, or None when the session is
            unknown or has expired.
        """
        ...

    @abstractmethod
    async def set(self, session_id: str, state: SurveyState, ttl_seconds: int) -> None:
        """Store ``state`` under ``session_id``, replacing any previous value.

        Every write refreshes the expiry to ``ttl_seconds`` from now.
        """
        ...

    @abstractmethod
    async def delete(self, session_id: str) -> None:
        """Remove the session.  Deleting an unknown session is a no-op."""
        ...

    async def close(self) -> None:
        """Release backend resources such as connection pools.

        Backends without resources keep this no-op.
        """
