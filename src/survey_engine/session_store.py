"""In-process session store.

Keeps serialised JSON snapshots rather than live ``SurveyState`` objects, so
a caller mutating a state it loaded cannot affect what another caller reads
until it is written back with ``set``.  Expiry is checked lazily on read
against a monotonic clock.

Concurrent writers to the same session resolve last-write-wins.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from survey_engine.interfaces import SessionStore
from survey_engine.models.session import SurveyState

logger = logging.getLogger(__name__)


class InMemorySessionStore(SessionStore):
    """Dict-backed ``SessionStore``.

    Args:
        clock: returns the current time in seconds; injectable for tests
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        # session_id -> (expires_at, JSON snapshot)
        self._entries: dict[str, tuple[float, str]] = {}

    async def get(self, session_id: str) -> SurveyState | None:
        entry = self._entries.get(session_id)
        if entry is None:
            return None
        expires_at, payload = entry
        if self._clock() >= expires_at:
            logger.debug("Session %s expired", session_id)
            del self._entries[session_id]
            return None
        return SurveyState.model_validate_json(payload)

    async def set(self, session_id: str, state: SurveyState, ttl_seconds: int) -> None:
        self._entries[session_id] = (
            self._clock() + ttl_seconds,
            state.model_dump_json(by_alias=True),
        )

    async def delete(self, session_id: str) -> None:
        self._entries.pop(session_id, None)

    def purge_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock()
        expired = [sid for sid, (expires_at, _) in self._entries.items() if now >= expires_at]
        for sid in expired:
            del self._entries[sid]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
