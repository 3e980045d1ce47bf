"""SurveyEngine — the public facade over catalog, resolver, renderer and store.

Stateless engine pattern: each call loads the session state from the
``SessionStore``, computes the next step in memory, persists the result in
a single write, and returns a rendered block.  Nothing is cached between
calls, so any number of engine instances may serve the same sessions.

Operation overview:
    start             — create a session positioned on the entry block
    answer            — record an answer, derive variables, navigate, persist
    current_question  — re-render the block the respondent is looking at
    progress          — completion percentage for the respondent's path
    get_session       — read-only snapshot for API consumers
    clear             — delete the session
    close             — release the session store's resources

Unknown (or expired) sessions are reported with None (0 for ``progress``);
store failures propagate as ``SessionStoreError``.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from survey_engine.answers import validate_answer
from survey_engine.catalog import BlockCatalog
from survey_engine.constants import SESSION_TTL_SECONDS
from survey_engine.evaluator import ConditionEvaluator
from survey_engine.interfaces import SessionStore
from survey_engine.models.block import Block, SyntheticAck
from survey_engine.models.session import AnswerResult, SessionInfo, StartResult, SurveyState
from survey_engine.navigation import NavigationResolver
from survey_engine.progress import calculate_progress
from survey_engine.templates import TemplateRenderer
from survey_engine.variables import apply_answer

logger = logging.getLogger(__name__)


class SurveyEngine:
    """Drives survey sessions against one catalog.

    Args:
        catalog: loaded, validated :class:`BlockCatalog`
        store: session persistence backend
        session_ttl: seconds a session lives after its last write
        evaluator: condition evaluator (shared by resolver and renderer)
    """

    def __init__(
        self,
        catalog: BlockCatalog,
        store: SessionStore,
        *,
        session_ttl: int = SESSION_TTL_SECONDS,
        evaluator: ConditionEvaluator | None = None,
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._ttl = session_ttl
        self._evaluator = evaluator or ConditionEvaluator()
        self._renderer = TemplateRenderer(self._evaluator)
        self._resolver = NavigationResolver(catalog, self._evaluator)

    @property
    def catalog(self) -> BlockCatalog:
        return self._catalog

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def start(
        self,
        survey_id: str,
        respondent_name: str | None = None,
        *,
        response_id: str = "",
    ) -> StartResult:
        """Create a session and return its id with the rendered entry block.

        Raises:
            ValueError: if ``survey_id`` is not the catalog's survey.
        """
        if survey_id != self._catalog.survey.id:
            raise ValueError(f"Survey not found: {survey_id}")

        first = self._catalog.get(self._catalog.first_block_id)
        if first is None:
            raise ValueError(f"Survey {survey_id} has no entry block")

        session_id = str(uuid.uuid4())
        state = SurveyState(
            survey_id=survey_id,
            response_id=response_id,
            current_block_id=first.id,
            variables={"user_name": respondent_name or ""},
        )
        await self._store.set(session_id, state, self._ttl)

        logger.info(
            "Session started: session_id=%s, survey=%s, first_block=%s",
            session_id, survey_id, first.id,
        )
        return StartResult(
            session_id=session_id,
            first_question=self._renderer.format_block(first, state.variables),
        )

    async def clear(self, session_id: str) -> None:
        """Delete the session; clearing an unknown session is a no-op."""
        await self._store.delete(session_id)
        logger.info("Session cleared: session_id=%s", session_id)

    async def close(self) -> None:
        """Release the session store's resources (e.g. its connection pool)."""
        await self._store.close()

    # ------------------------------------------------------------------
    # Answering
    # ------------------------------------------------------------------

    async def answer(self, session_id: str, block_id: str, answer: Any) -> AnswerResult | None:
        """Submit ``answer`` for ``block_id`` and move the session forward.

        Returns None for an unknown or expired session.  Otherwise returns
        the rendered next block (None when the survey is finished) and the
        updated progress percentage.

        Raises:
            InvalidAnswerError: the answer shape is not accepted; the session
                is left untouched.
            SessionStoreError: the store failed to load or persist.
        """
        state = await self._store.get(session_id)
        if state is None:
            logger.warning("Answer for unknown session %s", session_id)
            return None

        position = self._resolver.position_for(block_id, state)
        block = self._catalog.get(position) if isinstance(position, str) else None
        validate_answer(block, answer)

        if isinstance(position, str) and block is None:
            logger.warning("Session %s answered unknown block %s", session_id, block_id)

        apply_answer(state, block_id, answer, block, self._catalog.derivations)

        target = self._resolver.resolve_next(position, answer, state)
        state.is_complete = target is None
        state.updated_at = datetime.now(timezone.utc)

        # Single write: answers, variables, position and pending ack together
        await self._store.set(session_id, state, self._ttl)

        progress = calculate_progress(state, self._catalog.progress)
        logger.debug(
            "Session %s answered %s -> %s (progress=%d%%)",
            session_id, block_id, state.current_block_id if target else None, progress,
        )
        if target is None:
            logger.info("Session complete: session_id=%s", session_id)

        return AnswerResult(next_question=self._render(target, state), progress=progress)

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    async def current_question(self, session_id: str) -> Block | None:
        """Re-render the block the session is positioned on.

        None for an unknown session or a finished survey.
        """
        state = await self._store.get(session_id)
        if state is None:
            return None
        return self._render(self._current_target(state), state)

    async def progress(self, session_id: str) -> int:
        """Completion percentage; 0 for an unknown session."""
        state = await self._store.get(session_id)
        if state is None:
            return 0
        return calculate_progress(state, self._catalog.progress)

    async def get_session(self, session_id: str) -> SessionInfo | None:
        state = await self._store.get(session_id)
        if state is None:
            return None
        return SessionInfo(
            session_id=session_id,
            survey_id=state.survey_id,
            response_id=state.response_id,
            current_block_id=state.current_block_id,
            current_question=self._render(self._current_target(state), state),
            progress=calculate_progress(state, self._catalog.progress),
            is_complete=state.is_complete,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _current_target(self, state: SurveyState) -> Block | SyntheticAck | None:
        if state.is_complete:
            return None
        pending = state.pending_ack
        if pending is not None and pending.block_id == state.current_block_id:
            return pending
        return self._catalog.get(state.current_block_id)

    def _render(self, target: Block | SyntheticAck | None, state: SurveyState) -> Block | None:
        if target is None:
            return None
        block = target.to_block() if isinstance(target, SyntheticAck) else target
        return self._renderer.format_block(block, state.variables)
