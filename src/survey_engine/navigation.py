"""NavigationResolver — the survey state machine.

Given the block just answered, the answer, and the session state, computes
the block to show next.  Transitions are computed on every call rather than
pre-enumerated.  Priority order:

    1. A synthetic acknowledgement transitions straight to its deferred target.
    2. Unknown block id -> dead end (logged, never raised).
    3. Empty answer with ``onEmpty``: show the acknowledgement if it has a
       message (no navigation yet), else take ``onEmpty.next`` / ``next``.
    4. Choice blocks: the selected option's ``next`` overrides ``next``.
    5. Plain ``next``.
    6. Nothing yet: evaluate ``conditionalNext``.
    7. Display guard: a target whose ``showIf`` is false is skipped, and
       resolution continues from it with no answer.
    8. A routing-only dynamic-message (empty content + ``conditionalNext``)
       is walked through with a synthetic acknowledgement answer.
    9. ``state.current_block_id`` is set to the returned block.

The resolver mutates only the in-memory ``SurveyState`` it is given
(``current_block_id``, ``pending_ack``); the engine persists it.  Skip and
auto-advance chains are bounded by ``MAX_NAVIGATION_HOPS`` so a cycle in a
document ends as a dead end instead of hanging the request.
"""

from __future__ import annotations

import logging
from typing import Any, Union

from survey_engine.catalog import BlockCatalog
from survey_engine.constants import (
    ACKNOWLEDGED_ANSWER,
    EMPTY_MESSAGE_SUFFIX,
    MAX_NAVIGATION_HOPS,
)
from survey_engine.evaluator import ConditionEvaluator
from survey_engine.models.block import Block, SyntheticAck
from survey_engine.models.session import SurveyState
from survey_engine.variables import match_option

logger = logging.getLogger(__name__)

# What the resolver can be positioned on / can return
Position = Union[str, SyntheticAck]
Target = Union[Block, SyntheticAck]


class NavigationResolver:
    """Computes the next block for an answer.

    Args:
        catalog: the loaded :class:`BlockCatalog`
        evaluator: condition evaluator shared with the renderer
    """

    def __init__(self, catalog: BlockCatalog, evaluator: ConditionEvaluator | None = None) -> None:
        self._catalog = catalog
        self._evaluator = evaluator or ConditionEvaluator()

    # ------------------------------------------------------------------
    # Positioning
    # ------------------------------------------------------------------

    def position_for(self, block_id: str, state: SurveyState) -> Position:
        """Map a client-submitted block id to a resolver position.

        The pending acknowledgement in ``state`` wins.  An ``-empty-message``
        id with no pending acknowledgement (e.g. a retried request) is
        rebuilt from the original block's ``onEmpty``.
        """
        pending = state.pending_ack
        if pending is not None and pending.block_id == block_id:
            return pending

        if block_id in self._catalog or not block_id.endswith(EMPTY_MESSAGE_SUFFIX):
            return block_id

        original_id = block_id[: -len(EMPTY_MESSAGE_SUFFIX)]
        original = self._catalog.get(original_id)
        if original is None or original.on_empty is None:
            return block_id
        logger.debug("Rebuilding acknowledgement for %s", original_id)
        return SyntheticAck(
            original_id=original_id,
            message=original.on_empty.message or "",
            next=original.on_empty.next or original.next,
        )

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve_next(self, current: Position, answer: Any, state: SurveyState) -> Target | None:
        """Return the next block (or acknowledgement) to present, or None at the end.

        Args:
            current: block id just answered, or the acknowledgement being dismissed
            answer: the raw answer (None when walking past a hidden block)
            state: session state; ``current_block_id``/``pending_ack`` are updated
        """
        if isinstance(current, str):
            current = self.position_for(current, state)

        for _ in range(MAX_NAVIGATION_HOPS):
            from_id = current.block_id if isinstance(current, SyntheticAck) else current

            if isinstance(current, SyntheticAck):
                logger.debug("Dismissing acknowledgement %s -> %s", current.block_id, current.next)
                state.pending_ack = None
                candidate_id = current.next
            else:
                block = self._catalog.get(current)
                if block is None:
                    logger.error("No block found for id %s", current)
                    return None

                if answer == "" and block.on_empty is not None:
                    deferred = block.on_empty.next or block.next
                    if block.on_empty.message:
                        ack = SyntheticAck(
                            original_id=block.id,
                            message=block.on_empty.message,
                            next=deferred,
                        )
                        logger.debug("Empty answer on %s, acknowledging first", block.id)
                        state.pending_ack = ack
                        state.current_block_id = ack.block_id
                        return ack
                    candidate_id = deferred
                else:
                    candidate_id = self._candidate_for(block, answer)

                if candidate_id is None and block.conditional_next is not None:
                    candidate_id = self._evaluator.resolve_conditional_next(
                        block.conditional_next, state.variables,
                    )

            if candidate_id is None:
                logger.info("No next block after %s", from_id)
                return None

            target = self._catalog.get(candidate_id)
            if target is None:
                logger.error("Dangling reference %s -> %s; ending navigation", from_id, candidate_id)
                return None

            state.pending_ack = None
            state.current_block_id = candidate_id

            if target.show_if is not None and not self._evaluator.evaluate(target.show_if, state.variables):
                logger.debug("Skipping hidden block %s", candidate_id)
                current, answer = candidate_id, None
                continue

            if target.is_routing_only:
                logger.debug("Auto-advancing through routing block %s", candidate_id)
                current, answer = candidate_id, ACKNOWLEDGED_ANSWER
                continue

            logger.debug("Next block after %s: %s", from_id, candidate_id)
            return target

        logger.error(
            "Navigation exceeded %d hops from %s; ending navigation",
            MAX_NAVIGATION_HOPS, state.current_block_id,
        )
        return None

    @staticmethod
    def _candidate_for(block: Block, answer: Any) -> str | None:
        """Option ``next`` (when the answer selects one that has it), else ``next``."""
        if block.options:
            selected = match_option(block, answer)
            if selected is not None and selected.next:
                return selected.next
        return block.next
