"""Variable bag updates applied when an answer is submitted.

Three sources feed the variable bag, applied in this order:

  1. ``block.variable`` — the raw answer stored verbatim
  2. ``setVariables`` of the option the answer selected
  3. block-specific derivations declared in the document's ``derivations``

:func:`derive_variables` is a pure function of (block id, answer, prior
variables) and returns only the delta, so derivations can be tested
without a session or a resolver.  :func:`apply_answer` combines all three
sources and records the answer on a ``SurveyState``.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from survey_engine.models.block import Block, Option
from survey_engine.models.session import SurveyState
from survey_engine.models.survey import (
    AliasDerivation,
    Derivation,
    MergeDerivation,
    SelectionDerivation,
    VideoResponseDerivation,
)

logger = logging.getLogger(__name__)


def _same_answer(option_value: Any, answer: Any) -> bool:
    """Exact match, or a boolean compared against the strings "true"/"false"."""
    if isinstance(option_value, bool) and isinstance(answer, str):
        return answer in ("true", "false") and option_value == (answer == "true")
    if isinstance(option_value, str) and isinstance(answer, bool):
        return option_value in ("true", "false") and (option_value == "true") == answer
    if isinstance(option_value, bool) != isinstance(answer, bool):
        return False
    return option_value == answer


def match_option(block: Block, answer: Any) -> Option | None:
    """Find the option an answer selects, by value or id."""
    for opt in block.options or []:
        if opt.value is not None and _same_answer(opt.value, answer):
            return opt
        if opt.id is not None and opt.id == answer:
            return opt
    return None


def derive_variables(
    block_id: str,
    answer: Any,
    prior_variables: Mapping[str, Any],
    derivations: Mapping[str, Derivation],
) -> dict[str, Any]:
    """Return the variables derived from answering ``block_id`` with ``answer``.

    ``prior_variables`` is read-only context; the returned dict is the delta
    to merge into the bag.  Blocks without a derivation return ``{}``.
    """
    rule = derivations.get(block_id)
    if rule is None:
        return {}

    if isinstance(rule, AliasDerivation):
        if not answer and "default" in rule.model_fields_set:
            return {rule.name: rule.default}
        return {rule.name: answer}

    if isinstance(rule, SelectionDerivation):
        selected = answer if isinstance(answer, list) else []
        if not isinstance(answer, list):
            logger.warning("Selection answer for %s is not a list: %r", block_id, answer)
        return {
            rule.name: answer,
            f"{rule.name}_count": len(selected),
            f"{rule.name}_contains_other": rule.other_value in selected,
        }

    if isinstance(rule, VideoResponseDerivation):
        if isinstance(answer, dict):
            return {
                f"{rule.prefix}_type": answer.get("type") or "skipped",
                f"{rule.prefix}_response_id": answer.get("responseId") or None,
                f"{rule.prefix}_response_url": answer.get("responseUrl") or None,
            }
        return {f"{rule.prefix}_type": "skipped"}

    if isinstance(rule, MergeDerivation):
        if isinstance(answer, dict):
            return dict(answer)
        return {}

    logger.warning("Unsupported derivation %r for block %s", rule, block_id)
    return {}


def apply_answer(
    state: SurveyState,
    block_id: str,
    answer: Any,
    block: Block | None,
    derivations: Mapping[str, Derivation],
) -> None:
    """Record ``answer`` for ``block_id`` on ``state`` and update its variables.

    Mutates ``state`` in place; the caller persists it.
    """
    state.answers[block_id] = answer
    state.completed_blocks.append(block_id)

    if block is not None and block.variable:
        state.variables[block.variable] = answer

    if block is not None and block.options:
        selected = match_option(block, answer)
        if selected is not None and selected.set_variables:
            logger.debug(
                "Option %s of %s sets %s", selected.id, block_id, selected.set_variables,
            )
            state.variables.update(selected.set_variables)

    delta = derive_variables(block_id, answer, state.variables, derivations)
    if delta:
        state.variables.update(delta)
