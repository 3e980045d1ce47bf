"""ConditionEvaluator — evaluates condition trees against the variable bag.

Used by the navigation resolver (``showIf``, ``conditionalNext``), the
template renderer (``contentCondition``, ``conditionalContent``), and the
progress calculator (conditional path branches).

Evaluation is pure: no side effects, same inputs give the same result.
Missing variables never raise; a comparison against an absent variable is
simply false.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping

from survey_engine.constants import MAX_CONDITION_DEPTH
from survey_engine.errors import ConditionDepthError
from survey_engine.models.condition import (
    AlwaysTrue,
    AndCondition,
    Condition,
    ConditionalNext,
    ContainsCondition,
    EqualsCondition,
    GreaterThanCondition,
    LessThanCondition,
    NotCondition,
    OrCondition,
    parse_condition,
)

logger = logging.getLogger(__name__)


def _sort_key(value: Any) -> str:
    # Total order over mixed JSON values so equal multisets sort identically
    return json.dumps(value, sort_keys=True, default=str)


def _strict_equals(left: Any, right: Any) -> bool:
    """Equality without Python's bool/int aliasing (``True == 1``)."""
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return float(value)
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class ConditionEvaluator:
    """Evaluates parsed condition models (or raw mappings, leniently)."""

    def evaluate(self, condition: Condition | Mapping[str, Any], variables: Mapping[str, Any]) -> bool:
        """Return whether ``condition`` holds for ``variables``.

        Raw mappings are parsed leniently: an unrecognised shape evaluates
        to True.  Catalog-loaded conditions are already parsed and, in
        strict mode, can never be unrecognised.
        """
        if isinstance(condition, Mapping):
            condition = parse_condition(condition, strict=False)
        return self._eval(condition, variables, 0)

    def resolve_conditional_next(
        self, rule: ConditionalNext, variables: Mapping[str, Any]
    ) -> str | None:
        """Walk an if/then/else chain and return the terminal block id.

        A true ``if`` yields ``then``.  Otherwise a nested rule in ``else``
        is evaluated in turn; a plain ``else`` value is terminal.
        """
        node: ConditionalNext | str | None = rule
        depth = 0
        while isinstance(node, ConditionalNext):
            if depth > MAX_CONDITION_DEPTH:
                raise ConditionDepthError(
                    f"conditionalNext nested deeper than {MAX_CONDITION_DEPTH} levels"
                )
            if self._eval(node.if_, variables, 0):
                return node.then
            node = node.else_
            depth += 1
        return node

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _eval(self, cond: Condition, variables: Mapping[str, Any], depth: int) -> bool:
        if depth > MAX_CONDITION_DEPTH:
            raise ConditionDepthError(
                f"Condition nested deeper than {MAX_CONDITION_DEPTH} levels"
            )

        if isinstance(cond, EqualsCondition):
            actual = variables.get(cond.variable)
            if isinstance(cond.equals, list) and isinstance(actual, list):
                return sorted(cond.equals, key=_sort_key) == sorted(actual, key=_sort_key)
            return _strict_equals(actual, cond.equals)

        if isinstance(cond, ContainsCondition):
            actual = variables.get(cond.variable)
            if isinstance(actual, list):
                return any(_strict_equals(item, cond.contains) for item in actual)
            return False

        if isinstance(cond, (GreaterThanCondition, LessThanCondition)):
            actual = _as_number(variables.get(cond.variable))
            threshold = _as_number(
                cond.greater_than if isinstance(cond, GreaterThanCondition) else cond.less_than
            )
            if actual is None or threshold is None:
                return False
            if isinstance(cond, GreaterThanCondition):
                return actual > threshold
            return actual < threshold

        if isinstance(cond, NotCondition):
            return not self._eval(cond.operand, variables, depth + 1)

        if isinstance(cond, OrCondition):
            return any(self._eval(c, variables, depth + 1) for c in cond.operands)

        if isinstance(cond, AndCondition):
            return all(self._eval(c, variables, depth + 1) for c in cond.operands)

        if isinstance(cond, AlwaysTrue):
            logger.debug("Permissive condition %r evaluated as true", cond.source)
            return True

        logger.warning("Unknown condition type %s evaluated as true", type(cond).__name__)
        return True


_default_evaluator = ConditionEvaluator()


def evaluate(condition: Condition | Mapping[str, Any], variables: Mapping[str, Any]) -> bool:
    """Module-level shortcut for :meth:`ConditionEvaluator.evaluate`."""
    return _default_evaluator.evaluate(condition, variables)
