"""Condition expression models for branching, display guards, and content.

A condition in a configuration document is a plain mapping whose keys select
its meaning:

  Leaf comparisons (against one variable in the variable bag):
    - {variable, equals}       — exact equality; arrays compare order-insensitively
    - {variable, contains}     — array membership
    - {variable, greaterThan}  — numeric comparison
    - {variable, lessThan}     — numeric comparison

  Combinators:
    - {not: Condition}
    - {or: Condition | [Condition, ...]}
    - {and: [Condition, ...]}

Mappings are parsed once, at catalog load, into the closed set of models
below by :func:`parse_condition`.  Shapes that match none of the keys are
rejected in strict mode; in lenient mode they become :class:`AlwaysTrue`,
which preserves the permissive "unknown means true" behaviour of older
survey documents.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_serializer

from survey_engine.constants import MAX_CONDITION_DEPTH
from survey_engine.errors import ConditionDepthError

logger = logging.getLogger(__name__)


class _ConditionModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


# --- Leaf comparisons ---

class EqualsCondition(_ConditionModel):
    """``variable`` equals ``equals`` (sorted comparison when both are arrays)."""

    variable: str
    equals: Any


class ContainsCondition(_ConditionModel):
    """``variable`` is an array that includes ``contains``."""

    variable: str
    contains: Any


class GreaterThanCondition(_ConditionModel):
    """``variable`` is numerically greater than ``greater_than``."""

    variable: str
    greater_than: Any = Field(alias="greaterThan")


class LessThanCondition(_ConditionModel):
    """``variable`` is numerically less than ``less_than``."""

    variable: str
    less_than: Any = Field(alias="lessThan")


# --- Combinators ---

class NotCondition(_ConditionModel):
    operand: Condition = Field(alias="not")


class OrCondition(_ConditionModel):
    """True if any operand is true.  A single operand is stored as a 1-list."""

    operands: List[Condition] = Field(alias="or")


class AndCondition(_ConditionModel):
    operands: List[Condition] = Field(alias="and")


class AlwaysTrue(_ConditionModel):
    """Unrecognised condition shape accepted in lenient mode; always true."""

    source: dict = Field(default_factory=dict)

    @model_serializer
    def _dump_source(self) -> dict:
        return dict(self.source)


Condition = Union[
    EqualsCondition,
    ContainsCondition,
    GreaterThanCondition,
    LessThanCondition,
    NotCondition,
    OrCondition,
    AndCondition,
    AlwaysTrue,
]


# --- Routing / content selection built on conditions ---

class ConditionalNext(_ConditionModel):
    """``{if, then, else}`` routing; ``else`` may nest another ConditionalNext."""

    if_: Condition = Field(alias="if")
    then: Optional[str] = None
    else_: Union[ConditionalNext, str, None] = Field(default=None, alias="else")


class ContentCondition(_ConditionModel):
    """Selects one of two content keys of a keyed-content block."""

    if_: Condition = Field(alias="if")
    then: str
    else_: str = Field(alias="else")


class ConditionalContentItem(_ConditionModel):
    """One entry of a ``conditionalContent`` list; ``"default"`` always matches."""

    condition: Union[Condition, str]
    content: str


for _model in (
    NotCondition,
    OrCondition,
    AndCondition,
    ConditionalNext,
    ContentCondition,
    ConditionalContentItem,
):
    _model.model_rebuild()


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _check_depth(depth: int) -> None:
    if depth > MAX_CONDITION_DEPTH:
        raise ConditionDepthError(
            f"Condition nested deeper than {MAX_CONDITION_DEPTH} levels"
        )


def parse_condition(raw: Any, *, strict: bool = True, _depth: int = 0) -> Condition:
    """Parse a raw condition mapping into a typed condition model.

    Already-parsed models are returned unchanged.

    Raises:
        ValueError: on an unrecognised shape when ``strict`` is set, or when
            a combinator has the wrong operand type.
        ConditionDepthError: when nesting exceeds ``MAX_CONDITION_DEPTH``.
    """
    _check_depth(_depth)

    if isinstance(raw, BaseModel):
        return raw

    if not isinstance(raw, Mapping):
        if strict:
            raise ValueError(f"Condition must be a mapping, got {type(raw).__name__}")
        logger.warning("Non-mapping condition %r treated as true", raw)
        return AlwaysTrue()

    # Key precedence matches the order the evaluator has always checked them
    if "variable" in raw and "equals" in raw:
        return EqualsCondition(variable=raw["variable"], equals=raw["equals"])
    if "variable" in raw and "contains" in raw:
        return ContainsCondition(variable=raw["variable"], contains=raw["contains"])
    if "variable" in raw and "greaterThan" in raw:
        return GreaterThanCondition(variable=raw["variable"], greater_than=raw["greaterThan"])
    if "variable" in raw and "lessThan" in raw:
        return LessThanCondition(variable=raw["variable"], less_than=raw["lessThan"])

    if "not" in raw:
        return NotCondition(
            operand=parse_condition(raw["not"], strict=strict, _depth=_depth + 1)
        )

    if "or" in raw:
        items = raw["or"] if isinstance(raw["or"], list) else [raw["or"]]
        return OrCondition(
            operands=[parse_condition(c, strict=strict, _depth=_depth + 1) for c in items]
        )

    if "and" in raw:
        if not isinstance(raw["and"], list):
            raise ValueError("'and' condition requires a list of conditions")
        return AndCondition(
            operands=[parse_condition(c, strict=strict, _depth=_depth + 1) for c in raw["and"]]
        )

    if strict:
        raise ValueError(f"Unrecognised condition shape with keys {sorted(raw)}")
    logger.warning("Unrecognised condition %r treated as true", dict(raw))
    return AlwaysTrue(source=dict(raw))


def parse_conditional_next(
    raw: Any, *, strict: bool = True, _depth: int = 0
) -> ConditionalNext:
    """Parse a ``conditionalNext`` mapping, recursing through nested ``else``."""
    _check_depth(_depth)

    if isinstance(raw, ConditionalNext):
        return raw
    if not isinstance(raw, Mapping) or "if" not in raw:
        raise ValueError("conditionalNext requires an 'if' condition")

    else_raw = raw.get("else")
    if isinstance(else_raw, Mapping) and "if" in else_raw:
        else_value: ConditionalNext | str | None = parse_conditional_next(
            else_raw, strict=strict, _depth=_depth + 1,
        )
    elif else_raw is None or isinstance(else_raw, str):
        else_value = else_raw
    else:
        raise ValueError(f"conditionalNext 'else' must be a block id or a nested rule, got {else_raw!r}")

    then_value = raw.get("then")
    if then_value is not None and not isinstance(then_value, str):
        raise ValueError(f"conditionalNext 'then' must be a block id, got {then_value!r}")

    return ConditionalNext(
        if_=parse_condition(raw["if"], strict=strict, _depth=_depth + 1),
        then=then_value,
        else_=else_value,
    )


def conditional_next_targets(rule: ConditionalNext) -> list[str]:
    """Every block id a conditionalNext tree can resolve to (for integrity checks)."""
    targets: list[str] = []
    node: ConditionalNext | str | None = rule
    while isinstance(node, ConditionalNext):
        if node.then is not None:
            targets.append(node.then)
        node = node.else_
    if isinstance(node, str):
        targets.append(node)
    return targets
