"""Answer payload validation.

Accepted answer shapes for any block:

  - string (``""`` included; the empty string is how skips are signalled)
  - boolean
  - number
  - list of strings (multi-choice, ranking)
  - object (videoask responses, demographics groups, semantic differentials)

A ``semantic-differential`` object answer is checked further: every value
must be a number inside the block's ``min``..``max`` (default 1..5), and
when the block declares ``dimensions`` the keys must be exactly those.
"""

from __future__ import annotations

import math
from typing import Any

from survey_engine.constants import DEFAULT_RATING_RANGE
from survey_engine.errors import InvalidAnswerError
from survey_engine.models.block import Block


def _dimension_keys(block: Block) -> set[str] | None:
    """Declared dimension ids, accepting plain strings or ``{id: ...}`` entries."""
    extra = block.model_extra or {}
    dimensions = extra.get("dimensions")
    if not dimensions:
        return None
    keys = set()
    for dim in dimensions:
        if isinstance(dim, dict):
            keys.add(str(dim.get("id") or dim.get("key")))
        else:
            keys.add(str(dim))
    return keys


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def validate_semantic_differential(block: Block, answer: dict[str, Any]) -> None:
    extra = block.model_extra or {}
    low = extra.get("min", DEFAULT_RATING_RANGE[0])
    high = extra.get("max", DEFAULT_RATING_RANGE[1])

    expected = _dimension_keys(block)
    if expected is not None and set(answer) != expected:
        missing = sorted(expected - set(answer))
        unexpected = sorted(set(answer) - expected)
        raise InvalidAnswerError(
            f"Block {block.id}: ratings must cover exactly the declared dimensions "
            f"(missing={missing}, unexpected={unexpected})"
        )

    for key, rating in answer.items():
        if not _is_number(rating):
            raise InvalidAnswerError(f"Block {block.id}: rating for {key!r} must be a number")
        if not low <= rating <= high:
            raise InvalidAnswerError(
                f"Block {block.id}: rating for {key!r} must be between {low} and {high}, got {rating}"
            )


def validate_answer(block: Block | None, answer: Any) -> None:
    """Raise ``InvalidAnswerError`` if ``answer`` is not an acceptable payload.

    ``block`` may be None (e.g. for an acknowledgement), in which case only
    the generic shape is checked.
    """
    if answer is None:
        raise InvalidAnswerError("Answer is required")

    if isinstance(answer, (str, bool)):
        return

    if isinstance(answer, (int, float)):
        if not math.isfinite(answer):
            raise InvalidAnswerError("Numeric answer must be finite")
        return

    if isinstance(answer, list):
        bad = [item for item in answer if not isinstance(item, str)]
        if bad:
            raise InvalidAnswerError(f"List answers must contain only strings, got {bad!r}")
        return

    if isinstance(answer, dict):
        if block is not None and block.type == "semantic-differential":
            validate_semantic_differential(block, answer)
        return

    raise InvalidAnswerError(f"Unsupported answer type: {type(answer).__name__}")
