"""Completion progress for a session.

Progress is the share of *expected* blocks the respondent has completed.
The expected set is the policy's main path, plus the branch blocks the
respondent's own answers make reachable, plus the final block.
"""

from __future__ import annotations

import math
from typing import Any

from survey_engine.evaluator import ConditionEvaluator
from survey_engine.models.session import SurveyState
from survey_engine.models.survey import AnswerBranch, ProgressPolicy

_evaluator = ConditionEvaluator()


def _answer_key(answer: Any) -> str | None:
    if isinstance(answer, bool):
        return "true" if answer else "false"
    if isinstance(answer, (str, int, float)):
        return str(answer)
    return None


def expected_blocks(state: SurveyState, policy: ProgressPolicy) -> list[str]:
    """Ordered expected-block list for this respondent's path, without repeats."""
    expected = list(policy.main_path)

    for branch in policy.branches:
        if isinstance(branch, AnswerBranch):
            if branch.answer_of not in state.answers:
                continue
            key = _answer_key(state.answers[branch.answer_of])
            if key is not None and key in branch.choices:
                expected.append(branch.choices[key])
        elif _evaluator.evaluate(branch.if_, state.variables):
            expected.extend(branch.include)

    if policy.final_block:
        expected.append(policy.final_block)
    # A branch may name a block already on the main path
    return list(dict.fromkeys(expected))


def calculate_progress(state: SurveyState, policy: ProgressPolicy) -> int:
    """Percentage (0..100) of expected blocks present in ``completed_blocks``.

    Pure: reads ``state`` without modifying it.  Duplicates in
    ``completed_blocks`` never count twice.
    """
    expected = expected_blocks(state, policy)
    if not expected:
        return 0
    completed = set(state.completed_blocks)
    done = sum(1 for block_id in expected if block_id in completed)
    # Half-up rounding, so 12.5% reads as 13%
    return min(math.floor(100 * done / len(expected) + 0.5), 100)
