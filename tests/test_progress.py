"""Progress calculation against a ProgressPolicy."""

import pytest

from survey_engine.models.condition import parse_condition
from survey_engine.models.session import SurveyState
from survey_engine.models.survey import AnswerBranch, ConditionBranch, ProgressPolicy
from survey_engine.progress import calculate_progress, expected_blocks


@pytest.fixture
def policy():
    return ProgressPolicy(
        main_path=["a", "b", "c"],
        final_block="end",
        branches=[
            AnswerBranch(answer_of="c", choices={"email": "c-email", "text": "c-text", "true": "c-yes"}),
            ConditionBranch(
                if_=parse_condition({"variable": "consent", "equals": True}),
                include=["demo"],
            ),
        ],
    )


def _state(completed=(), answers=None, **variables):
    return SurveyState(
        survey_id="s",
        current_block_id="a",
        completed_blocks=list(completed),
        answers=answers or {},
        variables=variables,
    )


class TestExpectedBlocks:

    def test_main_path_and_final(self, policy):
        assert expected_blocks(_state(), policy) == ["a", "b", "c", "end"]

    def test_answer_branch_adds_exactly_one(self, policy):
        state = _state(answers={"c": "text"})
        assert expected_blocks(state, policy) == ["a", "b", "c", "c-text", "end"]

    def test_answer_branch_unknown_choice(self, policy):
        assert expected_blocks(_state(answers={"c": "fax"}), policy) == ["a", "b", "c", "end"]

    def test_answer_branch_boolean_answer(self, policy):
        assert "c-yes" in expected_blocks(_state(answers={"c": True}), policy)

    def test_condition_branch(self, policy):
        assert expected_blocks(_state(consent=True), policy) == ["a", "b", "c", "demo", "end"]
        assert expected_blocks(_state(consent=False), policy) == ["a", "b", "c", "end"]

    def test_overlapping_branches_listed_once(self):
        policy = ProgressPolicy(
            main_path=["a", "b"],
            final_block="f",
            branches=[
                AnswerBranch(answer_of="b", choices={"x": "a"}),
                ConditionBranch(if_=parse_condition({"variable": "v", "equals": 1}), include=["a", "f"]),
            ],
        )
        state = _state(answers={"b": "x"}, v=1)
        assert expected_blocks(state, policy) == ["a", "b", "f"]


class TestCalculateProgress:

    def test_zero_at_start(self, policy):
        assert calculate_progress(_state(), policy) == 0

    def test_partial(self, policy):
        assert calculate_progress(_state(["a", "b"]), policy) == 50

    def test_blocks_outside_expected_set_do_not_count(self, policy):
        assert calculate_progress(_state(["intro", "a"]), policy) == 25

    def test_rounds_half_up(self):
        policy = ProgressPolicy(main_path=list("abcdefg"), final_block="h")
        assert calculate_progress(_state(["a"]), policy) == 13, "1/8 = 12.5% rounds to 13"

    def test_complete(self, policy):
        state = _state(["a", "b", "c", "c-email", "end"], answers={"c": "email"})
        assert calculate_progress(state, policy) == 100

    def test_duplicates_never_exceed_100(self, policy):
        state = _state(["a", "a", "b", "b", "c", "end", "end", "extra"])
        assert calculate_progress(state, policy) == 100

    def test_branch_repeating_main_path_block(self):
        """A branch naming a main-path block does not weigh it twice."""
        policy = ProgressPolicy(
            main_path=["a", "b"],
            final_block="f",
            branches=[AnswerBranch(answer_of="b", choices={"x": "a"})],
        )
        state = _state(["b"], answers={"b": "x"})
        assert calculate_progress(state, policy) == 33, "1 of 3 distinct blocks"

    def test_empty_policy(self):
        assert calculate_progress(_state(["a"]), ProgressPolicy()) == 0

    def test_idempotent_and_pure(self, policy):
        state = _state(["a", "b"], answers={"c": "email"}, consent=True)
        before = state.model_dump()
        first = calculate_progress(state, policy)
        second = calculate_progress(state, policy)
        assert first == second
        assert state.model_dump() == before, "progress must not mutate state"

    def test_monotonic_along_main_path(self, policy):
        state = _state()
        seen = []
        for block_id in ["a", "b", "c", "c-email", "end"]:
            state.completed_blocks.append(block_id)
            if block_id == "c":
                state.answers["c"] = "email"
            seen.append(calculate_progress(state, policy))
        assert seen == sorted(seen), f"progress went backwards: {seen}"
        assert seen[-1] == 100
