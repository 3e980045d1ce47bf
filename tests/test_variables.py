"""Variable bag updates: option matching, derivations, and apply_answer."""

import pytest

from survey_engine.models.block import Block
from survey_engine.models.session import SurveyState
from survey_engine.models.survey import (
    AliasDerivation,
    MergeDerivation,
    SelectionDerivation,
    VideoResponseDerivation,
)
from survey_engine.variables import apply_answer, derive_variables, match_option


def _block(**fields) -> Block:
    return Block.model_validate({"id": "q", "type": "single-choice", **fields})


# =====================================================================
# match_option
# =====================================================================


class TestMatchOption:
    """Options match by value or id, with bool <-> "true"/"false" coercion."""

    def test_by_value(self):
        block = _block(options=[{"id": "o1", "value": "a"}, {"id": "o2", "value": "b"}])
        assert match_option(block, "b").id == "o2"

    def test_by_id(self):
        block = _block(options=[{"id": "o1", "value": "a"}])
        assert match_option(block, "o1").id == "o1"

    @pytest.mark.parametrize("answer, expected", [
        ("true", "yes"),
        ("false", "no"),
        (True, "yes"),
        (False, "no"),
    ])
    def test_boolean_option_values(self, answer, expected):
        block = _block(type="yes-no", options=[
            {"id": "yes", "value": True},
            {"id": "no", "value": False},
        ])
        assert match_option(block, answer).id == expected

    def test_string_option_values_match_booleans(self):
        block = _block(options=[{"id": "y", "value": "true"}, {"id": "n", "value": "false"}])
        assert match_option(block, True).id == "y"
        assert match_option(block, False).id == "n"

    def test_no_bool_int_aliasing(self):
        block = _block(options=[{"id": "one", "value": 1}])
        assert match_option(block, True) is None

    def test_no_match(self):
        block = _block(options=[{"id": "o1", "value": "a"}])
        assert match_option(block, "zzz") is None
        assert match_option(block, ["a"]) is None


# =====================================================================
# derive_variables (pure)
# =====================================================================


class TestDeriveVariables:
    """Derivations are a pure function of (block id, answer, prior variables)."""

    def test_no_rule(self):
        assert derive_variables("b1", "x", {}, {}) == {}

    def test_alias(self):
        rules = {"b4": AliasDerivation(name="connection_type")}
        assert derive_variables("b4", "donor", {}, rules) == {"connection_type": "donor"}

    def test_alias_default_for_empty_answer(self):
        rules = {"b3": AliasDerivation(name="user_name", default="")}
        assert derive_variables("b3", "", {"user_name": "Ada"}, rules) == {"user_name": ""}
        assert derive_variables("b3", None, {}, rules) == {"user_name": ""}

    def test_alias_without_default_keeps_falsy_answer(self):
        rules = {"b18": AliasDerivation(name="demographics_consent")}
        assert derive_variables("b18", False, {}, rules) == {"demographics_consent": False}

    def test_selection(self):
        rules = {"b5": SelectionDerivation(name="arts")}
        delta = derive_variables("b5", ["music", "other"], {}, rules)
        assert delta == {"arts": ["music", "other"], "arts_count": 2, "arts_contains_other": True}

    def test_selection_custom_other_value(self):
        rules = {"b5": SelectionDerivation(name="arts", other_value="something-else")}
        delta = derive_variables("b5", ["music", "other"], {}, rules)
        assert delta["arts_contains_other"] is False

    def test_selection_non_list(self):
        rules = {"b5": SelectionDerivation(name="arts")}
        delta = derive_variables("b5", "", {}, rules)
        assert delta["arts_count"] == 0
        assert delta["arts_contains_other"] is False

    def test_video_response_object(self):
        rules = {"b7": VideoResponseDerivation(prefix="story")}
        delta = derive_variables(
            "b7",
            {"type": "video", "responseId": "r-1", "responseUrl": "https://v/r-1"},
            {},
            rules,
        )
        assert delta == {
            "story_type": "video",
            "story_response_id": "r-1",
            "story_response_url": "https://v/r-1",
        }

    def test_video_response_object_without_fields(self):
        rules = {"b7": VideoResponseDerivation(prefix="story")}
        delta = derive_variables("b7", {}, {}, rules)
        assert delta == {"story_type": "skipped", "story_response_id": None, "story_response_url": None}

    def test_video_response_skipped(self):
        rules = {"b7": VideoResponseDerivation(prefix="story")}
        assert derive_variables("b7", "skip", {}, rules) == {"story_type": "skipped"}

    def test_merge(self):
        rules = {"b19": MergeDerivation()}
        assert derive_variables("b19", {"age": "25-44", "postcode": "E1"}, {}, rules) == {
            "age": "25-44",
            "postcode": "E1",
        }
        assert derive_variables("b19", "n/a", {}, rules) == {}

    def test_prior_variables_untouched(self):
        prior = {"user_name": "Ada"}
        derive_variables("b3", "", prior, {"b3": AliasDerivation(name="user_name", default="")})
        assert prior == {"user_name": "Ada"}


# =====================================================================
# apply_answer
# =====================================================================


class TestApplyAnswer:
    """Answer recording plus the three variable sources, in order."""

    def _state(self, **variables):
        return SurveyState(survey_id="s", current_block_id="q", variables=variables)

    def test_records_answer_and_completed_block(self):
        state = self._state()
        apply_answer(state, "q", "x", _block(), {})
        apply_answer(state, "q", "y", _block(), {})
        assert state.answers == {"q": "y"}, "last answer wins"
        assert state.completed_blocks == ["q", "q"], "completed blocks are append-only"

    def test_variable_and_set_variables_both_apply(self):
        block = _block(
            variable="choice",
            options=[{"id": "g", "value": "gold", "setVariables": {"tier": "gold", "rank": 1}}],
        )
        state = self._state(tier="none")
        apply_answer(state, "q", "gold", block, {})
        assert state.variables == {"tier": "gold", "rank": 1, "choice": "gold"}

    def test_derivation_applied_last(self):
        block = _block(
            variable="kind",
            options=[{"id": "d", "value": "donor", "setVariables": {"connection_type": "from-option"}}],
        )
        state = self._state()
        apply_answer(state, "q", "donor", block, {"q": AliasDerivation(name="connection_type")})
        assert state.variables["connection_type"] == "donor"

    def test_synthetic_block_without_catalog_entry(self):
        state = self._state(user_name="Ada")
        apply_answer(state, "q-empty-message", "", None, {})
        assert state.answers == {"q-empty-message": ""}
        assert state.variables == {"user_name": "Ada"}
