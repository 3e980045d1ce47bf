"""Public model re-exports for survey_engine.

Consumers should import from ``survey_engine.models`` rather than
reaching into sub-modules directly.
"""

# --- Conditions ---
from survey_engine.models.condition import (
    AlwaysTrue,
    AndCondition,
    Condition,
    ConditionalContentItem,
    ConditionalNext,
    ContainsCondition,
    ContentCondition,
    EqualsCondition,
    GreaterThanCondition,
    LessThanCondition,
    NotCondition,
    OrCondition,
    parse_condition,
    parse_conditional_next,
)

# --- Blocks ---
from survey_engine.models.block import Block, BlockType, OnEmpty, Option, SyntheticAck

# --- Survey document ---
from survey_engine.models.survey import (
    AliasDerivation,
    AnswerBranch,
    ConditionBranch,
    Derivation,
    MergeDerivation,
    ProgressPolicy,
    Section,
    SelectionDerivation,
    Survey,
    SurveyDocument,
    VideoResponseDerivation,
)

# --- Session / results ---
from survey_engine.models.session import (
    AnswerResult,
    SessionInfo,
    StartResult,
    SurveyState,
)

__all__ = [
    # Conditions
    "AlwaysTrue",
    "AndCondition",
    "Condition",
    "ConditionalContentItem",
    "ConditionalNext",
    "ContainsCondition",
    "ContentCondition",
    "EqualsCondition",
    "GreaterThanCondition",
    "LessThanCondition",
    "NotCondition",
    "OrCondition",
    "parse_condition",
    "parse_conditional_next",
    # Blocks
    "Block",
    "BlockType",
    "OnEmpty",
    "Option",
    "SyntheticAck",
    # Survey document
    "AliasDerivation",
    "AnswerBranch",
    "ConditionBranch",
    "Derivation",
    "MergeDerivation",
    "ProgressPolicy",
    "Section",
    "SelectionDerivation",
    "Survey",
    "SurveyDocument",
    "VideoResponseDerivation",
    # Session
    "AnswerResult",
    "SessionInfo",
    "StartResult",
    "SurveyState",
]
