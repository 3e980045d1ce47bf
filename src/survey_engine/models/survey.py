"""Survey-level document models: metadata, derivations, and progress policy.

A configuration document has four top-level keys::

    survey:       {id, name, description?, firstBlock?, sections: [{blocks: [...]}]}
    blocks:       {blockId: Block}
    derivations:  {blockId: Derivation}          # optional
    progress:     {mainPath, finalBlock, branches} # optional

Derivations describe the extra variables an answer to a particular block
produces, beyond the block's own ``variable`` and its options'
``setVariables``.  The discriminated ``Derivation`` union uses ``kind`` as
its discriminator.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from survey_engine.models.block import Block, strict_conditions
from survey_engine.models.condition import Condition, parse_condition


class _SurveyModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


# --- Survey metadata ---

class Section(_SurveyModel):
    id: Optional[str] = None
    title: Optional[str] = None
    blocks: List[str] = Field(default_factory=list)


class Survey(_SurveyModel):
    id: str
    name: str
    description: Optional[str] = None
    first_block: Optional[str] = None
    sections: List[Section] = Field(default_factory=list)

    @property
    def ordered_block_ids(self) -> list[str]:
        """Block ids in canonical question order (sections flattened)."""
        return [bid for section in self.sections for bid in section.blocks]


# --- Variable derivations ---

class AliasDerivation(_SurveyModel):
    """Store the raw answer under ``name``; falsy answers use ``default`` if given."""

    kind: Literal["alias"] = "alias"
    name: str
    default: Any = None


class SelectionDerivation(_SurveyModel):
    """Multi-select summary: ``name``, ``name_count``, ``name_contains_other``."""

    kind: Literal["selection"] = "selection"
    name: str
    other_value: str = "other"


class VideoResponseDerivation(_SurveyModel):
    """Video answer summary under ``prefix_type`` / ``_response_id`` / ``_response_url``."""

    kind: Literal["video_response"] = "video_response"
    prefix: str


class MergeDerivation(_SurveyModel):
    """Merge an object answer (e.g. a demographics group) into the variable bag."""

    kind: Literal["merge"] = "merge"


Derivation = Annotated[
    Union[AliasDerivation, SelectionDerivation, VideoResponseDerivation, MergeDerivation],
    Field(discriminator="kind"),
]


# --- Progress policy ---

class AnswerBranch(_SurveyModel):
    """Append the block chosen by the raw answer given to ``answer_of``."""

    answer_of: str
    choices: Dict[str, str]


class ConditionBranch(_SurveyModel):
    """Append ``include`` when the condition holds against current variables."""

    if_: Condition = Field(alias="if")
    include: List[str]


ProgressBranch = Union[AnswerBranch, ConditionBranch]


class ProgressPolicy(_SurveyModel):
    """Expected-block path used to compute completion percentage."""

    main_path: List[str] = Field(default_factory=list)
    final_block: Optional[str] = None
    branches: List[ProgressBranch] = Field(default_factory=list)

    @field_validator("branches", mode="before")
    @classmethod
    def _parse_branches(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            return []
        parsed = []
        for raw in v:
            if isinstance(raw, (AnswerBranch, ConditionBranch)):
                parsed.append(raw)
            elif "answerOf" in raw or "answer_of" in raw:
                parsed.append(AnswerBranch.model_validate(raw))
            elif "if" in raw:
                parsed.append(
                    ConditionBranch(
                        if_=parse_condition(raw["if"], strict=strict_conditions(info)),
                        include=list(raw.get("include", [])),
                    )
                )
            else:
                raise ValueError(f"Unrecognised progress branch with keys {sorted(raw)}")
        return parsed

    def referenced_blocks(self) -> list[str]:
        refs = list(self.main_path)
        if self.final_block:
            refs.append(self.final_block)
        for branch in self.branches:
            if isinstance(branch, AnswerBranch):
                refs.append(branch.answer_of)
                refs.extend(branch.choices.values())
            else:
                refs.extend(branch.include)
        return refs


# --- Whole document ---

class SurveyDocument(_SurveyModel):
    """Validated configuration document."""

    survey: Survey
    blocks: Dict[str, Block]
    derivations: Dict[str, Derivation] = Field(default_factory=dict)
    progress: Optional[ProgressPolicy] = None

    @field_validator("blocks", mode="before")
    @classmethod
    def _fill_block_ids(cls, v: Any) -> Any:
        # Blocks may omit ``id`` and inherit their mapping key
        if not isinstance(v, dict):
            return v
        filled = {}
        for key, raw in v.items():
            if isinstance(raw, dict) and "id" not in raw:
                raw = {**raw, "id": key}
            filled[key] = raw
        return filled
