"""Block models — the nodes of a survey graph.

Each block maps to a chat UI component on the client.  Routing fields decide
which block follows it:

  - ``next``: default follow-up block id
  - ``options[].next``: per-option override for choice-like blocks
  - ``conditionalNext``: nested if/then/else routing evaluated against variables
  - ``onEmpty``: override applied when the submitted answer is ``""``
  - ``showIf``: display guard; a block whose guard is false is skipped

Presentation fields the engine does not interpret (``buttonText``,
``videoAskFormId``, ``maxSelections``, ...) are kept as extra fields and
passed through to the client unchanged.

Conditions inside a block are parsed at validation time.  Pass
``context={"strict_conditions": False}`` to ``model_validate`` to accept
unrecognised condition shapes as always-true instead of rejecting them.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from survey_engine.constants import EMPTY_MESSAGE_SUFFIX
from survey_engine.models.condition import (
    Condition,
    ConditionalContentItem,
    ConditionalNext,
    ContentCondition,
    parse_condition,
    parse_conditional_next,
)

BlockType = Literal[
    "text-input",
    "single-choice",
    "multi-choice",
    "yes-no",
    "quick-reply",
    "scale",
    "ranking",
    "semantic-differential",
    "mixed-media",
    "videoask",
    "video-autoplay",
    "dynamic-message",
    "final-message",
    "message-button",
    "demographics-group",
]


def strict_conditions(info: ValidationInfo) -> bool:
    """Read the strict-conditions flag from the validation context (default on)."""
    if info.context is None:
        return True
    return bool(info.context.get("strict_conditions", True))


class _DocumentModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="allow",
    )


class Option(_DocumentModel):
    """A selectable option; may override ``next`` and set variables."""

    id: Optional[str] = None
    value: Any = None
    label: Optional[str] = None
    next: Optional[str] = None
    set_variables: Optional[Dict[str, Any]] = None


class OnEmpty(_DocumentModel):
    """Behaviour when the respondent submits an empty answer."""

    message: Optional[str] = None
    next: Optional[str] = None


class Block(_DocumentModel):
    """One question or message in the survey graph."""

    id: str
    type: BlockType
    content: Union[str, Dict[str, str], None] = None
    options: Optional[List[Option]] = None
    next: Optional[str] = None
    conditional_next: Optional[ConditionalNext] = None
    on_empty: Optional[OnEmpty] = None
    show_if: Optional[Condition] = None
    variable: Optional[str] = None
    placeholder: Optional[str] = None

    # Content selection
    content_key: Optional[str] = None
    content_condition: Optional[ContentCondition] = None
    conditional_content: Optional[List[ConditionalContentItem]] = None

    @field_validator("show_if", mode="before")
    @classmethod
    def _parse_show_if(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            return None
        return parse_condition(v, strict=strict_conditions(info))

    @field_validator("conditional_next", mode="before")
    @classmethod
    def _parse_conditional_next(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            return None
        return parse_conditional_next(v, strict=strict_conditions(info))

    @field_validator("content_condition", mode="before")
    @classmethod
    def _parse_content_condition(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None or isinstance(v, ContentCondition):
            return v
        if not isinstance(v, dict) or "if" not in v:
            raise ValueError("contentCondition requires 'if', 'then' and 'else'")
        return ContentCondition(
            if_=parse_condition(v["if"], strict=strict_conditions(info)),
            then=v.get("then"),
            else_=v.get("else"),
        )

    @field_validator("conditional_content", mode="before")
    @classmethod
    def _parse_conditional_content(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            return None
        if not isinstance(v, list):
            raise ValueError("conditionalContent must be a list")
        items = []
        for entry in v:
            if isinstance(entry, ConditionalContentItem):
                items.append(entry)
                continue
            condition = entry.get("condition")
            if not isinstance(condition, str):
                condition = parse_condition(condition, strict=strict_conditions(info))
            items.append(
                ConditionalContentItem(condition=condition, content=entry.get("content", ""))
            )
        return items

    @property
    def is_routing_only(self) -> bool:
        """A dynamic-message with nothing to show that only routes onwards."""
        return (
            self.type == "dynamic-message"
            and not self.content
            and self.conditional_next is not None
        )


class SyntheticAck(BaseModel):
    """Transient acknowledgement shown after an empty answer.

    Never part of the catalog.  The engine keeps the pending acknowledgement
    in session state and resolves it on the respondent's next submission,
    which is when the deferred transition to ``next`` happens.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    original_id: str
    message: str
    next: Optional[str] = None

    @property
    def block_id(self) -> str:
        """Client-facing id, e.g. ``b3-empty-message``."""
        return f"{self.original_id}{EMPTY_MESSAGE_SUFFIX}"

    def to_block(self) -> Block:
        return Block(
            id=self.block_id,
            type="dynamic-message",
            content=self.message,
            next=self.next,
        )
