"""Session and result models — the contract between the engine and callers.

``SurveyState`` is what the session store persists, one per respondent
attempt.  The result models are what engine operations return to the HTTP
layer; they are decoupled from the storage representation so callers never
see store internals.

All models serialise with camelCase aliases (``model_dump(by_alias=True)``)
to match the chat client's JSON conventions.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from survey_engine.models.block import Block, SyntheticAck


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _SessionModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class SurveyState(_SessionModel):
    """Per-respondent conversation state.

    ``completed_blocks`` is append-only and may contain duplicates when a
    block is answered twice.  ``pending_ack`` is set while an empty-answer
    acknowledgement is on screen and cleared by the next transition.
    ``current_block_id`` keeps pointing at the last block shown after the
    survey ends; ``is_complete`` tells the two situations apart.
    """

    survey_id: str
    # Opaque key into the caller's response-record store
    response_id: str = ""
    current_block_id: str
    variables: dict[str, Any] = Field(default_factory=dict)
    completed_blocks: list[str] = Field(default_factory=list)
    # block id -> last raw answer
    answers: dict[str, Any] = Field(default_factory=dict)
    pending_ack: Optional[SyntheticAck] = None
    # Set once navigation reaches the end (terminal block or dead end)
    is_complete: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class StartResult(_SessionModel):
    """Returned by ``SurveyEngine.start``."""

    session_id: str
    first_question: Block


class AnswerResult(_SessionModel):
    """Returned by ``SurveyEngine.answer``; ``next_question`` is None at the end."""

    next_question: Optional[Block] = None
    progress: int


class SessionInfo(_SessionModel):
    """Read-only snapshot of a session for API consumers."""

    session_id: str
    survey_id: str
    response_id: str
    current_block_id: str
    current_question: Optional[Block] = None
    progress: int
    is_complete: bool
