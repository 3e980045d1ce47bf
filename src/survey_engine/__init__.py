"""survey_engine — configuration-driven conversational survey SDK.

Public API:
    SurveyEngine       — start / answer / current_question / progress / clear
    BlockCatalog       — loads a survey document into typed, validated blocks
    NavigationResolver — computes the next block for an answer
    ConditionEvaluator — evaluates condition trees against the variable bag
    TemplateRenderer   — ``{{var}}`` / ``{{#if}}`` substitution and content selection
    calculate_progress — completion percentage for a session's path

Session persistence:
    SessionStore         — ABC implemented by every backend
    InMemorySessionStore — process-local store (tests, single process)
    (``survey_db.SqlSessionStore`` — PostgreSQL store, separate package)

Errors:
    CatalogError, ConditionDepthError, InvalidAnswerError, SessionStoreError
"""

from survey_engine.catalog import BlockCatalog
from survey_engine.config import EngineSettings, load_settings
from survey_engine.engine import SurveyEngine
from survey_engine.errors import (
    CatalogError,
    ConditionDepthError,
    InvalidAnswerError,
    SessionStoreError,
)
from survey_engine.evaluator import ConditionEvaluator
from survey_engine.interfaces import SessionStore
from survey_engine.models.block import Block, SyntheticAck
from survey_engine.models.session import AnswerResult, SessionInfo, StartResult, SurveyState
from survey_engine.navigation import NavigationResolver
from survey_engine.progress import calculate_progress
from survey_engine.session_store import InMemorySessionStore
from survey_engine.templates import TemplateRenderer

__all__ = [
    # Engine & catalog
    "SurveyEngine",
    "BlockCatalog",
    "NavigationResolver",
    "ConditionEvaluator",
    "TemplateRenderer",
    "calculate_progress",
    # Configuration
    "EngineSettings",
    "load_settings",
    # Stores
    "SessionStore",
    "InMemorySessionStore",
    # Models
    "Block",
    "SyntheticAck",
    "SurveyState",
    "StartResult",
    "AnswerResult",
    "SessionInfo",
    # Errors
    "CatalogError",
    "ConditionDepthError",
    "InvalidAnswerError",
    "SessionStoreError",
]
