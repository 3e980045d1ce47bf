"""survey_db — PostgreSQL persistence layer for survey sessions.

This package provides the ORM model, the connection pool wrapper, and the
``SqlSessionStore`` implementation of ``survey_engine.SessionStore``.  Use
it when sessions must be shared across worker processes; single-process
deployments can stay on ``InMemorySessionStore``.
"""

from survey_db.engine import DatabaseSettings, SessionDatabase
from survey_db.models.survey_session import SurveySessionRow
from survey_db.repository import SqlSessionStore

__all__ = [
    "SurveySessionRow",
    "DatabaseSettings",
    "SessionDatabase",
    "SqlSessionStore",
]
