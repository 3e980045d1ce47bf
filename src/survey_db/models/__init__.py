"""ORM models for survey_db."""

from survey_db.models.base import Base
from survey_db.models.survey_session import SurveySessionRow

__all__ = ["Base", "SurveySessionRow"]
