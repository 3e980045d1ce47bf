"""SQLAlchemy declarative base for survey_db tables."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
