"""SurveySessionRow ORM model — one row per survey session.

The full ``SurveyState`` is stored as a single JSONB document so a session
is loaded and saved with one statement.  ``survey_id`` and ``response_id``
are copied out of the document into their own columns for lookups.
"""

from datetime import datetime, timezone

from sqlalchemy import Index, Text, text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from survey_db.models.base import Base


class SurveySessionRow(Base):
    """Persisted survey session with an absolute expiry time."""

    __tablename__ = "survey_sessions"

    # --- Identity ---
    # Engine-issued session id (uuid4 string)
    session_id: Mapped[str] = mapped_column(Text, primary_key=True)
    survey_id: Mapped[str] = mapped_column(Text, nullable=False)
    # Opaque key into the response-record store; "" when not linked
    response_id: Mapped[str] = mapped_column(
        Text, nullable=False, default="", server_default=text("''"),
    )

    # --- State ---
    # SurveyState serialised with camelCase aliases
    state: Mapped[dict] = mapped_column(JSONB, nullable=False)

    # --- Expiry ---
    # Rows past this instant are invisible to reads and removed by cleanup
    expires_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # --- Timestamps ---
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        # Cleanup scans by expiry
        Index("ix_survey_sessions_expires_at", "expires_at"),
        Index(
            "ix_survey_sessions_response_id",
            "response_id",
            postgresql_where=text("response_id <> ''"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<SurveySessionRow(session={self.session_id!r}, survey={self.survey_id!r}, "
            f"expires_at={self.expires_at!s})>"
        )
