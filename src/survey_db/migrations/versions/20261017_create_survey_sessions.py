"""Create the survey_sessions table.

One row per survey session holding the serialised ``SurveyState`` as JSONB
plus an absolute ``expires_at``.  Expired rows are ignored by reads and
removed by ``survey-engine cleanup``.

Revision ID: 20261017_survey_sessions
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP

# revision identifiers, used by Alembic.
revision = "20261017_survey_sessions"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "survey_sessions",
        sa.Column("session_id", sa.Text(), primary_key=True),
        sa.Column("survey_id", sa.Text(), nullable=False),
        sa.Column("response_id", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("state", JSONB(), nullable=False),
        sa.Column("expires_at", TIMESTAMP(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )

    # --- Cleanup scans by expiry ---
    op.create_index("ix_survey_sessions_expires_at", "survey_sessions", ["expires_at"])

    # --- Lookup by linked response record (only linked rows) ---
    op.create_index(
        "ix_survey_sessions_response_id",
        "survey_sessions",
        ["response_id"],
        postgresql_where=sa.text("response_id <> ''"),
    )


def downgrade() -> None:
    op.drop_index("ix_survey_sessions_response_id", table_name="survey_sessions")
    op.drop_index("ix_survey_sessions_expires_at", table_name="survey_sessions")
    op.drop_table("survey_sessions")
