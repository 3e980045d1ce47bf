"""Engine configuration — reads settings from environment variables.

All settings have sensible defaults for local development.  In production
the values are typically overridden via env vars or a ``.env`` file.
"""

import os
from dataclasses import dataclass

from survey_engine.constants import SESSION_TTL_SECONDS

SESSION_STORE_BACKENDS = ("memory", "postgres")


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class EngineSettings:
    """Immutable engine configuration read from environment at startup."""

    # Configuration document (None → catalog default, surveys/donor_survey.yaml)
    catalog_path: str | None = None

    # Session lifetime after the last write
    session_ttl_seconds: int = SESSION_TTL_SECONDS

    # "memory" (single process) or "postgres" (survey_db.SqlSessionStore)
    session_store: str = "memory"

    # PostgreSQL URL for the "postgres" store (None → DATABASE_URL / PG_* parts)
    database_url: str | None = None

    # Reject unrecognised condition shapes when loading the document
    strict_conditions: bool = True

    # Logging
    log_level: str = "INFO"


def load_settings() -> EngineSettings:
    """Build settings from ``SURVEY_*`` environment variables.

    Raises:
        ValueError: if ``SURVEY_SESSION_STORE`` names an unknown backend.
    """
    store = os.getenv("SURVEY_SESSION_STORE", "memory").strip().lower()
    if store not in SESSION_STORE_BACKENDS:
        raise ValueError(
            f"SURVEY_SESSION_STORE must be one of {SESSION_STORE_BACKENDS}, got {store!r}"
        )

    return EngineSettings(
        catalog_path=os.getenv("SURVEY_CATALOG_PATH") or None,
        session_ttl_seconds=int(
            os.getenv("SURVEY_SESSION_TTL_SECONDS", str(SESSION_TTL_SECONDS))
        ),
        session_store=store,
        database_url=os.getenv("SURVEY_DATABASE_URL") or None,
        strict_conditions=_env_flag("SURVEY_STRICT_CONDITIONS", True),
        log_level=os.getenv("SURVEY_LOG_LEVEL", "INFO").upper(),
    )
