"""Maintenance CLI — ``survey-engine``.

Subcommands::

    # Load and validate a configuration document (default: $SURVEY_CATALOG_PATH
    # or surveys/donor_survey.yaml); exits 1 on any configuration error
    survey-engine validate
    survey-engine validate path/to/survey.yaml

    # Delete expired sessions from the PostgreSQL session store
    survey-engine cleanup

Also provides :func:`build_engine`, the wiring used by services that embed
the engine: it loads the catalog and picks the session store named by the
settings.  There is no fallback between stores; a failing backend fails
the caller.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from survey_engine.catalog import BlockCatalog, default_catalog_path
from survey_engine.config import EngineSettings, load_settings
from survey_engine.engine import SurveyEngine
from survey_engine.errors import CatalogError
from survey_engine.interfaces import SessionStore
from survey_engine.session_store import InMemorySessionStore

logger = logging.getLogger(__name__)


def build_store(settings: EngineSettings) -> SessionStore:
    """Instantiate the session store backend named by ``settings``."""
    if settings.session_store == "postgres":
        # Lazy import to avoid loading DB machinery for the in-memory store
        from survey_db.repository import SqlSessionStore

        return SqlSessionStore.from_url(settings.database_url)
    return InMemorySessionStore()


def build_engine(settings: EngineSettings | None = None) -> SurveyEngine:
    """Load the catalog and wire a ``SurveyEngine`` from settings.

    Raises:
        CatalogError: the configuration document is invalid.
    """
    settings = settings or load_settings()
    catalog = BlockCatalog.load(
        settings.catalog_path, strict_conditions=settings.strict_conditions,
    )
    return SurveyEngine(
        catalog,
        build_store(settings),
        session_ttl=settings.session_ttl_seconds,
    )


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------

def run_validate(path: str | None, *, strict_conditions: bool = True) -> int:
    """Validate a configuration document; return the process exit code."""
    try:
        catalog = BlockCatalog.load(path, strict_conditions=strict_conditions)
    except (CatalogError, FileNotFoundError) as exc:
        print(f"INVALID: {exc}", file=sys.stderr)
        return 1

    print(
        f"OK: survey={catalog.survey.id} blocks={len(catalog)} "
        f"derivations={len(catalog.derivations)} "
        f"main_path={len(catalog.progress.main_path)} "
        f"first_block={catalog.first_block_id}"
    )
    return 0


async def run_cleanup(settings: EngineSettings) -> int:
    """Purge expired sessions from PostgreSQL and return the number removed."""
    # Lazy import to avoid loading DB machinery at module import time
    from survey_db.repository import SqlSessionStore

    store = SqlSessionStore.from_url(settings.database_url)
    try:
        removed = await store.purge_expired()
        logger.info("Cleanup complete: removed=%d", removed)
        return removed
    finally:
        await store.close()


def cli(argv: list[str] | None = None) -> None:
    """Console-script entry point: ``survey-engine``."""
    settings = load_settings()

    parser = argparse.ArgumentParser(
        prog="survey-engine",
        description="Validate survey documents and maintain the session store.",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: $SURVEY_LOG_LEVEL or INFO)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    validate = sub.add_parser("validate", help="Load and validate a configuration document")
    validate.add_argument(
        "path",
        nargs="?",
        default=settings.catalog_path,
        help=f"Document to validate (default: {default_catalog_path()})",
    )
    validate.add_argument(
        "--lenient",
        action="store_true",
        default=not settings.strict_conditions,
        help="Accept unrecognised condition shapes as always-true",
    )

    sub.add_parser("cleanup", help="Delete expired sessions from PostgreSQL")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    if args.command == "validate":
        sys.exit(run_validate(args.path, strict_conditions=not args.lenient))

    removed = asyncio.run(run_cleanup(settings))
    print(f"Expired sessions removed: {removed}")
    sys.exit(0)
