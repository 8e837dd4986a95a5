"""Startup validation for SiteProof.

Fail fast & loud when configuration, database connectivity or the schema is
not usable, instead of failing on the first request.
"""

from __future__ import annotations

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from siteproof.config import get_config
from siteproof.db import repository
from siteproof.diagnostics.checks import existing_tables

logger = structlog.get_logger()


class StartupValidationError(Exception):
    """Raised when startup validation fails."""
    pass


def validate_config() -> None:
    """Load configuration.

    Raises:
        StartupValidationError: If required environment variables are missing
    """
    try:
        config = get_config()
    except KeyError as e:
        raise StartupValidationError(f"Configuration invalid: {e}") from e

    if config.auth.auth_disabled:
        if config.is_production:
            raise StartupValidationError("AUTH_DISABLED must not be set in production")
        logger.warning("auth_disabled", detail="All requests run as the default user")

    if not config.auth.redis_url:
        logger.info("session_store", backend="memory")

    logger.info(
        "config_loaded",
        environment=config.environment,
        org_id=config.org_id,
        diagnostics=config.enable_diagnostics,
    )


async def validate_database(session: AsyncSession) -> None:
    """Check connectivity and that every table exists.

    Raises:
        StartupValidationError: If the database is unreachable or tables are missing
    """
    try:
        present = await existing_tables(session)
    except (SQLAlchemyError, OSError) as e:
        raise StartupValidationError(
            f"Database connection failed: {e}. Check DATABASE_URL."
        ) from e

    missing = sorted(set(repository.TABLES) - present)
    if missing:
        raise StartupValidationError(
            f"Database schema incomplete, missing tables: {', '.join(missing)}. "
            "Run `siteproof init` or the migration scripts."
        )
    logger.info("database_ok", tables=len(present))


async def run_all_validations(session: AsyncSession | None = None) -> None:
    """Run all startup validations.

    Raises:
        StartupValidationError: If any critical validation fails
    """
    logger.info("startup_validation_started")
    validate_config()

    if session is not None:
        await validate_database(session)
    else:
        logger.warning("startup_validation_skipped_db", detail="No database session provided")

    logger.info("startup_validation_passed")
