"""Integration tests for startup validation."""

from __future__ import annotations

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from siteproof.config import reset_config
from siteproof.startup_validation import (
    StartupValidationError,
    run_all_validations,
    validate_config,
    validate_database,
)


class TestValidateConfig:
    def test_development_defaults(self):
        validate_config()

    def test_missing_database_url(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL")
        reset_config()

        with pytest.raises(StartupValidationError, match="Configuration invalid"):
            validate_config()

    def test_auth_disabled_refused_in_production(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("AUTH_DISABLED", "true")
        reset_config()

        with pytest.raises(StartupValidationError, match="AUTH_DISABLED"):
            validate_config()


class TestValidateDatabase:
    @pytest.mark.asyncio
    async def test_complete_schema(self, db_session: AsyncSession):
        await validate_database(db_session)

    @pytest.mark.asyncio
    async def test_missing_table(self, db_session: AsyncSession):
        await db_session.execute(text("DROP TABLE daily_materials"))

        with pytest.raises(StartupValidationError, match="missing tables: daily_materials"):
            await validate_database(db_session)

    @pytest.mark.asyncio
    async def test_run_all_without_session(self):
        await run_all_validations()
