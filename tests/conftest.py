"""Pytest configuration and fixtures for SiteProof tests.

Provides a clean environment per test and an in-memory database session.
"""

from __future__ import annotations

import os

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Fallback for config reads outside the per-test fixture
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from siteproof.actions.itp_templates import create_template  # noqa: E402
from siteproof.actions.lots import create_lot  # noqa: E402
from siteproof.actions.projects import create_project  # noqa: E402
from siteproof.config import reset_config  # noqa: E402
from siteproof.db.models import Base  # noqa: E402
from siteproof.web import auth as web_auth  # noqa: E402

TEST_USER = {
    "user_id": "11111111-1111-1111-1111-111111111111",
    "username": "inspector@example.com",
    "email": "inspector@example.com",
    "role": "inspector",
    "org_id": "test-org",
}


@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """Known environment and fresh config / session store for every test."""
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("DEFAULT_ORG_ID", "test-org")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    for name in ("ENVIRONMENT", "REDIS_URL", "AUTH_DISABLED", "ENABLE_DIAGNOSTICS"):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    web_auth._memory_sessions.clear()
    yield
    reset_config()
    web_auth._memory_sessions.clear()


@pytest.fixture
def test_user() -> dict:
    """Session data for a logged-in inspector."""
    return dict(TEST_USER)


@pytest_asyncio.fixture()
async def db_session() -> AsyncSession:
    """Create in-memory database for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()


@pytest_asyncio.fixture()
async def project(db_session: AsyncSession) -> dict:
    """A saved project."""
    result = await create_project(db_session, {"name": "Harbour Bridge", "projectNumber": "HB-01"}, TEST_USER)
    assert result.success, result.error
    await db_session.commit()
    return result.data


@pytest_asyncio.fixture()
async def template(db_session: AsyncSession) -> dict:
    """A saved ITP template with three items."""
    result = await create_template(
        db_session,
        {
            "name": "Concrete Pour",
            "category": "Concrete",
            "items": [
                {"itemNumber": "1", "description": "Formwork checked"},
                {"itemNumber": "2", "description": "Cover to reinforcement", "itemType": "numeric"},
                {"itemNumber": "3", "description": "Slump recorded", "itemType": "text"},
            ],
        },
        TEST_USER,
    )
    assert result.success, result.error
    await db_session.commit()
    return result.data


@pytest_asyncio.fixture()
async def lot(db_session: AsyncSession, project: dict) -> dict:
    """A saved lot in ``project`` with no ITP assigned."""
    result = await create_lot(db_session, {"projectId": project["id"], "lotNumber": "L-001"}, TEST_USER)
    assert result.success, result.error
    await db_session.commit()
    return result.data
