"""Fixtures shared by the route tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest


@pytest.fixture
def mock_db_session():
    """Async context manager standing in for get_session()."""
    async_cm = AsyncMock()
    async_cm.__aenter__.return_value = MagicMock()
    async_cm.__aexit__.return_value = None
    return async_cm
