"""
Tests for the application lifespan resource handling.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from intromatch.main import app, lifespan


def _pool_class():
    pool_class = MagicMock()
    pool = pool_class.return_value
    pool.initialize = AsyncMock()
    pool.close = AsyncMock()
    return pool_class, pool


@pytest.mark.asyncio
async def test_lifespan_closes_pool_and_client_on_shutdown():
    pool_class, pool = _pool_class()
    explanations = MagicMock(enabled=False)
    explanations.close = AsyncMock()

    with (
        patch("intromatch.main.settings.SUPABASE_DB_URL", "postgresql://db"),
        patch("intromatch.main.DatabasePoolManager", pool_class),
        patch("intromatch.main.ExplanationService", return_value=explanations),
    ):
        async with lifespan(app):
            assert app.state.db_pool is pool
            assert app.state.explanation_service is explanations

    explanations.close.assert_awaited_once()
    pool.close.assert_awaited_once()
    assert app.state.db_pool is None


@pytest.mark.asyncio
async def test_lifespan_closes_pool_when_explanation_client_fails():
    pool_class, pool = _pool_class()

    with (
        patch("intromatch.main.settings.SUPABASE_DB_URL", "postgresql://db"),
        patch("intromatch.main.DatabasePoolManager", pool_class),
        patch("intromatch.main.ExplanationService", side_effect=RuntimeError("bad api key")),
    ):
        with pytest.raises(RuntimeError, match="bad api key"):
            async with lifespan(app):
                pass

    pool.initialize.assert_awaited_once()
    pool.close.assert_awaited_once()
    assert app.state.db_pool is None
