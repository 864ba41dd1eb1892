"""
Tests for the application lifespan: the database opens on startup and is
released, with the Redis client, on shutdown.
"""

from unittest.mock import AsyncMock

import pytest

from formapro.common.rate_limiter import RateLimiter
from formapro.config import settings
from formapro.database.init_db import get_session_factory
from formapro.main import create_app

pytestmark = pytest.mark.asyncio


async def test_lifespan_opens_and_closes_the_database(monkeypatch):
    monkeypatch.setattr(settings, "DATABASE_URL", "sqlite+aiosqlite://")
    redis = AsyncMock()
    app = create_app(limiter=RateLimiter(redis))

    async with app.router.lifespan_context(app):
        assert get_session_factory() is not None

    with pytest.raises(RuntimeError):
        get_session_factory()
    redis.aclose.assert_awaited_once()
