"""Shared fixtures: in-memory Redis and an API client wired to it."""

from datetime import date

import fakeredis
import pytest
from httpx import ASGITransport, AsyncClient

from leaderboard.main import app
from leaderboard.routes.deps import get_clock

TODAY = date(2024, 3, 1)  # Friday


@pytest.fixture
async def store():
    """Fresh in-memory sorted-set store per test."""
    client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
async def client(store):
    """Create test client with Redis and the clock replaced."""
    app.state.redis = store
    app.dependency_overrides[get_clock] = lambda: (lambda: TODAY)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
    app.state.redis = None
