from datetime import date, datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from unittest.mock import AsyncMock

from whichmovie.core.security import create_access_token
from whichmovie.dependencies import get_cache, get_clock, get_db_pool, get_http_client, get_redis
from whichmovie.limiter import limiter
from whichmovie.main import app
from whichmovie.services.user_movie_cache import UserMovieCache


class ManualClock:
    """Clock that only moves when told to"""

    def __init__(self, start: datetime = datetime(2026, 3, 14, 20, 0, tzinfo=timezone.utc)):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def today(self) -> date:
        return self.current.date()

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def cache(clock):
    return UserMovieCache(clock, ttl_s=300, max_entries=1000)


@pytest.fixture
def mock_db_pool():
    pool = AsyncMock()
    # Nothing stored by default
    pool.fetchrow.return_value = None
    pool.fetch.return_value = []
    # Mock connection context manager
    conn = AsyncMock()
    pool.acquire.return_value.__aenter__.return_value = conn
    return pool


@pytest.fixture
def mock_redis():
    mock = AsyncMock()
    mock.get.return_value = None  # Cache miss by default
    return mock


@pytest.fixture
def mock_http_client():
    return AsyncMock()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token('user-1')}"}


@pytest_asyncio.fixture
async def client(mock_db_pool, mock_redis, mock_http_client, cache, clock):
    # Override dependencies
    app.dependency_overrides[get_db_pool] = lambda: mock_db_pool
    app.dependency_overrides[get_redis] = lambda: mock_redis
    app.dependency_overrides[get_http_client] = lambda: mock_http_client
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_clock] = lambda: clock

    transport = ASGITransport(app=app)
    limiter.enabled = False
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    limiter.enabled = True

    app.dependency_overrides = {}
