from datetime import timedelta

import pytest
from httpx import AsyncClient

from whichmovie.core.security import create_access_token


@pytest.mark.asyncio
async def test_health_needs_no_token(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_missing_token_is_401(client: AsyncClient):
    response = await client.get("/api/preferences")

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"
    body = response.json()
    assert body["error"] == "AuthenticationRequiredError"
    assert body["request_id"]


@pytest.mark.asyncio
async def test_invalid_token_is_401(client: AsyncClient):
    response = await client.get("/api/movies", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_expired_token_is_401(client: AsyncClient):
    token = create_access_token("user-1", expires_delta=timedelta(minutes=-5))
    response = await client.get("/api/movies", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
