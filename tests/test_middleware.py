"""Middleware tests — request ID, rate limiting, CORS, error rendering."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from warungsoal.middleware import rate_limit


def _fake_redis(count: int | None = None, error: Exception | None = None) -> MagicMock:
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[count, True], side_effect=error)
    redis = MagicMock()
    redis.pipeline.return_value = pipe
    return redis


@pytest.mark.asyncio
async def test_request_id_generated(client: AsyncClient) -> None:
    """Request ID is auto-generated when not provided."""
    response = await client.get("/health")
    assert len(response.headers["x-request-id"]) == 36


@pytest.mark.asyncio
async def test_no_redis_passes_through(client: AsyncClient) -> None:
    """Without Redis the limiter lets requests through and adds no headers."""
    response = await client.get("/api/v1/progression/rewards")
    assert response.status_code == 200
    assert "x-ratelimit-limit" not in response.headers


@pytest.mark.asyncio
async def test_rate_limit_headers(client: AsyncClient, monkeypatch) -> None:
    monkeypatch.setattr(rate_limit, "get_redis", lambda: _fake_redis(count=1))
    response = await client.get("/api/v1/progression/rewards")
    assert response.status_code == 200
    assert response.headers["x-ratelimit-limit"] == "100"
    assert response.headers["x-ratelimit-remaining"] == "99"


@pytest.mark.asyncio
async def test_rate_limit_blocks_excess(client: AsyncClient, monkeypatch) -> None:
    """101st request in a window returns 429 with Retry-After."""
    monkeypatch.setattr(rate_limit, "get_redis", lambda: _fake_redis(count=101))
    response = await client.get("/api/v1/progression/rewards")
    assert response.status_code == 429
    assert "retry-after" in response.headers
    assert response.json()["code"] == "rate_limited"


@pytest.mark.asyncio
async def test_redis_error_passes_through(client: AsyncClient, monkeypatch) -> None:
    monkeypatch.setattr(rate_limit, "get_redis", lambda: _fake_redis(error=RedisConnectionError("down")))
    response = await client.get("/api/v1/progression/rewards")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_health_exempt(client: AsyncClient, monkeypatch) -> None:
    monkeypatch.setattr(rate_limit, "get_redis", lambda: _fake_redis(count=10_000))
    response = await client.get("/health")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_cors_preflight(client: AsyncClient) -> None:
    """CORS preflight returns access-control-allow-origin for a configured origin."""
    response = await client.options(
        "/health",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "GET",
        },
    )
    assert "access-control-allow-origin" in response.headers


@pytest.mark.asyncio
async def test_domain_error_shape(client: AsyncClient) -> None:
    response = await client.get("/api/v1/progression/stats/00000000-0000-0000-0000-000000000000")
    assert response.status_code == 404
    assert response.json() == {"detail": "User not found", "code": "not_found"}
