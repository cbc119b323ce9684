"""Process-wide Redis client for pub/sub notifications and rate limiting.

Redis is optional for this service: awards, seasons and leaderboards read
and write the relational store only. The API initializes the client at
startup; tests and tools that never call ``init_redis`` get ``None`` from
``get_optional_redis`` and skip notifications.
"""

import redis.asyncio as redis

_client: redis.Redis | None = None


async def init_redis(url: str, *, max_connections: int = 20) -> None:
    """Create the shared client from a ``redis://`` URL."""
    global _client  # noqa: PLW0603
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=max_connections,
        health_check_interval=30,
    )


async def close_redis() -> None:
    """Close the shared client and its connection pool."""
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis() -> redis.Redis:
    """Shared client; RuntimeError when ``init_redis`` was never called."""
    if _client is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _client


def get_optional_redis() -> redis.Redis | None:
    """Shared client, or None for best-effort callers when Redis is off."""
    return _client
