"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

from warungsoal.redis_client import get_optional_redis


async def get_redis_dep() -> AsyncGenerator[object, None]:
    """Yield the Redis client (or None) as a FastAPI dependency.

    Stats change notifications are best-effort, so routes still work
    when Redis was never initialized.
    """
    yield get_optional_redis()
