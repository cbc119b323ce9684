"""Shared test fixtures.

Storage-backed tests run against a fresh SQLite file per test through
aiosqlite; Redis is never initialized, so change notifications and rate
limiting are skipped.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from warungsoal.config import get_settings
from warungsoal.database import close_db, get_engine, get_session_factory, init_db
from warungsoal.db.base import Base
from warungsoal.db.models import Profile
from warungsoal.progression.season_service import ensure_active_season

ProfileFactory = Callable[..., Awaitable[Profile]]


@pytest_asyncio.fixture
async def session_factory(tmp_path, monkeypatch) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh schema on a temp SQLite file with season 1 open."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'warungsoal.db'}"
    monkeypatch.setenv("WS_DATABASE_URL", url)
    monkeypatch.setenv("WS_AWARD_RETRY_BACKOFF_SECONDS", "0.01")
    get_settings.cache_clear()

    await init_db(url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = get_session_factory()
    async with factory() as session:
        await ensure_active_season(session)

    yield factory

    await close_db()
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """A single session on the test database."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def make_profile(session_factory: async_sessionmaker[AsyncSession]) -> ProfileFactory:
    """Factory that persists a profile and returns it."""

    async def _make(display_name: str | None = None, role: str = "user") -> Profile:
        profile = Profile(
            id=uuid.uuid4(),
            display_name=display_name or f"user-{uuid.uuid4().hex[:6]}",
            role=role,
        )
        async with session_factory() as session:
            session.add(profile)
            await session.commit()
        return profile

    return _make


@pytest_asyncio.fixture
async def client(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client over the ASGI app (lifespan not run; DB set up by fixtures)."""
    from warungsoal.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

