"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from warungsoal.config import get_settings
from warungsoal.database import close_db, get_session_factory, init_db
from warungsoal.health.router import router as health_router
from warungsoal.middleware import setup_middleware
from warungsoal.progression.router import router as progression_router
from warungsoal.progression.season_service import ensure_active_season
from warungsoal.qa.router import router as qa_router
from warungsoal.redis_client import close_redis, init_redis

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    # Open season 1 on a fresh database (idempotent)
    try:
        async with get_session_factory()() as db:
            season = await ensure_active_season(db)
            logger.info("active_season", season_number=season.season_number)
    except SQLAlchemyError:
        logger.warning("season_bootstrap_failed", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="WarungSoal Progression API",
        description="EXP, levels, trophies, seasons and leaderboards for the WarungSoal Q&A platform",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(progression_router)
    app.include_router(qa_router)

    return app


app = create_app()
