"""Season arq worker — periodic rollover check.

Run with: arq warungsoal.workers.season_worker.WorkerSettings
"""

from __future__ import annotations

import redis.asyncio as aioredis
import structlog
from arq import cron
from arq.connections import RedisSettings

from warungsoal.config import get_settings
from warungsoal.database import close_db, get_session_factory, init_db
from warungsoal.exceptions import WarungSoalError
from warungsoal.middleware.logging import setup_logging
from warungsoal.progression.notifications import publish_season_reset
from warungsoal.progression.season_service import rollover_if_due

logger = structlog.get_logger()


async def startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize DB and the pub/sub Redis client on worker startup."""
    settings = get_settings()
    setup_logging(settings)
    await init_db(settings.database_url)
    ctx["pubsub"] = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=5,
    )
    logger.info("season_worker_started", check_interval_minutes=settings.season_check_interval_minutes)


async def shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Clean up on worker shutdown."""
    client: aioredis.Redis | None = ctx.get("pubsub")
    if client:
        await client.aclose()
    await close_db()
    logger.info("season_worker_stopped")


async def check_season_rollover(ctx: dict) -> int | None:  # type: ignore[type-arg]
    """Close the active season if its end date has passed.

    Returns the newly opened season number, or None when nothing changed.
    Safe to run from several workers at once: the reset takes an exclusive
    lock on the season row and re-checks the end date under it.
    """
    async with get_session_factory()() as db:
        try:
            season = await rollover_if_due(db)
        except WarungSoalError as exc:
            logger.error("season_rollover_failed", code=exc.code, error=exc.message)
            raise

    if season is None:
        logger.debug("season_rollover_not_due")
        return None

    await publish_season_reset(ctx.get("pubsub"), season.season_number - 1, season.season_number)
    return season.season_number


def _check_minutes(interval: int) -> set[int]:
    """Minute marks for a cron firing every ``interval`` minutes."""
    interval = min(max(1, interval), 60)
    return set(range(0, 60, interval))


class WorkerSettings:
    """arq worker settings for the season scheduler."""

    functions = [check_season_rollover]
    cron_jobs = [
        cron(
            check_season_rollover,
            minute=_check_minutes(get_settings().season_check_interval_minutes),
            run_at_startup=True,
            unique=True,
        ),
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().redis_url)
    max_jobs = 2
    job_timeout = 300
    allow_abort_jobs = True
