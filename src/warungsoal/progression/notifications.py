"""Redis pub/sub change events for live leaderboards and level-up toasts.

Best-effort: a failed publish is logged and dropped. The committed stats
row is the source of truth; subscribers refetch on the next event.
"""

from __future__ import annotations

import json

import structlog

from warungsoal.db.models import UserStats

logger = structlog.get_logger()

STATS_CHANNEL = "pubsub:user_stats"
LEVEL_UP_CHANNEL = "pubsub:level_up"


async def _publish(redis: object, channel: str, payload: dict) -> None:
    if redis is None:
        return
    try:
        await redis.publish(channel, json.dumps(payload))  # type: ignore[attr-defined]
    except Exception:
        logger.warning("pubsub_publish_failed", channel=channel, exc_info=True)


async def publish_stats_changed(
    redis: object,
    stats: UserStats,
    *,
    reason: str,
    amount: int = 0,
) -> None:
    """Announce that a UserStats row was written."""
    await _publish(redis, STATS_CHANNEL, {
        "user_id": str(stats.user_id),
        "reason": reason,
        "amount": amount,
        "level": stats.level,
        "exp_points": stats.exp_points,
        "seasonal_exp": stats.seasonal_exp,
        "total_exp": stats.total_exp,
        "trophy_rank": stats.trophy_rank,
        "season": stats.season,
    })


async def publish_level_up(redis: object, user_id: object, old_level: int, new_level: int) -> None:
    """Announce a level increase."""
    await _publish(redis, LEVEL_UP_CHANNEL, {
        "user_id": str(user_id),
        "old_level": old_level,
        "new_level": new_level,
    })


async def publish_season_reset(redis: object, closed_season: int, opened_season: int) -> None:
    """Announce a season boundary; leaderboards refetch everything."""
    await _publish(redis, STATS_CHANNEL, {
        "reason": "season_reset",
        "closed_season": closed_season,
        "opened_season": opened_season,
    })
