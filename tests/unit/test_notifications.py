"""Change notifier — best-effort Redis publishing."""

import json
import uuid
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from warungsoal.db.models import UserStats
from warungsoal.progression.notifications import (
    LEVEL_UP_CHANNEL,
    STATS_CHANNEL,
    publish_level_up,
    publish_season_reset,
    publish_stats_changed,
)

pytestmark = pytest.mark.asyncio


def _stats() -> UserStats:
    return UserStats(
        user_id=uuid.uuid4(),
        level=2,
        exp_points=150,
        seasonal_exp=150,
        total_exp=150,
        trophy_rank="bronze",
        questions_asked=1,
        questions_answered=0,
        season=1,
    )


class TestPublish:
    async def test_stats_payload(self):
        redis = AsyncMock()
        stats = _stats()
        await publish_stats_changed(redis, stats, reason="question_asked", amount=150)
        channel, raw = redis.publish.await_args.args
        payload = json.loads(raw)
        assert channel == STATS_CHANNEL
        assert payload["user_id"] == str(stats.user_id)
        assert payload["total_exp"] == 150
        assert payload["amount"] == 150

    async def test_level_up(self):
        redis = AsyncMock()
        await publish_level_up(redis, "u-1", 1, 2)
        channel, raw = redis.publish.await_args.args
        assert channel == LEVEL_UP_CHANNEL
        assert json.loads(raw) == {"user_id": "u-1", "old_level": 1, "new_level": 2}

    async def test_season_reset(self):
        redis = AsyncMock()
        await publish_season_reset(redis, 3, 4)
        payload = json.loads(redis.publish.await_args.args[1])
        assert payload["closed_season"] == 3
        assert payload["opened_season"] == 4

    async def test_no_redis_is_noop(self):
        await publish_stats_changed(None, _stats(), reason="x")

    async def test_failure_is_swallowed(self):
        redis = AsyncMock()
        redis.publish.side_effect = RedisConnectionError("down")
        await publish_level_up(redis, "u-1", 1, 2)
        redis.publish.assert_awaited_once()
