"""Season worker — scheduled rollover job."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import update

from warungsoal.db.models import Season
from warungsoal.progression.season_service import get_active_season
from warungsoal.workers.season_worker import _check_minutes, check_season_rollover


class TestCronMinutes:
    def test_every_fifteen(self):
        assert _check_minutes(15) == {0, 15, 30, 45}

    def test_clamped(self):
        assert _check_minutes(0) == set(range(60))
        assert _check_minutes(90) == {0}


@pytest.mark.asyncio
class TestCheckSeasonRollover:
    async def test_not_due(self, db):
        pubsub = AsyncMock()
        assert await check_season_rollover({"pubsub": pubsub}) is None
        pubsub.publish.assert_not_awaited()

    async def test_due_rolls_over_and_publishes(self, db):
        season = await get_active_season(db)
        await db.execute(
            update(Season)
            .where(Season.season_number == season.season_number)
            .values(end_date=season.start_date - timedelta(days=1))
        )
        await db.commit()

        pubsub = AsyncMock()
        assert await check_season_rollover({"pubsub": pubsub}) == 2
        pubsub.publish.assert_awaited_once()
