"""Progression and season API endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from warungsoal.config import get_settings
from warungsoal.database import get_session
from warungsoal.db.models import Season
from warungsoal.dependencies import get_redis_dep
from warungsoal.progression.leaderboard_service import SCOPES, get_leaderboard, get_user_rank
from warungsoal.progression.levels import level_progress, level_table
from warungsoal.progression.notifications import publish_season_reset
from warungsoal.progression.rewards import REWARD_TABLE, Difficulty
from warungsoal.progression.schemas import (
    AllLevelsResponse,
    AllTrophiesResponse,
    AwardRequest,
    LeaderboardEntryResponse,
    LeaderboardResponse,
    LevelEntry,
    LevelProgress,
    RewardEntry,
    RewardTableResponse,
    SeasonResponse,
    SeasonRolloverResponse,
    StatsDetailResponse,
    TrophyEntry,
    UserRankResponse,
    UserStatsResponse,
)
from warungsoal.progression.season_service import (
    require_active_season,
    reset_season,
    rollover_if_due,
    season_progress,
)
from warungsoal.progression.service import award_experience, get_stats
from warungsoal.progression.trophies import TROPHY_THRESHOLDS, next_threshold

router = APIRouter(prefix="/api/v1", tags=["Progression"])

_SCOPE_PATTERN = "^(" + "|".join(SCOPES) + ")$"


def _season_response(season: Season) -> SeasonResponse:
    progress = season_progress(season)
    return SeasonResponse(
        season_number=season.season_number,
        start_date=season.start_date,
        end_date=season.end_date,
        is_active=season.is_active,
        progress_percent=progress["progress_percent"],
        days_remaining=progress["days_remaining"],
    )


# ── Awards & stats ──


@router.post("/progression/awards", response_model=UserStatsResponse)
async def create_award(
    body: AwardRequest,
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Award EXP for a qualifying event. Safe to retry with an idempotency key."""
    stats = await award_experience(
        db,
        redis,
        body.user_id,
        body.action,
        body.difficulty,
        idempotency_key=body.idempotency_key,
        source_id=body.source_id,
    )
    return UserStatsResponse.model_validate(stats)


@router.get("/progression/stats/{user_id}", response_model=StatsDetailResponse)
async def read_stats(user_id: uuid.UUID, db: AsyncSession = Depends(get_session)):
    """Stats with level progress and the next trophy threshold."""
    stats = await get_stats(db, user_id)
    return StatsDetailResponse(
        stats=UserStatsResponse.model_validate(stats),
        level_progress=LevelProgress(**level_progress(stats.total_exp)),
        next_trophy_exp=next_threshold(stats.trophy_rank),
    )


# ── Leaderboard ──


@router.get("/progression/leaderboard", response_model=LeaderboardResponse)
async def read_leaderboard(
    scope: str = Query("seasonal", pattern=_SCOPE_PATTERN),
    limit: int | None = Query(None, ge=1),
    current_user_id: uuid.UUID | None = Query(None),
    db: AsyncSession = Depends(get_session),
):
    """Seasonal or all-time ranking."""
    settings = get_settings()
    limit = min(limit or settings.leaderboard_default_limit, settings.leaderboard_max_limit)
    data = await get_leaderboard(db, scope, limit, current_user_id=current_user_id)
    return LeaderboardResponse(
        scope=data["scope"],
        entries=[LeaderboardEntryResponse(**e) for e in data["entries"]],
        total=data["total"],
    )


@router.get("/progression/leaderboard/{user_id}/rank", response_model=UserRankResponse)
async def read_user_rank(
    user_id: uuid.UUID,
    scope: str = Query("seasonal", pattern=_SCOPE_PATTERN),
    db: AsyncSession = Depends(get_session),
):
    """A user's rank and percentile."""
    return UserRankResponse(**await get_user_rank(db, scope, user_id))


# ── Reference tables ──


@router.get("/progression/levels", response_model=AllLevelsResponse)
async def list_levels(max_level: int = Query(20, ge=1, le=100)):
    """Level thresholds."""
    return AllLevelsResponse(levels=[LevelEntry(**row) for row in level_table(max_level)])


@router.get("/progression/trophies", response_model=AllTrophiesResponse)
async def list_trophies():
    """Trophy tiers and thresholds."""
    return AllTrophiesResponse(
        trophies=[
            TrophyEntry(tier=tier.value, threshold=threshold, next_threshold=next_threshold(tier))
            for tier, threshold in TROPHY_THRESHOLDS
        ]
    )


@router.get("/progression/rewards", response_model=RewardTableResponse)
async def list_rewards():
    """Canonical EXP reward table."""
    return RewardTableResponse(
        rewards=[
            RewardEntry(
                action=action.value,
                easy=row[Difficulty.EASY],
                medium=row[Difficulty.MEDIUM],
                hard=row[Difficulty.HARD],
            )
            for action, row in REWARD_TABLE.items()
        ]
    )


# ── Seasons ──


@router.get("/seasons/current", response_model=SeasonResponse)
async def read_current_season(db: AsyncSession = Depends(get_session)):
    """Active season with progress banner data."""
    return _season_response(await require_active_season(db))


@router.post("/seasons/reset", response_model=SeasonResponse)
async def force_season_reset(
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Operator: close the active season now and open the next."""
    season = await reset_season(db)
    await publish_season_reset(redis, season.season_number - 1, season.season_number)
    return _season_response(season)


@router.post("/seasons/rollover", response_model=SeasonRolloverResponse)
async def season_rollover(
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Reset only if the active season has ended."""
    season = await rollover_if_due(db)
    if season is None:
        return SeasonRolloverResponse(
            rolled_over=False,
            season=_season_response(await require_active_season(db)),
        )
    await publish_season_reset(redis, season.season_number - 1, season.season_number)
    return SeasonRolloverResponse(rolled_over=True, season=_season_response(season))
