"""Pydantic request/response models for progression and season endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from warungsoal.progression.rewards import Action, Difficulty

# --- Awards ---


class AwardRequest(BaseModel):
    user_id: uuid.UUID
    action: Action
    difficulty: Difficulty
    idempotency_key: str | None = Field(None, min_length=1, max_length=256)
    source_id: str | None = Field(None, max_length=128)


class UserStatsResponse(BaseModel):
    user_id: uuid.UUID
    level: int
    exp_points: int
    seasonal_exp: int
    total_exp: int
    trophy_rank: str
    questions_asked: int
    questions_answered: int
    season: int

    model_config = {"from_attributes": True}


class LevelProgress(BaseModel):
    level: int
    exp_into_level: int
    exp_for_level: int
    next_level: int
    next_level_exp: int


class StatsDetailResponse(BaseModel):
    stats: UserStatsResponse
    level_progress: LevelProgress
    next_trophy_exp: int | None = None


# --- Leaderboard ---


class LeaderboardEntryResponse(BaseModel):
    rank: int
    user_id: uuid.UUID
    display_name: str
    avatar_url: str | None = None
    seasonal_exp: int
    total_exp: int
    level: int
    questions_answered: int
    trophy_rank: str
    is_current_user: bool = False


class LeaderboardResponse(BaseModel):
    scope: str
    entries: list[LeaderboardEntryResponse]
    total: int


class UserRankResponse(BaseModel):
    scope: str
    rank: int
    score: int
    total: int
    percentile: float


# --- Reference tables ---


class LevelEntry(BaseModel):
    level: int
    exp_required: int
    cumulative: int


class AllLevelsResponse(BaseModel):
    levels: list[LevelEntry]


class TrophyEntry(BaseModel):
    tier: str
    threshold: int
    next_threshold: int | None = None


class AllTrophiesResponse(BaseModel):
    trophies: list[TrophyEntry]


class RewardEntry(BaseModel):
    action: str
    easy: int
    medium: int
    hard: int


class RewardTableResponse(BaseModel):
    rewards: list[RewardEntry]


# --- Seasons ---


class SeasonResponse(BaseModel):
    season_number: int
    start_date: datetime
    end_date: datetime
    is_active: bool
    progress_percent: float
    days_remaining: int


class SeasonRolloverResponse(BaseModel):
    rolled_over: bool
    season: SeasonResponse
