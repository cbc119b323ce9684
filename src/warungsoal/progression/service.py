"""Progression service — award experience for a qualifying event.

The service is a pure ledger: it does not decide whether an award is
legitimate (self-approval and similar rules live in the Q&A workflow).
It validates the event, checks the user exists, then applies the reward
through the stats store in a single transaction, retrying a bounded number
of times when that transaction loses a race.
"""

from __future__ import annotations

import asyncio
import uuid

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from warungsoal.config import get_settings
from warungsoal.db.models import ExpLedger, Profile, UserStats
from warungsoal.exceptions import ConcurrencyConflict, IdempotencyKeyReused, NotFound, StoreUnavailable
from warungsoal.progression import stats_store
from warungsoal.progression.levels import level_from_total_exp
from warungsoal.progression.notifications import publish_level_up, publish_stats_changed
from warungsoal.progression.rewards import (
    Action,
    Difficulty,
    counter_for,
    parse_action,
    parse_difficulty,
    reward_for,
)
from warungsoal.progression.season_service import get_active_season, require_active_season
from warungsoal.progression.trophies import TrophyRank

logger = structlog.get_logger()

_STORE_ERRORS = (OperationalError, InterfaceError, OSError)


async def _require_profile(db: AsyncSession, user_id: uuid.UUID) -> Profile:
    result = await db.execute(select(Profile).where(Profile.id == user_id))
    profile = result.scalar_one_or_none()
    if profile is None:
        raise NotFound("User not found", user_id=str(user_id))
    return profile


async def _award_once(
    db: AsyncSession,
    user_id: uuid.UUID,
    action: Action,
    difficulty: Difficulty,
    amount: int,
    idempotency_key: str | None,
    source_id: str | None,
) -> tuple[UserStats, bool]:
    """One attempt. Returns (stats, awarded); awarded is False on replay."""
    season = await require_active_season(db, lock="share")

    if idempotency_key is not None:
        existing = await db.execute(
            select(ExpLedger).where(ExpLedger.idempotency_key == idempotency_key)
        )
        entry = existing.scalar_one_or_none()
        if entry is not None:
            if (entry.user_id, entry.action, entry.difficulty) != (user_id, action.value, difficulty.value):
                raise IdempotencyKeyReused(
                    "Idempotency key already used for a different award",
                    idempotency_key=idempotency_key,
                    user_id=str(user_id),
                )
            stats = await stats_store.get_stats(db, user_id)
            if stats is None:  # pragma: no cover - ledger row implies a stats row
                stats = await stats_store.get_or_create(db, user_id, season.season_number)
            return stats, False

    await stats_store.get_or_create(db, user_id, season.season_number)
    stats = await stats_store.apply_delta(
        db,
        user_id,
        amount,
        counter_for(action),
        season=season.season_number,
    )
    db.add(ExpLedger(
        user_id=user_id,
        action=action.value,
        difficulty=difficulty.value,
        amount=amount,
        season=season.season_number,
        source_id=source_id,
        idempotency_key=idempotency_key,
    ))
    try:
        await db.flush()
    except IntegrityError as exc:
        # Same idempotency key committed by a concurrent request
        raise ConcurrencyConflict("Duplicate award in flight", user_id=str(user_id)) from exc
    return stats, True


async def award_experience(
    db: AsyncSession,
    redis: object,
    user_id: uuid.UUID,
    action: Action | str,
    difficulty: Difficulty | str,
    *,
    idempotency_key: str | None = None,
    source_id: str | None = None,
) -> UserStats:
    """Award EXP for one event and return the committed stats.

    Raises:
        InvalidAction: action or difficulty outside the enumerated domain.
        NotFound: the user (or an active season) does not exist.
        ConcurrencyConflict: still losing races after the bounded retries.
        StoreUnavailable: the database could not be reached.
        IdempotencyKeyReused: the key was already spent on a different award.

    Either the whole award commits or nothing changes. The session must not
    carry other uncommitted work, since a lost race rolls it back.
    """
    action = parse_action(action)
    difficulty = parse_difficulty(difficulty)
    amount = reward_for(action, difficulty)
    settings = get_settings()
    max_attempts = max(1, settings.award_max_attempts)

    attempt = 0
    while True:
        attempt += 1
        try:
            await _require_profile(db, user_id)
            stats, awarded = await _award_once(
                db, user_id, action, difficulty, amount, idempotency_key, source_id,
            )
            await db.commit()
        except ConcurrencyConflict:
            await db.rollback()
            if attempt >= max_attempts:
                logger.warning(
                    "exp_award_conflict",
                    user_id=str(user_id),
                    action=action.value,
                    attempts=attempt,
                )
                raise
            await asyncio.sleep(settings.award_retry_backoff_seconds * 2 ** (attempt - 1))
            continue
        except _STORE_ERRORS as exc:
            await db.rollback()
            logger.error("exp_award_store_unavailable", user_id=str(user_id), error=str(exc))
            raise StoreUnavailable("Progression store unavailable") from exc
        except Exception:
            await db.rollback()
            raise
        break

    if not awarded:
        logger.info("exp_award_replayed", user_id=str(user_id), idempotency_key=idempotency_key)
        return stats

    logger.info(
        "exp_awarded",
        user_id=str(user_id),
        action=action.value,
        difficulty=difficulty.value,
        amount=amount,
        total_exp=stats.total_exp,
        seasonal_exp=stats.seasonal_exp,
        level=stats.level,
        trophy_rank=stats.trophy_rank,
        attempts=attempt,
    )

    await publish_stats_changed(redis, stats, reason=action.value, amount=amount)
    old_level = level_from_total_exp(stats.total_exp - amount)
    if stats.level > old_level:
        await publish_level_up(redis, user_id, old_level, stats.level)

    return stats


async def get_stats(db: AsyncSession, user_id: uuid.UUID) -> UserStats:
    """Read-only stats projection.

    A known user who never earned EXP gets a zeroed, unsaved row; reads
    never create stats.
    """
    try:
        await _require_profile(db, user_id)
        stats = await stats_store.get_stats(db, user_id)
        if stats is not None:
            return stats
        season = await get_active_season(db)
    except _STORE_ERRORS as exc:
        raise StoreUnavailable("Progression store unavailable") from exc

    return UserStats(
        user_id=user_id,
        level=1,
        exp_points=0,
        seasonal_exp=0,
        total_exp=0,
        trophy_rank=TrophyRank.BRONZE.value,
        questions_asked=0,
        questions_answered=0,
        season=season.season_number if season is not None else 1,
    )
