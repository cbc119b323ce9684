"""Season controller — active season window and the season reset.

A reset runs as one transaction: it takes an exclusive lock on the active
season row, then demotes every user one trophy tier, zeroes seasonal EXP,
moves every row to the new season number, closes the old season and opens
the next. Awards hold a shared lock on the same season row, so readers never
see a half-migrated season.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from warungsoal.config import get_settings
from warungsoal.db.models import Season, UserStats
from warungsoal.exceptions import ConcurrencyConflict, NotFound, StoreUnavailable
from warungsoal.progression.trophies import TrophyRank, demote_one_tier, promote

logger = structlog.get_logger()

_STORE_ERRORS = (OperationalError, InterfaceError, OSError)

# Season close policy: drop one tier, but never below what 0 EXP would earn.
# Classification at 0 EXP is bronze, so the demoted tier is always the floor.
SEASON_CLOSE_TIERS: dict[str, str] = {
    tier.value: promote(demote_one_tier(tier), 0).value for tier in TrophyRank
}


def _as_utc(dt: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


def is_season_over(season: Season, now: datetime | None = None) -> bool:
    """True once wall-clock time reaches the season end."""
    now = now or datetime.now(timezone.utc)
    return now >= _as_utc(season.end_date)


def season_progress(season: Season, now: datetime | None = None) -> dict:
    """Percent of the season elapsed (0-100) and whole days remaining."""
    now = now or datetime.now(timezone.utc)
    start = _as_utc(season.start_date)
    end = _as_utc(season.end_date)
    total = (end - start).total_seconds()
    elapsed = (now - start).total_seconds()
    progress = 100.0 if total <= 0 else min(max(elapsed / total * 100, 0.0), 100.0)
    remaining_days = max(0, math.ceil((end - now).total_seconds() / 86400))
    return {
        "progress_percent": round(progress, 2),
        "days_remaining": remaining_days,
    }


async def get_active_season(db: AsyncSession, *, lock: str | None = None) -> Season | None:
    """Load the active season.

    ``lock="share"`` takes FOR SHARE (awards), ``lock="update"`` takes
    FOR UPDATE (reset). Dialects without row locks ignore the hint.
    """
    stmt = (
        select(Season)
        .where(Season.is_active.is_(True))
        .order_by(Season.season_number.desc())
        .limit(1)
        .execution_options(populate_existing=True)
    )
    if lock == "share":
        stmt = stmt.with_for_update(read=True)
    elif lock == "update":
        stmt = stmt.with_for_update()
    elif lock is not None:
        raise ValueError(f"Unknown lock mode: {lock!r}")
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def require_active_season(db: AsyncSession, *, lock: str | None = None) -> Season:
    """Like get_active_season but raises NotFound when there is none."""
    season = await get_active_season(db, lock=lock)
    if season is None:
        raise NotFound("No active season")
    return season


async def ensure_active_season(db: AsyncSession, now: datetime | None = None) -> Season:
    """Open the first season when none is active (startup bootstrap)."""
    season = await get_active_season(db)
    if season is not None:
        return season

    now = now or datetime.now(timezone.utc)
    latest = await db.scalar(select(func.max(Season.season_number)))
    season = Season(
        season_number=(latest or 0) + 1,
        start_date=now,
        end_date=now + timedelta(days=get_settings().season_length_days),
        is_active=True,
        created_at=now,
    )
    db.add(season)
    try:
        await db.commit()
    except IntegrityError:
        # Another process opened it first
        await db.rollback()
        return await require_active_season(db)

    logger.info("season_opened", season_number=season.season_number, end_date=season.end_date.isoformat())
    return season


async def _close_and_open(db: AsyncSession, now: datetime, *, only_if_due: bool) -> Season | None:
    current = await require_active_season(db, lock="update")
    if only_if_due and not is_season_over(current, now):
        await db.rollback()
        return None

    new_number = current.season_number + 1
    stats = UserStats.__table__
    result = await db.execute(
        update(stats).values(
            trophy_rank=case(
                SEASON_CLOSE_TIERS,
                value=stats.c.trophy_rank,
                else_=TrophyRank.BRONZE.value,
            ),
            seasonal_exp=0,
            season=new_number,
            updated_at=now,
        )
    )

    current.is_active = False
    current.end_date = now
    await db.flush()

    new_season = Season(
        season_number=new_number,
        start_date=now,
        end_date=now + timedelta(days=get_settings().season_length_days),
        is_active=True,
        created_at=now,
    )
    db.add(new_season)
    await db.commit()

    logger.info(
        "season_reset",
        closed_season=current.season_number,
        opened_season=new_number,
        users_reset=result.rowcount,
    )
    return new_season


async def _run_reset(db: AsyncSession, now: datetime | None, *, only_if_due: bool) -> Season | None:
    now = now or datetime.now(timezone.utc)
    try:
        return await _close_and_open(db, now, only_if_due=only_if_due)
    except IntegrityError as exc:
        # Another reset already opened the next season number
        await db.rollback()
        raise ConcurrencyConflict("Season reset lost a race", error=str(exc.orig)) from exc
    except _STORE_ERRORS as exc:
        await db.rollback()
        raise StoreUnavailable("Season store unavailable") from exc
    except Exception:
        await db.rollback()
        raise


async def reset_season(db: AsyncSession, now: datetime | None = None) -> Season:
    """Close the active season and open the next one, atomically.

    Raises ConcurrencyConflict when a concurrent reset already opened the
    next season, and StoreUnavailable when the database is unreachable.
    Either way nothing is changed.
    """
    season = await _run_reset(db, now, only_if_due=False)
    if season is None:
        raise NotFound("No active season")
    return season


async def rollover_if_due(db: AsyncSession, now: datetime | None = None) -> Season | None:
    """Reset only if the active season has ended. Returns the new season or None.

    The due check runs under the reset's exclusive lock, so two schedulers
    firing together reset at most once.
    """
    if await get_active_season(db) is None:
        await ensure_active_season(db, now)
        return None
    return await _run_reset(db, now, only_if_due=True)
