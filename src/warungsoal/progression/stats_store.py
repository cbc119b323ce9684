"""Stats store — persisted UserStats rows and their atomic mutation.

All EXP arithmetic happens inside the database (``x = x + :delta``) so two
awards for the same user serialize on the row lock instead of racing a
read-modify-write in Python. The derived ``level`` and ``trophy_rank`` are
written in the same transaction while that lock is still held.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from warungsoal.db.models import UserStats
from warungsoal.exceptions import ConcurrencyConflict
from warungsoal.progression.levels import level_from_total_exp
from warungsoal.progression.trophies import TrophyRank, promote

COUNTER_FIELDS = frozenset({"questions_asked", "questions_answered"})

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}

_stats = UserStats.__table__


def _upsert_insert(db: AsyncSession):  # noqa: ANN202
    dialect = db.get_bind().dialect.name
    try:
        return _INSERTS[dialect]
    except KeyError:
        raise RuntimeError(f"Unsupported database dialect for stats upsert: {dialect}") from None


async def _load(db: AsyncSession, user_id: uuid.UUID) -> UserStats | None:
    result = await db.execute(
        select(UserStats)
        .where(UserStats.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_stats(db: AsyncSession, user_id: uuid.UUID) -> UserStats | None:
    """Read-only lookup; never creates a row."""
    return await _load(db, user_id)


async def get_or_create(db: AsyncSession, user_id: uuid.UUID, season: int) -> UserStats:
    """Get the user's stats row, creating a zeroed one if absent.

    Uses INSERT ... ON CONFLICT DO NOTHING keyed on user_id, so concurrent
    first awards never produce duplicate rows. Does not commit.
    """
    now = datetime.now(timezone.utc)
    insert = _upsert_insert(db)
    stmt = (
        insert(_stats)
        .values(
            user_id=user_id,
            level=1,
            exp_points=0,
            seasonal_exp=0,
            total_exp=0,
            trophy_rank=TrophyRank.BRONZE.value,
            questions_asked=0,
            questions_answered=0,
            season=season,
            created_at=now,
            updated_at=now,
        )
        .on_conflict_do_nothing(index_elements=["user_id"])
    )
    await db.execute(stmt)
    stats = await _load(db, user_id)
    if stats is None:  # pragma: no cover - row was just upserted
        raise ConcurrencyConflict("Stats row vanished during creation", user_id=str(user_id))
    return stats


async def apply_delta(
    db: AsyncSession,
    user_id: uuid.UUID,
    exp_delta: int,
    counter_field: str | None = None,
    *,
    season: int,
) -> UserStats:
    """Atomically add exp_delta to all three EXP figures and bump a counter.

    ``season`` fences the write: if the row has been moved to another season
    by a concurrent reset, nothing is written and ConcurrencyConflict is
    raised so the caller can retry against the new season. Does not commit.
    """
    if exp_delta < 0:
        raise ValueError(f"exp_delta must be >= 0 (got {exp_delta})")
    if counter_field is not None and counter_field not in COUNTER_FIELDS:
        raise ValueError(f"Unknown counter field: {counter_field!r}")

    values = {
        "exp_points": _stats.c.exp_points + exp_delta,
        "seasonal_exp": _stats.c.seasonal_exp + exp_delta,
        "total_exp": _stats.c.total_exp + exp_delta,
        "updated_at": datetime.now(timezone.utc),
    }
    if counter_field is not None:
        values[counter_field] = _stats.c[counter_field] + 1

    result = await db.execute(
        update(_stats)
        .where(_stats.c.user_id == user_id, _stats.c.season == season)
        .values(**values)
        .returning(
            _stats.c.total_exp,
            _stats.c.seasonal_exp,
            _stats.c.level,
            _stats.c.trophy_rank,
        )
    )
    row = result.one_or_none()
    if row is None:
        raise ConcurrencyConflict(
            "Stats row is not on the expected season",
            user_id=str(user_id),
            season=season,
        )

    level = level_from_total_exp(row.total_exp)
    trophy = promote(row.trophy_rank, row.seasonal_exp)
    if level != row.level or trophy.value != row.trophy_rank:
        await db.execute(
            update(_stats)
            .where(_stats.c.user_id == user_id)
            .values(level=level, trophy_rank=trophy.value)
        )

    stats = await _load(db, user_id)
    if stats is None:  # pragma: no cover - row was just updated
        raise ConcurrencyConflict("Stats row vanished during update", user_id=str(user_id))
    return stats
