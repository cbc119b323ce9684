"""Leaderboard service — read-only rankings over the stats store."""

from __future__ import annotations

import uuid

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from warungsoal.db.models import Profile, UserStats
from warungsoal.exceptions import InvalidAction

SCOPES = ("seasonal", "alltime")


def _score_columns(scope: str):  # noqa: ANN202
    """(primary, tiebreak) score columns for a scope."""
    if scope == "seasonal":
        return UserStats.seasonal_exp, UserStats.total_exp
    if scope == "alltime":
        return UserStats.total_exp, UserStats.seasonal_exp
    raise InvalidAction(f"Unknown leaderboard scope: {scope!r}", scope=scope)


def calculate_percentile(rank: int, total: int) -> float:
    """Rank 1 of 100 -> 99.0, rank 100 of 100 -> 0.0."""
    if total <= 0 or rank <= 0:
        return 0.0
    return round(100 - (rank / total * 100), 2)


async def get_leaderboard(
    db: AsyncSession,
    scope: str,
    limit: int = 50,
    current_user_id: uuid.UUID | None = None,
) -> dict:
    """Top ``limit`` users by seasonal or lifetime EXP, joined with profiles.

    Ties break on the other EXP figure, then user id, so ranks are stable.
    """
    primary, tiebreak = _score_columns(scope)
    result = await db.execute(
        select(UserStats, Profile)
        .join(Profile, Profile.id == UserStats.user_id)
        .order_by(primary.desc(), tiebreak.desc(), UserStats.user_id)
        .limit(limit)
    )
    total = await db.scalar(select(func.count()).select_from(UserStats))

    entries = []
    for rank, (stats, profile) in enumerate(result.all(), start=1):
        entries.append({
            "rank": rank,
            "user_id": stats.user_id,
            "display_name": profile.display_name or "Unknown User",
            "avatar_url": profile.avatar_url,
            "seasonal_exp": stats.seasonal_exp,
            "total_exp": stats.total_exp,
            "level": stats.level,
            "questions_answered": stats.questions_answered,
            "trophy_rank": stats.trophy_rank,
            "is_current_user": stats.user_id == current_user_id if current_user_id else False,
        })

    return {"scope": scope, "entries": entries, "total": total or 0}


async def get_user_rank(db: AsyncSession, scope: str, user_id: uuid.UUID) -> dict:
    """A single user's position on a leaderboard; rank 0 when unranked."""
    primary, tiebreak = _score_columns(scope)
    total = await db.scalar(select(func.count()).select_from(UserStats)) or 0

    row = (
        await db.execute(select(primary, tiebreak).where(UserStats.user_id == user_id))
    ).one_or_none()
    if row is None:
        return {"scope": scope, "rank": 0, "score": 0, "total": total, "percentile": 0.0}

    score, tie = row
    ahead = await db.scalar(
        select(func.count())
        .select_from(UserStats)
        .where(
            or_(
                primary > score,
                and_(primary == score, tiebreak > tie),
                and_(primary == score, tiebreak == tie, UserStats.user_id < user_id),
            )
        )
    )
    rank = (ahead or 0) + 1
    return {
        "scope": scope,
        "rank": rank,
        "score": score,
        "total": total,
        "percentile": calculate_percentile(rank, total),
    }
