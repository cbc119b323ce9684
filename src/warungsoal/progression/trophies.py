"""Trophy ranks from seasonal EXP.

During a season a rank only ever moves up. Demotion happens in one place:
the season reset, which drops every user exactly one tier.
"""

from __future__ import annotations

from enum import Enum


class TrophyRank(str, Enum):
    """Seasonal trophy tiers, lowest first."""

    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"
    DIAMOND = "diamond"
    RADIANT = "radiant"


# Ascending; order matters for classification and demotion
TROPHY_THRESHOLDS: list[tuple[TrophyRank, int]] = [
    (TrophyRank.BRONZE, 0),
    (TrophyRank.SILVER, 500),
    (TrophyRank.GOLD, 2000),
    (TrophyRank.PLATINUM, 5000),
    (TrophyRank.DIAMOND, 10000),
    (TrophyRank.RADIANT, 20000),
]

_ORDER: list[TrophyRank] = [tier for tier, _ in TROPHY_THRESHOLDS]
_THRESHOLD: dict[TrophyRank, int] = dict(TROPHY_THRESHOLDS)


def tier_index(tier: TrophyRank | str) -> int:
    """Position of a tier, bronze == 0."""
    return _ORDER.index(TrophyRank(tier))


def threshold_for(tier: TrophyRank | str) -> int:
    """Seasonal EXP at which a tier starts."""
    return _THRESHOLD[TrophyRank(tier)]


def trophy_from_seasonal_exp(seasonal_exp: int) -> TrophyRank:
    """Highest tier whose threshold is <= seasonal_exp."""
    if seasonal_exp < 0:
        raise ValueError(f"seasonal_exp must be >= 0 (got {seasonal_exp})")
    current = TrophyRank.BRONZE
    for tier, threshold in TROPHY_THRESHOLDS:
        if seasonal_exp >= threshold:
            current = tier
    return current


def next_threshold(tier: TrophyRank | str) -> int | None:
    """Seasonal EXP needed for the tier above, or None at radiant."""
    idx = tier_index(tier)
    if idx == len(_ORDER) - 1:
        return None
    return _THRESHOLD[_ORDER[idx + 1]]


def demote_one_tier(tier: TrophyRank | str) -> TrophyRank:
    """The tier immediately below; bronze stays bronze."""
    idx = tier_index(tier)
    return _ORDER[max(idx - 1, 0)]


def promote(current: TrophyRank | str, seasonal_exp: int) -> TrophyRank:
    """Higher of the current tier and the tier earned by seasonal_exp."""
    earned = trophy_from_seasonal_exp(seasonal_exp)
    current = TrophyRank(current)
    return earned if tier_index(earned) > tier_index(current) else current
