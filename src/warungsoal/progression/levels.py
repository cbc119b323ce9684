"""Level thresholds and computation.

Thresholds grow quadratically: reaching level L takes (L - 1)^2 * 100
lifetime EXP, so level 2 is at 100, level 3 at 400, level 4 at 900.
"""

from __future__ import annotations

import math

EXP_PER_LEVEL_UNIT = 100


def exp_threshold_for_level(level: int) -> int:
    """Cumulative lifetime EXP needed to reach ``level``."""
    if level < 1:
        raise ValueError(f"level must be >= 1 (got {level})")
    return (level - 1) ** 2 * EXP_PER_LEVEL_UNIT


def level_from_total_exp(total_exp: int) -> int:
    """Greatest level whose threshold is <= total_exp."""
    if total_exp < 0:
        raise ValueError(f"total_exp must be >= 0 (got {total_exp})")
    # isqrt is exact for any int, no float rounding at the boundaries
    return math.isqrt(total_exp // EXP_PER_LEVEL_UNIT) + 1


def level_progress(total_exp: int) -> dict:
    """Level info for progress bars.

    Returns the current level, EXP earned inside it, the EXP span of the
    level and the cumulative threshold of the next level.
    """
    level = level_from_total_exp(total_exp)
    current_threshold = exp_threshold_for_level(level)
    next_threshold = exp_threshold_for_level(level + 1)
    return {
        "level": level,
        "exp_into_level": total_exp - current_threshold,
        "exp_for_level": next_threshold - current_threshold,
        "next_level": level + 1,
        "next_level_exp": next_threshold,
    }


def level_table(max_level: int = 20) -> list[dict]:
    """Thresholds for levels 1..max_level."""
    return [
        {
            "level": level,
            "exp_required": exp_threshold_for_level(level + 1) - exp_threshold_for_level(level),
            "cumulative": exp_threshold_for_level(level),
        }
        for level in range(1, max_level + 1)
    ]
