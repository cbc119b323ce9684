"""Reward table — EXP per (action, difficulty).

This table is canonical; nothing else may hardcode an EXP amount.
"""

from __future__ import annotations

from enum import Enum

from warungsoal.exceptions import InvalidAction


class Action(str, Enum):
    """Events that earn experience."""

    QUESTION_ASKED = "question_asked"
    ANSWER_SUBMITTED = "answer_submitted"
    ANSWER_APPROVED_BY_AUTHOR = "answer_approved_by_author"
    ANSWER_APPROVED_BY_TEACHER = "answer_approved_by_teacher"


class Difficulty(str, Enum):
    """Question difficulty as chosen by the asker."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


_APPROVAL_REWARDS = {Difficulty.EASY: 100, Difficulty.MEDIUM: 150, Difficulty.HARD: 200}

REWARD_TABLE: dict[Action, dict[Difficulty, int]] = {
    Action.QUESTION_ASKED: {Difficulty.EASY: 50, Difficulty.MEDIUM: 100, Difficulty.HARD: 150},
    Action.ANSWER_SUBMITTED: {Difficulty.EASY: 50, Difficulty.MEDIUM: 75, Difficulty.HARD: 100},
    Action.ANSWER_APPROVED_BY_AUTHOR: dict(_APPROVAL_REWARDS),
    Action.ANSWER_APPROVED_BY_TEACHER: dict(_APPROVAL_REWARDS),
}

# UserStats counter bumped alongside the EXP delta
COUNTER_FOR_ACTION: dict[Action, str] = {
    Action.QUESTION_ASKED: "questions_asked",
    Action.ANSWER_SUBMITTED: "questions_answered",
    Action.ANSWER_APPROVED_BY_AUTHOR: "questions_answered",
    Action.ANSWER_APPROVED_BY_TEACHER: "questions_answered",
}


def parse_action(action: Action | str) -> Action:
    """Coerce a raw value to an Action, raising InvalidAction otherwise."""
    try:
        return Action(action)
    except ValueError:
        raise InvalidAction(f"Unknown action: {action!r}", action=str(action)) from None


def parse_difficulty(difficulty: Difficulty | str) -> Difficulty:
    """Coerce a raw value to a Difficulty, raising InvalidAction otherwise."""
    try:
        return Difficulty(difficulty)
    except ValueError:
        raise InvalidAction(
            f"Unknown difficulty: {difficulty!r}", difficulty=str(difficulty)
        ) from None


def reward_for(action: Action | str, difficulty: Difficulty | str) -> int:
    """EXP delta for an action at a difficulty. Always a positive integer."""
    return REWARD_TABLE[parse_action(action)][parse_difficulty(difficulty)]


def counter_for(action: Action | str) -> str:
    """Name of the UserStats counter that an action increments."""
    return COUNTER_FOR_ACTION[parse_action(action)]
