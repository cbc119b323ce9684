"""Q&A workflow: the producer of every EXP award.

Each step persists its own entity first, commits, and only then calls the
progression service with a deterministic idempotency key. A retried step
therefore never double-awards, and a lost award race cannot roll back the
question or answer it was earned for.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from warungsoal.db.models import Answer, Profile, Question
from warungsoal.exceptions import AlreadyApproved, NotFound, PermissionDenied, SelfAwardForbidden
from warungsoal.progression.rewards import Action, parse_difficulty
from warungsoal.progression.service import award_experience

logger = structlog.get_logger()

TEACHER_ROLE = "teacher"


async def _get_profile(db: AsyncSession, user_id: uuid.UUID) -> Profile:
    profile = await db.get(Profile, user_id)
    if profile is None:
        raise NotFound("User not found", user_id=str(user_id))
    return profile


async def _get_question(db: AsyncSession, question_id: uuid.UUID) -> Question:
    question = await db.get(Question, question_id)
    if question is None:
        raise NotFound("Question not found", question_id=str(question_id))
    return question


async def _get_answer(db: AsyncSession, answer_id: uuid.UUID) -> tuple[Answer, Question]:
    result = await db.execute(
        select(Answer, Question)
        .join(Question, Question.id == Answer.question_id)
        .where(Answer.id == answer_id)
    )
    row = result.one_or_none()
    if row is None:
        raise NotFound("Answer not found", answer_id=str(answer_id))
    return row[0], row[1]


async def ask_question(
    db: AsyncSession,
    redis: object,
    author_id: uuid.UUID,
    title: str,
    content: str,
    category: str,
    difficulty: str,
) -> Question:
    """Post a question and award the asker."""
    level = parse_difficulty(difficulty)
    await _get_profile(db, author_id)

    question = Question(
        author_id=author_id,
        title=title,
        content=content,
        category=category,
        difficulty=level.value,
    )
    db.add(question)
    await db.commit()
    logger.info("question_created", question_id=str(question.id), author_id=str(author_id))

    await award_experience(
        db,
        redis,
        author_id,
        Action.QUESTION_ASKED,
        level,
        idempotency_key=f"question:{question.id}:asked",
        source_id=str(question.id),
    )
    await db.refresh(question)
    return question


async def submit_answer(
    db: AsyncSession,
    redis: object,
    question_id: uuid.UUID,
    author_id: uuid.UUID,
    content: str,
) -> Answer:
    """Answer someone else's question and award the answerer."""
    question = await _get_question(db, question_id)
    await _get_profile(db, author_id)
    if question.author_id == author_id:
        raise SelfAwardForbidden(
            "Cannot answer your own question",
            question_id=str(question_id),
            user_id=str(author_id),
        )

    answer = Answer(question_id=question.id, author_id=author_id, content=content)
    db.add(answer)
    await db.commit()
    logger.info("answer_created", answer_id=str(answer.id), question_id=str(question_id))

    await award_experience(
        db,
        redis,
        author_id,
        Action.ANSWER_SUBMITTED,
        question.difficulty,
        idempotency_key=f"answer:{answer.id}:submitted",
        source_id=str(answer.id),
    )
    await db.refresh(answer)
    return answer


async def approve_answer(
    db: AsyncSession,
    redis: object,
    answer_id: uuid.UUID,
    approver_id: uuid.UUID,
) -> Answer:
    """Approve an answer as the question author or as a teacher.

    Raises:
        NotFound: unknown answer or approver.
        SelfAwardForbidden: approver wrote the answer.
        PermissionDenied: approver is neither the asker nor a teacher.
        AlreadyApproved: already approved in the approver's capacity.
    """
    answer, question = await _get_answer(db, answer_id)
    approver = await _get_profile(db, approver_id)

    if answer.author_id == approver_id:
        raise SelfAwardForbidden(
            "Cannot approve your own answer",
            answer_id=str(answer_id),
            user_id=str(approver_id),
        )

    now = datetime.now(timezone.utc)
    if question.author_id == approver_id:
        if answer.approved_by_author:
            raise AlreadyApproved("Answer already approved by the question author", answer_id=str(answer_id))
        answer.approved_by_author = True
        answer.approved_by = approver_id
        answer.approved_at = now
        action = Action.ANSWER_APPROVED_BY_AUTHOR
    elif approver.role == TEACHER_ROLE:
        if answer.teacher_approved:
            raise AlreadyApproved("Answer already approved by a teacher", answer_id=str(answer_id))
        answer.teacher_approved = True
        answer.teacher_approved_by = approver_id
        action = Action.ANSWER_APPROVED_BY_TEACHER
    else:
        raise PermissionDenied(
            "Only the question author or a teacher can approve answers",
            answer_id=str(answer_id),
            user_id=str(approver_id),
        )

    await db.commit()
    logger.info("answer_approved", answer_id=str(answer_id), approver_id=str(approver_id), action=action.value)

    await award_experience(
        db,
        redis,
        answer.author_id,
        action,
        question.difficulty,
        idempotency_key=f"answer:{answer.id}:{action.value}",
        source_id=str(answer.id),
    )
    await db.refresh(answer)
    return answer
