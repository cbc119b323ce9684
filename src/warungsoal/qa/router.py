"""Q&A API endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from warungsoal.database import get_session
from warungsoal.dependencies import get_redis_dep
from warungsoal.qa.schemas import (
    AnswerCreate,
    AnswerResponse,
    ApproveRequest,
    QuestionCreate,
    QuestionResponse,
)
from warungsoal.qa.service import approve_answer, ask_question, submit_answer

router = APIRouter(prefix="/api/v1", tags=["Q&A"])


@router.post("/questions", response_model=QuestionResponse, status_code=201)
async def create_question(
    body: QuestionCreate,
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Post a question."""
    question = await ask_question(
        db, redis, body.author_id, body.title, body.content, body.category, body.difficulty,
    )
    return QuestionResponse.model_validate(question)


@router.post("/questions/{question_id}/answers", response_model=AnswerResponse, status_code=201)
async def create_answer(
    question_id: uuid.UUID,
    body: AnswerCreate,
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Answer a question."""
    answer = await submit_answer(db, redis, question_id, body.author_id, body.content)
    return AnswerResponse.model_validate(answer)


@router.post("/answers/{answer_id}/approve", response_model=AnswerResponse)
async def approve(
    answer_id: uuid.UUID,
    body: ApproveRequest,
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_redis_dep),
):
    """Approve an answer as the question author or a teacher."""
    answer = await approve_answer(db, redis, answer_id, body.approver_id)
    return AnswerResponse.model_validate(answer)
