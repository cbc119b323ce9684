"""Pydantic models for the Q&A endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from warungsoal.progression.rewards import Difficulty


class QuestionCreate(BaseModel):
    author_id: uuid.UUID
    title: str = Field(..., min_length=1, max_length=256)
    content: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, max_length=64)
    difficulty: Difficulty


class QuestionResponse(BaseModel):
    id: uuid.UUID
    author_id: uuid.UUID
    title: str
    content: str
    category: str
    difficulty: str
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class AnswerCreate(BaseModel):
    author_id: uuid.UUID
    content: str = Field(..., min_length=1)


class ApproveRequest(BaseModel):
    approver_id: uuid.UUID


class AnswerResponse(BaseModel):
    id: uuid.UUID
    question_id: uuid.UUID
    author_id: uuid.UUID
    content: str
    approved_by_author: bool
    approved_by: uuid.UUID | None = None
    approved_at: datetime | None = None
    teacher_approved: bool
    teacher_approved_by: uuid.UUID | None = None

    model_config = {"from_attributes": True}
