"""ORM models for profiles, progression stats, seasons and the Q&A workflow.

Schema is created by the Alembic migrations in ``alembic/versions``.
Columns stay portable (no JSONB/INET) so the same models run on
PostgreSQL in production and SQLite in tests.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    false,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from warungsoal.db.base import Base


# ---------------------------------------------------------------------------
# Identity / profile collaborator
# ---------------------------------------------------------------------------


class Profile(Base):
    """User profile — identity and display data."""

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    display_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, server_default="user", default="user")
    major: Mapped[str | None] = mapped_column(String(128), nullable=True)
    semester: Mapped[int | None] = mapped_column(Integer, nullable=True)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    stats: Mapped[UserStats | None] = relationship("UserStats", back_populates="profile", uselist=False)


# ---------------------------------------------------------------------------
# Progression
# ---------------------------------------------------------------------------


class UserStats(Base):
    """Denormalized progression row — single row per user.

    Written only by the stats store (awards) and the season reset.
    """

    __tablename__ = "user_stats"
    __table_args__ = (
        Index("idx_user_stats_seasonal_exp", "seasonal_exp"),
        Index("idx_user_stats_total_exp", "total_exp"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1", default=1)
    exp_points: Mapped[int] = mapped_column(BigInteger, nullable=False, server_default="0", default=0)
    seasonal_exp: Mapped[int] = mapped_column(BigInteger, nullable=False, server_default="0", default=0)
    total_exp: Mapped[int] = mapped_column(BigInteger, nullable=False, server_default="0", default=0)
    trophy_rank: Mapped[str] = mapped_column(
        String(16), nullable=False, server_default="bronze", default="bronze"
    )
    questions_asked: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0", default=0)
    questions_answered: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0", default=0)
    season: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1", default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    profile: Mapped[Profile] = relationship("Profile", back_populates="stats")


class Season(Base):
    """Season window. Exactly one row is active in steady state."""

    __tablename__ = "seasons"

    season_number: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=false(), default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class ExpLedger(Base):
    """Append-only EXP award log with idempotency key."""

    __tablename__ = "exp_ledger"
    __table_args__ = (Index("idx_exp_ledger_user", "user_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    difficulty: Mapped[str] = mapped_column(String(8), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    season: Mapped[int] = mapped_column(Integer, nullable=False)
    source_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    idempotency_key: Mapped[str | None] = mapped_column(String(256), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


# ---------------------------------------------------------------------------
# Q&A workflow
# ---------------------------------------------------------------------------


class Question(Base):
    """A question posted by a student."""

    __tablename__ = "questions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    difficulty: Mapped[str] = mapped_column(String(8), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    answers: Mapped[list[Answer]] = relationship("Answer", back_populates="question")


class Answer(Base):
    """An answer to a question; approvable by the asker and by teachers."""

    __tablename__ = "answers"
    __table_args__ = (Index("idx_answers_question", "question_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    question_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    approved_by_author: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=false(), default=False
    )
    approved_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    teacher_approved: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=false(), default=False
    )
    teacher_approved_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("profiles.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    question: Mapped[Question] = relationship("Question", back_populates="answers")
