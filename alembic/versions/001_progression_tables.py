"""Progression and Q&A tables.

Creates profiles, user_stats, seasons, exp_ledger, questions and answers.
A partial unique index keeps at most one season active at a time.

Revision ID: 001_progression_tables
Revises: None
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_progression_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Profiles (identity collaborator) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS profiles (
            id UUID PRIMARY KEY,
            display_name VARCHAR(64),
            avatar_url TEXT,
            role VARCHAR(16) NOT NULL DEFAULT 'user',
            major VARCHAR(128),
            semester INTEGER,
            year INTEGER,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- User Stats ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_stats (
            user_id UUID PRIMARY KEY REFERENCES profiles(id) ON DELETE CASCADE,
            level INTEGER NOT NULL DEFAULT 1 CHECK (level >= 1),
            exp_points BIGINT NOT NULL DEFAULT 0 CHECK (exp_points >= 0),
            seasonal_exp BIGINT NOT NULL DEFAULT 0 CHECK (seasonal_exp >= 0),
            total_exp BIGINT NOT NULL DEFAULT 0 CHECK (total_exp >= 0),
            trophy_rank VARCHAR(16) NOT NULL DEFAULT 'bronze',
            questions_asked INTEGER NOT NULL DEFAULT 0,
            questions_answered INTEGER NOT NULL DEFAULT 0,
            season INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_user_stats_seasonal_exp
        ON user_stats(seasonal_exp DESC)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_user_stats_total_exp
        ON user_stats(total_exp DESC)
    """)

    # --- Seasons ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS seasons (
            season_number INTEGER PRIMARY KEY,
            start_date TIMESTAMPTZ NOT NULL,
            end_date TIMESTAMPTZ NOT NULL,
            is_active BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE UNIQUE INDEX IF NOT EXISTS uq_seasons_single_active
        ON seasons(is_active) WHERE is_active
    """)

    # --- EXP Ledger ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS exp_ledger (
            id SERIAL PRIMARY KEY,
            user_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            action VARCHAR(32) NOT NULL,
            difficulty VARCHAR(8) NOT NULL,
            amount INTEGER NOT NULL,
            season INTEGER NOT NULL,
            source_id VARCHAR(128),
            idempotency_key VARCHAR(256) UNIQUE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_exp_ledger_user
        ON exp_ledger(user_id)
    """)

    # --- Questions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS questions (
            id UUID PRIMARY KEY,
            author_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            title VARCHAR(256) NOT NULL,
            content TEXT NOT NULL,
            category VARCHAR(64) NOT NULL,
            difficulty VARCHAR(8) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Answers ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS answers (
            id UUID PRIMARY KEY,
            question_id UUID NOT NULL REFERENCES questions(id) ON DELETE CASCADE,
            author_id UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            content TEXT NOT NULL,
            approved_by_author BOOLEAN NOT NULL DEFAULT false,
            approved_by UUID REFERENCES profiles(id),
            approved_at TIMESTAMPTZ,
            teacher_approved BOOLEAN NOT NULL DEFAULT false,
            teacher_approved_by UUID REFERENCES profiles(id),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_answers_question
        ON answers(question_id)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS answers CASCADE")
    op.execute("DROP TABLE IF EXISTS questions CASCADE")
    op.execute("DROP TABLE IF EXISTS exp_ledger CASCADE")
    op.execute("DROP TABLE IF EXISTS seasons CASCADE")
    op.execute("DROP TABLE IF EXISTS user_stats CASCADE")
    op.execute("DROP TABLE IF EXISTS profiles CASCADE")
