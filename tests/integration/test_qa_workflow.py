"""Q&A workflow — awards follow questions, answers and approvals."""

from __future__ import annotations

import uuid

import pytest

from warungsoal.exceptions import (
    AlreadyApproved,
    InvalidAction,
    NotFound,
    PermissionDenied,
    SelfAwardForbidden,
)
from warungsoal.progression.service import get_stats
from warungsoal.qa.service import approve_answer, ask_question, submit_answer

pytestmark = pytest.mark.asyncio


async def _question(db, author, difficulty="hard"):
    return await ask_question(db, None, author.id, "Limit of sin(x)/x", "As x goes to 0?", "calculus", difficulty)


class TestAskQuestion:
    async def test_asker_is_awarded(self, db, make_profile):
        asker = await make_profile()
        question = await _question(db, asker, "medium")
        stats = await get_stats(db, asker.id)
        assert question.difficulty == "medium"
        assert stats.total_exp == 100
        assert stats.questions_asked == 1

    async def test_invalid_difficulty(self, db, make_profile):
        asker = await make_profile()
        with pytest.raises(InvalidAction):
            await ask_question(db, None, asker.id, "t", "c", "misc", "legendary")

    async def test_unknown_author(self, db):
        with pytest.raises(NotFound):
            await ask_question(db, None, uuid.uuid4(), "t", "c", "misc", "easy")


class TestApprovalChain:
    """A asks hard (+150), B answers (+100), A approves (+200 to B)."""

    async def test_chain(self, db, make_profile):
        a = await make_profile("A")
        b = await make_profile("B")
        question = await _question(db, a)
        answer = await submit_answer(db, None, question.id, b.id, "It tends to 1.")
        approved = await approve_answer(db, None, answer.id, a.id)

        assert approved.approved_by_author is True
        assert approved.approved_by == a.id
        assert (await get_stats(db, a.id)).total_exp == 150
        assert (await get_stats(db, b.id)).total_exp == 300

    async def test_teacher_approval_stacks(self, db, make_profile):
        a = await make_profile("A")
        b = await make_profile("B")
        teacher = await make_profile("Bu Sari", role="teacher")
        question = await _question(db, a, "easy")
        answer = await submit_answer(db, None, question.id, b.id, "1")
        await approve_answer(db, None, answer.id, a.id)
        approved = await approve_answer(db, None, answer.id, teacher.id)

        assert approved.teacher_approved is True
        assert approved.teacher_approved_by == teacher.id
        assert (await get_stats(db, b.id)).total_exp == 50 + 100 + 100


class TestSelfAwardRules:
    async def test_cannot_answer_own_question(self, db, make_profile):
        a = await make_profile()
        question = await _question(db, a)
        with pytest.raises(SelfAwardForbidden):
            await submit_answer(db, None, question.id, a.id, "self answer")
        assert (await get_stats(db, a.id)).total_exp == 150

    async def test_cannot_approve_own_answer(self, db, make_profile):
        a = await make_profile()
        b = await make_profile(role="teacher")
        question = await _question(db, a)
        answer = await submit_answer(db, None, question.id, b.id, "mine")
        with pytest.raises(SelfAwardForbidden):
            await approve_answer(db, None, answer.id, b.id)

    async def test_bystander_cannot_approve(self, db, make_profile):
        a = await make_profile()
        b = await make_profile()
        c = await make_profile()
        question = await _question(db, a)
        answer = await submit_answer(db, None, question.id, b.id, "x")
        with pytest.raises(PermissionDenied) as exc_info:
            await approve_answer(db, None, answer.id, c.id)
        assert exc_info.value.code == "permission_denied"

    async def test_double_approval(self, db, make_profile):
        a = await make_profile()
        b = await make_profile()
        question = await _question(db, a)
        answer = await submit_answer(db, None, question.id, b.id, "x")
        await approve_answer(db, None, answer.id, a.id)
        with pytest.raises(AlreadyApproved):
            await approve_answer(db, None, answer.id, a.id)
        assert (await get_stats(db, b.id)).total_exp == 300

    async def test_unknown_answer(self, db, make_profile):
        a = await make_profile()
        with pytest.raises(NotFound):
            await approve_answer(db, None, uuid.uuid4(), a.id)
