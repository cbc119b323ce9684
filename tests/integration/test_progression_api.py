"""HTTP surface — progression, seasons, Q&A and health checks."""

from __future__ import annotations

import uuid

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


class TestHealthChecks:
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    async def test_readiness(self, client: AsyncClient):
        response = await client.get("/ready")
        assert response.status_code == 200
        data = response.json()
        assert data["checks"]["database"] == "ok"
        assert data["checks"]["season"] == "ok"
        assert data["checks"]["redis"] == "disabled"
        assert data["status"] == "ready"

    async def test_version(self, client: AsyncClient):
        data = (await client.get("/version")).json()
        assert data["version"] == "0.1.0"

    async def test_request_id_echoed(self, client: AsyncClient):
        response = await client.get("/health", headers={"X-Request-Id": "test-abc-123"})
        assert response.headers["x-request-id"] == "test-abc-123"


class TestAwardEndpoint:
    async def test_award(self, client: AsyncClient, make_profile):
        user = await make_profile()
        response = await client.post(
            "/api/v1/progression/awards",
            json={"user_id": str(user.id), "action": "question_asked", "difficulty": "medium"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["total_exp"] == 100
        assert data["level"] == 2
        assert data["trophy_rank"] == "bronze"

    async def test_unknown_user_is_404(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/progression/awards",
            json={"user_id": str(uuid.uuid4()), "action": "question_asked", "difficulty": "easy"},
        )
        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    async def test_bad_action_is_422(self, client: AsyncClient, make_profile):
        user = await make_profile()
        response = await client.post(
            "/api/v1/progression/awards",
            json={"user_id": str(user.id), "action": "bribe", "difficulty": "easy"},
        )
        assert response.status_code == 422

    async def test_reused_key_is_409(self, client: AsyncClient, make_profile):
        first = await make_profile()
        second = await make_profile()
        for user, status in ((first, 200), (second, 409)):
            response = await client.post(
                "/api/v1/progression/awards",
                json={
                    "user_id": str(user.id),
                    "action": "question_asked",
                    "difficulty": "easy",
                    "idempotency_key": "client-retry-1",
                },
            )
            assert response.status_code == status
        assert response.json()["code"] == "idempotency_key_reused"

    async def test_stats_detail(self, client: AsyncClient, make_profile):
        user = await make_profile()
        await client.post(
            "/api/v1/progression/awards",
            json={"user_id": str(user.id), "action": "answer_approved_by_teacher", "difficulty": "medium"},
        )
        response = await client.get(f"/api/v1/progression/stats/{user.id}")
        assert response.status_code == 200
        data = response.json()
        assert data["stats"]["total_exp"] == 150
        assert data["level_progress"]["exp_into_level"] == 50
        assert data["next_trophy_exp"] == 500


class TestReferenceTables:
    async def test_levels(self, client: AsyncClient):
        data = (await client.get("/api/v1/progression/levels?max_level=3")).json()
        assert [row["cumulative"] for row in data["levels"]] == [0, 100, 400]

    async def test_trophies(self, client: AsyncClient):
        data = (await client.get("/api/v1/progression/trophies")).json()
        assert data["trophies"][0] == {"tier": "bronze", "threshold": 0, "next_threshold": 500}
        assert data["trophies"][-1]["next_threshold"] is None

    async def test_rewards(self, client: AsyncClient):
        data = (await client.get("/api/v1/progression/rewards")).json()
        rows = {row["action"]: row for row in data["rewards"]}
        assert rows["question_asked"]["hard"] == 150
        assert rows["answer_submitted"]["medium"] == 75


class TestLeaderboardEndpoints:
    async def test_board_and_rank(self, client: AsyncClient, make_profile):
        low = await make_profile("low")
        high = await make_profile("high")
        for user, difficulty in ((low, "easy"), (high, "hard")):
            await client.post(
                "/api/v1/progression/awards",
                json={"user_id": str(user.id), "action": "question_asked", "difficulty": difficulty},
            )

        board = (await client.get("/api/v1/progression/leaderboard?scope=seasonal")).json()
        assert [e["display_name"] for e in board["entries"]] == ["high", "low"]

        rank = (await client.get(f"/api/v1/progression/leaderboard/{low.id}/rank?scope=alltime")).json()
        assert rank["rank"] == 2
        assert rank["score"] == 50

    async def test_bad_scope(self, client: AsyncClient):
        response = await client.get("/api/v1/progression/leaderboard?scope=weekly")
        assert response.status_code == 422


class TestSeasonEndpoints:
    async def test_current(self, client: AsyncClient):
        data = (await client.get("/api/v1/seasons/current")).json()
        assert data["season_number"] == 1
        assert data["is_active"] is True
        assert 0 <= data["progress_percent"] <= 100

    async def test_reset(self, client: AsyncClient):
        response = await client.post("/api/v1/seasons/reset")
        assert response.status_code == 200
        assert response.json()["season_number"] == 2
        current = (await client.get("/api/v1/seasons/current")).json()
        assert current["season_number"] == 2

    async def test_rollover_not_due(self, client: AsyncClient):
        data = (await client.post("/api/v1/seasons/rollover")).json()
        assert data["rolled_over"] is False
        assert data["season"]["season_number"] == 1


class TestQaEndpoints:
    async def test_full_flow(self, client: AsyncClient, make_profile):
        asker = await make_profile()
        helper = await make_profile()

        response = await client.post("/api/v1/questions", json={
            "author_id": str(asker.id),
            "title": "Hukum Newton",
            "content": "Apa bunyi hukum kedua?",
            "category": "fisika",
            "difficulty": "hard",
        })
        assert response.status_code == 201
        question_id = response.json()["id"]

        response = await client.post(
            f"/api/v1/questions/{question_id}/answers",
            json={"author_id": str(helper.id), "content": "F = m a"},
        )
        assert response.status_code == 201
        answer_id = response.json()["id"]

        response = await client.post(f"/api/v1/answers/{answer_id}/approve", json={"approver_id": str(asker.id)})
        assert response.status_code == 200
        assert response.json()["approved_by_author"] is True

        response = await client.post(f"/api/v1/answers/{answer_id}/approve", json={"approver_id": str(asker.id)})
        assert response.status_code == 409
        assert response.json()["code"] == "already_approved"

        stats = (await client.get(f"/api/v1/progression/stats/{helper.id}")).json()
        assert stats["stats"]["total_exp"] == 300

    async def test_self_answer_forbidden(self, client: AsyncClient, make_profile):
        asker = await make_profile()
        response = await client.post("/api/v1/questions", json={
            "author_id": str(asker.id),
            "title": "t",
            "content": "c",
            "category": "misc",
            "difficulty": "easy",
        })
        question_id = response.json()["id"]
        response = await client.post(
            f"/api/v1/questions/{question_id}/answers",
            json={"author_id": str(asker.id), "content": "self"},
        )
        assert response.status_code == 403
        assert response.json()["code"] == "self_award_forbidden"
