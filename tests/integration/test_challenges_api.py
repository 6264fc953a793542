"""Challenge API tests: create, list, join, complete, error mapping."""

from __future__ import annotations

from datetime import timedelta

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def _create(client: AsyncClient, headers=None, **body) -> dict:
    body.setdefault("title", "Walk 10k steps")
    body.setdefault("description", "Any pace counts")
    response = await client.post("/api/v1/challenges", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestCreate:
    async def test_create_defaults(self, authed_client):
        data = await _create(authed_client)
        assert (data["kind"], data["difficulty"]) == ("daily", "medium")
        assert (data["xp_reward"], data["coins_reward"]) == (50, 10)
        assert data["participants"] == 1
        assert data["status"] == "active"

    @pytest.mark.parametrize(
        "body",
        [{"title": ""}, {"description": ""}, {"kind": "monthly"}, {"xp_reward": -5}, {"duration_days": 0}],
    )
    async def test_validation(self, authed_client, body):
        body = {"title": "t", "description": "d", **body}
        response = await authed_client.post("/api/v1/challenges", json=body)
        assert response.status_code == 422

    async def test_details(self, authed_client):
        created = await _create(authed_client, kind="weekly", duration_days=7)
        data = (await authed_client.get(f"/api/v1/challenges/{created['id']}")).json()
        assert data["kind"] == "weekly"
        assert data["status"] == "active"
        assert (await authed_client.get("/api/v1/challenges/999")).status_code == 404


class TestFlow:
    async def test_join_and_complete(self, client, headers):
        created = await _create(client, headers=headers(1, "alice"))
        listed = (await client.get("/api/v1/challenges", headers=headers(2, "bob"))).json()
        assert [c["id"] for c in listed["available"]] == [created["id"]]

        joined = await client.post(f"/api/v1/challenges/{created['id']}/join", headers=headers(2, "bob"))
        assert joined.status_code == 200, joined.text
        assert joined.json()["participants"] == 2

        done = await client.post(f"/api/v1/challenges/{created['id']}/complete", headers=headers(2, "bob"))
        assert done.status_code == 200, done.text
        data = done.json()
        assert (data["xp"], data["coins"]) == (50, 10)
        assert data["challenge"]["completions"] == 1

        listed = (await client.get("/api/v1/challenges", headers=headers(2, "bob"))).json()
        assert [c["id"] for c in listed["completed"]] == [created["id"]]
        assert listed["available"] == []

    async def test_completion_moves_global_score(self, client, headers):
        created = await _create(client, headers=headers(1, "alice"), xp_reward=0, coins_reward=0)
        await client.post(f"/api/v1/challenges/{created['id']}/complete", headers=headers(1, "alice"))
        board = (await client.get("/api/v1/leaderboards/global", headers=headers(1))).json()
        entry = board["entries"][0]
        assert (entry["user_id"], entry["score"]) == (1, 50)
        assert board["user_position"]["entry"]["metrics"]["challenges_completed"] == 1

    async def test_join_twice_is_409(self, authed_client):
        created = await _create(authed_client)
        response = await authed_client.post(f"/api/v1/challenges/{created['id']}/join")
        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "ChallengeAlreadyJoined"

    async def test_complete_twice_is_409(self, authed_client):
        created = await _create(authed_client)
        await authed_client.post(f"/api/v1/challenges/{created['id']}/complete")
        response = await authed_client.post(f"/api/v1/challenges/{created['id']}/complete")
        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "ChallengeAlreadyCompleted"

    async def test_complete_without_joining_is_400(self, client, headers):
        created = await _create(client, headers=headers(1, "alice"))
        response = await client.post(f"/api/v1/challenges/{created['id']}/complete", headers=headers(2, "bob"))
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "ChallengeNotJoined"

    async def test_expired_is_400(self, client, clock, headers):
        created = await _create(client, headers=headers(1, "alice"))
        clock.advance(timedelta(days=1))
        joined = await client.post(f"/api/v1/challenges/{created['id']}/join", headers=headers(2, "bob"))
        assert joined.status_code == 400
        assert joined.json()["detail"]["error"] == "ChallengeExpired"
        done = await client.post(f"/api/v1/challenges/{created['id']}/complete", headers=headers(1, "alice"))
        assert done.status_code == 400

    async def test_missing_challenge_is_404(self, authed_client):
        assert (await authed_client.post("/api/v1/challenges/999/join")).status_code == 404
        assert (await authed_client.post("/api/v1/challenges/999/complete")).status_code == 404

    async def test_requires_auth(self, client):
        response = await client.get("/api/v1/challenges")
        assert response.status_code in (401, 403)
