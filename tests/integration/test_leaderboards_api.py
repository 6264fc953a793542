"""Leaderboard endpoint tests with several real token-authenticated users."""

from __future__ import annotations

from datetime import timedelta

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def _mark_days(client: AsyncClient, clock, headers, user_id: int, name: str, days: int, category="health"):
    auth = headers(user_id, name)
    response = await client.post(
        "/api/v1/habits", json={"title": "run", "category": category}, headers=auth,
    )
    habit_id = response.json()["habit"]["id"]
    start = clock.now()
    for _ in range(days):
        await client.post(f"/api/v1/habits/{habit_id}/complete", headers=auth)
        clock.advance(timedelta(days=1))
    clock.advance(start - clock.now())


class TestLeaderboards:
    async def test_global_board_with_position(self, client, clock, headers):
        await _mark_days(client, clock, headers, 1, "alice", 1)
        await _mark_days(client, clock, headers, 2, "bob", 3)
        clock.advance(timedelta(days=2))

        response = await client.get("/api/v1/leaderboards/global", headers=headers(1, "alice"))
        assert response.status_code == 200
        data = response.json()
        assert data["board_type"] == "global"
        assert [e["display_name"] for e in data["entries"]] == ["bob", "alice"]
        assert data["user_position"]["entry"]["rank"] == 2
        assert data["user_position"]["entry"]["metrics"]["habits_completed"] == 1
        assert [e["user_id"] for e in data["user_position"]["users_above"]] == [2]

    async def test_weekly_period_key(self, client, clock, headers):
        await _mark_days(client, clock, headers, 1, "alice", 1)
        data = (await client.get("/api/v1/leaderboards/weekly", headers=headers(1))).json()
        assert data["period_key"] == "2026-W10"
        assert data["total_participants"] == 1

    async def test_category_board(self, client, clock, headers):
        await _mark_days(client, clock, headers, 1, "alice", 2, category="finance")
        data = (await client.get("/api/v1/leaderboards/category/finance", headers=headers(1))).json()
        assert data["category"] == "finance"
        assert data["entries"][0]["user_id"] == 1

        empty = (await client.get("/api/v1/leaderboards/category/health", headers=headers(1))).json()
        assert empty["entries"] == []
        assert empty["user_position"] is None

    async def test_limit(self, client, clock, headers):
        for user_id in range(1, 5):
            await _mark_days(client, clock, headers, user_id, f"u{user_id}", user_id)
        data = (await client.get("/api/v1/leaderboards/global?limit=2", headers=headers(1))).json()
        assert len(data["entries"]) == 2
        assert data["total_participants"] == 4

    async def test_unknown_board(self, client, headers):
        assert (await client.get("/api/v1/leaderboards/galactic", headers=headers(1))).status_code == 422
        assert (await client.get("/api/v1/leaderboards/group", headers=headers(1))).status_code == 404
        assert (await client.get("/api/v1/leaderboards/category/cooking", headers=headers(1))).status_code == 422
