"""Pydantic response models for leaderboard endpoints."""

from __future__ import annotations

from pydantic import BaseModel


class MetricsResponse(BaseModel):
    habits_completed: float
    challenges_completed: float
    max_streak: float
    xp_earned: float
    days_active: float


class LeaderboardEntryResponse(BaseModel):
    rank: int
    user_id: int
    display_name: str
    level: int
    score: int
    rank_change: int
    metrics: MetricsResponse | None = None


class UserPositionResponse(BaseModel):
    entry: LeaderboardEntryResponse
    users_above: list[LeaderboardEntryResponse]
    users_below: list[LeaderboardEntryResponse]


class LeaderboardResponse(BaseModel):
    board_type: str
    category: str | None = None
    period_key: str | None = None
    total_participants: int
    avg_score: int
    highest_score: int
    entries: list[LeaderboardEntryResponse]
    user_position: UserPositionResponse | None = None
