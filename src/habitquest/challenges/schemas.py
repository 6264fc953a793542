"""Pydantic request/response models for challenge endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from habitquest.challenges.service import ChallengeKind
from habitquest.habits.domain import Difficulty
from habitquest.habits.schemas import UnlockedAchievement


class ChallengeCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=128)
    description: str = Field(min_length=1, max_length=2000)
    kind: ChallengeKind = ChallengeKind.DAILY
    difficulty: Difficulty = Difficulty.MEDIUM
    xp_reward: int = Field(default=50, ge=0, le=10_000)
    coins_reward: int = Field(default=10, ge=0, le=10_000)
    duration_days: int = Field(default=1, ge=1, le=365)


class ChallengeResponse(BaseModel):
    id: int
    title: str
    description: str
    kind: str
    difficulty: str
    xp_reward: int
    coins_reward: int
    starts_at: datetime
    ends_at: datetime
    participants: int
    completions: int
    created_by: int | None = None
    status: str | None = None


class ChallengeListResponse(BaseModel):
    active: list[ChallengeResponse]
    completed: list[ChallengeResponse]
    available: list[ChallengeResponse]


class ChallengeCompleteResponse(BaseModel):
    challenge: ChallengeResponse
    xp: int
    coins: int
    level: int
    leveled_up: bool
    achievements: list[UnlockedAchievement] = []
