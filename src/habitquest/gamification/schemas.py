"""Pydantic response models for progress and achievement endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class ProgressResponse(BaseModel):
    user_id: int
    display_name: str
    level: int
    xp_into_level: int
    xp_for_level: int
    xp_to_next_level: int
    next_level: int
    total_xp_earned: int
    coins: int
    streak: int
    longest_streak: int
    total_completed_habits: int
    total_habits_created: int
    achievements_earned: int
    last_active: datetime | None = None


class AchievementResponse(BaseModel):
    slug: str
    title: str
    description: str
    kind: str
    threshold: int
    xp_reward: int
    coins_reward: int
    rarity: str
    earned: bool = False
    unlocked_at: datetime | None = None


class AchievementsResponse(BaseModel):
    achievements: list[AchievementResponse]
    total_available: int
    total_earned: int
