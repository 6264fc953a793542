"""Pydantic request/response models for habit endpoints."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from habitquest.habits.domain import Difficulty, HabitCategory


class HabitCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=128)
    description: str | None = Field(default=None, max_length=2000)
    is_negative: bool = False
    difficulty: Difficulty = Difficulty.EASY
    abstain_difficulty: Difficulty | None = None
    category: HabitCategory = HabitCategory.OTHER

    @model_validator(mode="after")
    def _abstain_only_for_negative(self) -> HabitCreateRequest:
        if self.abstain_difficulty is not None and not self.is_negative:
            msg = "abstain_difficulty only applies to negative habits"
            raise ValueError(msg)
        return self


class HabitUpdateRequest(BaseModel):
    """Partial edit. Only the fields sent are changed; polarity cannot be changed."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1, max_length=128)
    description: str | None = Field(default=None, max_length=2000)
    difficulty: Difficulty | None = None
    abstain_difficulty: Difficulty | None = None
    category: HabitCategory | None = None

    @model_validator(mode="after")
    def _required_fields_not_cleared(self) -> HabitUpdateRequest:
        cleared = [
            name for name in ("title", "difficulty", "category")
            if name in self.model_fields_set and getattr(self, name) is None
        ]
        if cleared:
            msg = f"Cannot clear {', '.join(cleared)}"
            raise ValueError(msg)
        return self


class HistoryEntryResponse(BaseModel):
    date: datetime
    day: date
    completed: bool


class HabitResponse(BaseModel):
    id: int
    title: str
    description: str | None = None
    is_negative: bool
    difficulty: Difficulty
    abstain_difficulty: Difficulty | None = None
    category: HabitCategory
    streak: int
    active_streak: int
    longest_streak: int
    abstain_days: int = 0
    max_abstain_days: int = 0
    marked_today: bool = False
    created_at: datetime | None = None
    history: list[HistoryEntryResponse] = []


class HabitListResponse(BaseModel):
    habits: list[HabitResponse]
    total: int


class RewardResponse(BaseModel):
    xp: int
    coins: int
    base_xp: int
    bonus_xp: int


class LevelResponse(BaseModel):
    level: int
    previous_level: int
    leveled_up: bool
    levels_gained: int
    xp_into_level: int
    xp_for_level: int


class UnlockedAchievement(BaseModel):
    slug: str
    title: str
    xp_reward: int
    coins_reward: int


class MarkResponse(BaseModel):
    habit: HabitResponse
    action: str
    streak: int
    previous_streak: int
    streak_broken: bool
    reward: RewardResponse
    level: LevelResponse
    achievements: list[UnlockedAchievement] = []


class HabitCreateResponse(BaseModel):
    habit: HabitResponse
    achievements: list[UnlockedAchievement] = []
