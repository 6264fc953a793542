"""Reward calculation for habit marks: pure, no DB access.

XP = base XP by difficulty + streak bonus.
Coins = half the base XP (rounded half-up); the bonus never produces coins.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from habitquest.habits.domain import Difficulty, Habit, NegativeHabit
from habitquest.rounding import round_half_up

if TYPE_CHECKING:
    from habitquest.config import Settings
    from habitquest.habits.streak_engine import StreakUpdate

BASE_XP: dict[Difficulty, int] = {
    Difficulty.EASY: 5,
    Difficulty.MEDIUM: 10,
    Difficulty.HARD: 15,
}


@dataclass(frozen=True)
class RewardTable:
    base_xp: Mapping[Difficulty, int] = field(default_factory=lambda: dict(BASE_XP))
    combo_bonus_per_day: int = 2
    combo_bonus_cap: int = 20
    abstain_bonus_per_day: int = 2
    abstain_bonus_cap: int = 20

    @classmethod
    def from_settings(cls, settings: Settings) -> RewardTable:
        return cls(
            base_xp={
                Difficulty.EASY: settings.reward_xp_easy,
                Difficulty.MEDIUM: settings.reward_xp_medium,
                Difficulty.HARD: settings.reward_xp_hard,
            },
            combo_bonus_per_day=settings.combo_bonus_per_day,
            combo_bonus_cap=settings.combo_bonus_cap,
            abstain_bonus_per_day=settings.abstain_bonus_per_day,
            abstain_bonus_cap=settings.abstain_bonus_cap,
        )


DEFAULT_REWARD_TABLE = RewardTable()


@dataclass(frozen=True)
class RewardAmounts:
    xp: int
    coins: int
    base_xp: int = 0
    bonus_xp: int = 0


NO_REWARD = RewardAmounts(xp=0, coins=0)


def streak_bonus(days: int, per_day: int, cap: int) -> int:
    """Bonus for every qualifying day beyond the first, capped."""
    if days <= 1:
        return 0
    return min((days - 1) * per_day, cap)


def coins_for(base_xp: int) -> int:
    return round_half_up(base_xp / 2)


def compute_reward(
    habit: Habit,
    update: StreakUpdate,
    table: RewardTable = DEFAULT_REWARD_TABLE,
) -> RewardAmounts:
    """Compute the XP and coins earned by one streak update.

    Positive habits get the combo bonus scaled by the streak; negative habits
    get the abstain bonus scaled by consecutive abstain days. Breaking events
    (a fail on a negative habit) earn nothing.
    """
    if not update.continuing:
        return NO_REWARD

    if isinstance(habit, NegativeHabit):
        base = table.base_xp[habit.reward_difficulty]
        bonus = streak_bonus(update.abstain_days, table.abstain_bonus_per_day, table.abstain_bonus_cap)
    else:
        base = table.base_xp[habit.difficulty]
        bonus = streak_bonus(update.streak, table.combo_bonus_per_day, table.combo_bonus_cap)

    return RewardAmounts(xp=base + bonus, coins=coins_for(base), base_xp=base, bonus_xp=bonus)
