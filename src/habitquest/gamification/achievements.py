"""Achievement catalog and unlock rules.

Four kinds of thresholds: longest habit streak, total marks, user level and
number of habits created. Each achievement unlocks once per user and grants
its XP and coin reward.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class AchievementKind(str, Enum):
    STREAK = "streak"
    COMPLETIONS = "completions"
    LEVEL = "level"
    HABITS = "habits"


@dataclass(frozen=True)
class AchievementDefinition:
    slug: str
    title: str
    description: str
    kind: AchievementKind
    threshold: int
    xp_reward: int
    coins_reward: int
    rarity: str = "common"


@dataclass(frozen=True)
class AchievementStats:
    """Counters an unlock check looks at."""

    max_streak: int = 0
    completions: int = 0
    level: int = 1
    habits_created: int = 0

    def value_for(self, kind: AchievementKind) -> int:
        return {
            AchievementKind.STREAK: self.max_streak,
            AchievementKind.COMPLETIONS: self.completions,
            AchievementKind.LEVEL: self.level,
            AchievementKind.HABITS: self.habits_created,
        }[kind]


ACHIEVEMENT_SEED_DATA: list[dict] = [
    # Streaks
    {
        "slug": "streak_3",
        "title": "Consistent",
        "description": "Maintain a 3-day streak on any habit",
        "kind": "streak",
        "threshold": 3,
        "xp_reward": 20,
        "coins_reward": 10,
        "rarity": "common",
    },
    {
        "slug": "streak_7",
        "title": "Dedicated",
        "description": "Maintain a 7-day streak on any habit",
        "kind": "streak",
        "threshold": 7,
        "xp_reward": 50,
        "coins_reward": 25,
        "rarity": "uncommon",
    },
    {
        "slug": "streak_30",
        "title": "Committed",
        "description": "Maintain a 30-day streak on any habit",
        "kind": "streak",
        "threshold": 30,
        "xp_reward": 200,
        "coins_reward": 100,
        "rarity": "rare",
    },
    {
        "slug": "streak_100",
        "title": "Master of Habit",
        "description": "Maintain a 100-day streak on any habit",
        "kind": "streak",
        "threshold": 100,
        "xp_reward": 500,
        "coins_reward": 250,
        "rarity": "legendary",
    },
    # Completions
    {
        "slug": "completions_10",
        "title": "Beginner",
        "description": "Complete 10 habit tasks",
        "kind": "completions",
        "threshold": 10,
        "xp_reward": 30,
        "coins_reward": 15,
        "rarity": "common",
    },
    {
        "slug": "completions_50",
        "title": "Intermediate",
        "description": "Complete 50 habit tasks",
        "kind": "completions",
        "threshold": 50,
        "xp_reward": 100,
        "coins_reward": 50,
        "rarity": "uncommon",
    },
    {
        "slug": "completions_200",
        "title": "Expert",
        "description": "Complete 200 habit tasks",
        "kind": "completions",
        "threshold": 200,
        "xp_reward": 300,
        "coins_reward": 150,
        "rarity": "rare",
    },
    {
        "slug": "completions_1000",
        "title": "Habit Guru",
        "description": "Complete 1000 habit tasks",
        "kind": "completions",
        "threshold": 1000,
        "xp_reward": 1000,
        "coins_reward": 500,
        "rarity": "legendary",
    },
    # Levels
    {
        "slug": "level_5",
        "title": "Level 5",
        "description": "Reach level 5",
        "kind": "level",
        "threshold": 5,
        "xp_reward": 100,
        "coins_reward": 50,
        "rarity": "common",
    },
    {
        "slug": "level_10",
        "title": "Level 10",
        "description": "Reach level 10",
        "kind": "level",
        "threshold": 10,
        "xp_reward": 200,
        "coins_reward": 100,
        "rarity": "uncommon",
    },
    {
        "slug": "level_25",
        "title": "Level 25",
        "description": "Reach level 25",
        "kind": "level",
        "threshold": 25,
        "xp_reward": 500,
        "coins_reward": 250,
        "rarity": "rare",
    },
    {
        "slug": "level_50",
        "title": "Level 50",
        "description": "Reach level 50",
        "kind": "level",
        "threshold": 50,
        "xp_reward": 1000,
        "coins_reward": 500,
        "rarity": "epic",
    },
    {
        "slug": "level_100",
        "title": "Level 100",
        "description": "Reach level 100",
        "kind": "level",
        "threshold": 100,
        "xp_reward": 2000,
        "coins_reward": 1000,
        "rarity": "legendary",
    },
    # Habit creation
    {
        "slug": "habits_3",
        "title": "Habit Starter",
        "description": "Create 3 habits",
        "kind": "habits",
        "threshold": 3,
        "xp_reward": 30,
        "coins_reward": 15,
        "rarity": "common",
    },
    {
        "slug": "habits_10",
        "title": "Habit Collector",
        "description": "Create 10 habits",
        "kind": "habits",
        "threshold": 10,
        "xp_reward": 100,
        "coins_reward": 50,
        "rarity": "uncommon",
    },
    {
        "slug": "habits_20",
        "title": "Habit Enthusiast",
        "description": "Create 20 habits",
        "kind": "habits",
        "threshold": 20,
        "xp_reward": 200,
        "coins_reward": 100,
        "rarity": "rare",
    },
]

ACHIEVEMENTS: list[AchievementDefinition] = [
    AchievementDefinition(**{**data, "kind": AchievementKind(data["kind"])}) for data in ACHIEVEMENT_SEED_DATA
]
ACHIEVEMENTS_BY_SLUG: dict[str, AchievementDefinition] = {a.slug: a for a in ACHIEVEMENTS}


def check_achievements(
    stats: AchievementStats,
    earned: set[str] | frozenset[str],
    kinds: set[AchievementKind] | None = None,
) -> list[AchievementDefinition]:
    """Return achievements newly reached by `stats`, in catalog order."""
    unlocked = []
    for achievement in ACHIEVEMENTS:
        if achievement.slug in earned:
            continue
        if kinds is not None and achievement.kind not in kinds:
            continue
        if stats.value_for(achievement.kind) >= achievement.threshold:
            unlocked.append(achievement)
    return unlocked
