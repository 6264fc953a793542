"""Level progression.

threshold(level) = level * 100 + 50 by default. XP is per-level: on level-up
the threshold is subtracted and the remainder carries into the next level.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from habitquest.config import Settings


@dataclass(frozen=True)
class LevelCurve:
    base: int = 100
    offset: int = 50

    def __post_init__(self) -> None:
        if self.base <= 0 or self.offset < 0:
            msg = f"Level curve needs base > 0 and offset >= 0 (base={self.base}, offset={self.offset})"
            raise ValueError(msg)

    @classmethod
    def from_settings(cls, settings: Settings) -> LevelCurve:
        return cls(base=settings.level_threshold_base, offset=settings.level_threshold_offset)

    def threshold(self, level: int) -> int:
        """XP needed to go from `level` to `level + 1`."""
        return level * self.base + self.offset


DEFAULT_CURVE = LevelCurve()


@dataclass(frozen=True)
class UserProgress:
    level: int = 1
    xp: int = 0
    coins: int = 0
    total_xp_earned: int = 0
    streak: int = 0
    longest_streak: int = 0


@dataclass(frozen=True)
class LevelUpdate:
    progress: UserProgress
    previous_level: int
    leveled_up: bool

    @property
    def new_level(self) -> int:
        return self.progress.level

    @property
    def levels_gained(self) -> int:
        return self.progress.level - self.previous_level


def apply_experience(
    progress: UserProgress,
    xp_gained: int,
    curve: LevelCurve = DEFAULT_CURVE,
    coins_gained: int = 0,
) -> LevelUpdate:
    """Add XP (and coins) and level up as many times as the XP allows.

    Post-condition: 0 <= xp < curve.threshold(level).
    """
    if xp_gained < 0 or coins_gained < 0:
        msg = f"Rewards must be non-negative (xp={xp_gained}, coins={coins_gained})"
        raise ValueError(msg)

    level = progress.level
    xp = progress.xp + xp_gained
    threshold = curve.threshold(level)
    while xp >= threshold:
        xp -= threshold
        level += 1
        threshold = curve.threshold(level)

    new_progress = replace(
        progress,
        level=level,
        xp=xp,
        coins=progress.coins + coins_gained,
        total_xp_earned=progress.total_xp_earned + xp_gained,
    )
    return LevelUpdate(
        progress=new_progress,
        previous_level=progress.level,
        leveled_up=level > progress.level,
    )


def mirror_streak(progress: UserProgress, habit_streak: int) -> UserProgress:
    """Raise the user's streak mirrors to a habit's streak when it is higher."""
    streak = max(progress.streak, habit_streak)
    return replace(progress, streak=streak, longest_streak=max(progress.longest_streak, streak))


def level_info(progress: UserProgress, curve: LevelCurve = DEFAULT_CURVE) -> dict:
    """Level summary for API responses."""
    xp_for_level = curve.threshold(progress.level)
    return {
        "level": progress.level,
        "xp_into_level": progress.xp,
        "xp_for_level": xp_for_level,
        "xp_to_next_level": xp_for_level - progress.xp,
        "next_level": progress.level + 1,
    }
