"""Pure habit state.

A habit is one of two variants. PositiveHabit only knows how to be completed;
NegativeHabit only knows how to be abstained from or failed. Both share the
same HistoryEntry record, where `completed` keeps its stored meaning:
True = performed (completed / failed), False = not performed (abstained).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from habitquest.errors import StreakError
    from habitquest.habits.calendar import DayCalendar
    from habitquest.habits.streak_engine import StreakUpdate


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class HabitCategory(str, Enum):
    HEALTH = "health"
    PRODUCTIVITY = "productivity"
    SOCIAL = "social"
    EDUCATION = "education"
    FINANCE = "finance"
    PERSONAL = "personal"
    OTHER = "other"


class MarkAction(str, Enum):
    COMPLETE = "complete"
    ABSTAIN = "abstain"
    FAIL = "fail"

    @property
    def outcome(self) -> bool:
        """Stored `completed` flag for this action."""
        return self is not MarkAction.ABSTAIN


@dataclass(frozen=True)
class HistoryEntry:
    date: datetime
    completed: bool


@dataclass(frozen=True)
class PositiveHabit:
    """Habit to build: each completed day extends the streak."""

    user_id: int
    difficulty: Difficulty
    id: int | None = None
    category: HabitCategory = HabitCategory.OTHER
    history: tuple[HistoryEntry, ...] = ()
    streak: int = 0
    longest_streak: int = 0

    is_negative: ClassVar[bool] = False
    actions: ClassVar[frozenset[MarkAction]] = frozenset({MarkAction.COMPLETE})

    @property
    def last_entry(self) -> HistoryEntry | None:
        return self.history[-1] if self.history else None

    def continues(self, entry: HistoryEntry) -> bool:
        return entry.completed

    def complete(self, at: datetime, calendar: DayCalendar) -> StreakUpdate | StreakError:
        from habitquest.habits.streak_engine import record_event

        return record_event(self, at, True, calendar)


@dataclass(frozen=True)
class NegativeHabit:
    """Habit to break: each abstained day extends the streak, a fail resets it."""

    user_id: int
    difficulty: Difficulty
    id: int | None = None
    abstain_difficulty: Difficulty | None = None
    category: HabitCategory = HabitCategory.OTHER
    history: tuple[HistoryEntry, ...] = ()
    streak: int = 0
    longest_streak: int = 0
    abstain_days: int = 0
    max_abstain_days: int = 0

    is_negative: ClassVar[bool] = True
    actions: ClassVar[frozenset[MarkAction]] = frozenset({MarkAction.ABSTAIN, MarkAction.FAIL})

    @property
    def last_entry(self) -> HistoryEntry | None:
        return self.history[-1] if self.history else None

    @property
    def reward_difficulty(self) -> Difficulty:
        return self.abstain_difficulty or self.difficulty

    def continues(self, entry: HistoryEntry) -> bool:
        return not entry.completed

    def abstain(self, at: datetime, calendar: DayCalendar) -> StreakUpdate | StreakError:
        from habitquest.habits.streak_engine import record_event

        return record_event(self, at, False, calendar)

    def fail(self, at: datetime, calendar: DayCalendar) -> StreakUpdate | StreakError:
        from habitquest.habits.streak_engine import record_event

        return record_event(self, at, True, calendar)


Habit = PositiveHabit | NegativeHabit
