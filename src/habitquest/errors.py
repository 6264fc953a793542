"""Error values returned (not raised) by the streak, ranking and lookup code.

Callers branch on them with isinstance(); the HTTP layer maps each one to a
status code in habitquest.middleware.error_handler.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date


@dataclass(frozen=True)
class AlreadyMarkedToday:
    """A second mark was attempted on the same calendar day."""

    habit_id: int | None
    day: date
    message: str = "Habit already marked today"


@dataclass(frozen=True)
class EventOutOfOrder:
    """The event falls on a day before the habit's most recent entry."""

    habit_id: int | None
    day: date
    last_day: date
    message: str = "Event is older than the latest history entry"


@dataclass(frozen=True)
class HabitPolarityMismatch:
    """Action does not exist for this habit polarity (e.g. abstain on a positive habit)."""

    habit_id: int | None
    action: str
    message: str = "Action not allowed for this habit type"


@dataclass(frozen=True)
class InvalidMetrics:
    """Leaderboard metrics contained negative or non-finite values."""

    user_id: int
    fields: dict[str, float] = field(default_factory=dict)
    message: str = "Metrics must be finite and non-negative"


@dataclass(frozen=True)
class NotFound:
    """The user has no entry on the requested leaderboard."""

    user_id: int
    message: str = "User not in leaderboard"


StreakError = AlreadyMarkedToday | EventOutOfOrder | HabitPolarityMismatch


@dataclass(frozen=True)
class ChallengeExpired:
    """The challenge window has closed."""

    challenge_id: int
    message: str = "Challenge has expired"


@dataclass(frozen=True)
class ChallengeAlreadyJoined:
    challenge_id: int
    message: str = "Already joined this challenge"


@dataclass(frozen=True)
class ChallengeNotJoined:
    challenge_id: int
    message: str = "You have not joined this challenge"


@dataclass(frozen=True)
class ChallengeAlreadyCompleted:
    challenge_id: int
    message: str = "Already completed this challenge"


ChallengeError = ChallengeExpired | ChallengeAlreadyJoined | ChallengeNotJoined | ChallengeAlreadyCompleted
