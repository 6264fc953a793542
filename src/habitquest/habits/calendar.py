"""Calendar-day utilities: day keys, day adjacency and the injectable clock.

All day arithmetic goes through one DayCalendar bound to one zone. Naive
datetimes are treated as UTC, which is how the database hands them back.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Protocol
from zoneinfo import ZoneInfo

ONE_DAY = timedelta(days=1)


class Clock(Protocol):
    """Source of the current instant."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FrozenClock:
    """Clock pinned to a fixed instant. Used by tests and replays."""

    def __init__(self, instant: datetime) -> None:
        self._instant = _as_aware(instant)

    def now(self) -> datetime:
        return self._instant

    def advance(self, delta: timedelta) -> None:
        self._instant = self._instant + delta


class DayCalendar:
    """Maps instants to calendar days in a single reference zone."""

    def __init__(self, tz: ZoneInfo | str = "UTC") -> None:
        self.tz = ZoneInfo(tz) if isinstance(tz, str) else tz

    def day_key(self, timestamp: datetime) -> date:
        """Truncate an instant to its calendar day in the reference zone."""
        return _as_aware(timestamp).astimezone(self.tz).date()

    def start_of_day(self, day: date) -> datetime:
        """Midnight of `day` in the reference zone, as an aware datetime."""
        return datetime(day.year, day.month, day.day, tzinfo=self.tz)

    def is_same_or_previous_day(self, earlier: date, current: date) -> bool:
        """True if `earlier` is `current` itself or the day before it."""
        return earlier == current or is_adjacent_day(earlier, current)


def is_adjacent_day(a: date, b: date) -> bool:
    """True iff b is exactly the day after a."""
    return b - a == ONE_DAY


def _as_aware(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt
