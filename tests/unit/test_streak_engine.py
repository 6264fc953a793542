"""Streak engine tests: continuity, gaps, duplicates, polarity, purity."""

from datetime import date, datetime, timedelta, timezone

import pytest

from habitquest.errors import AlreadyMarkedToday, EventOutOfOrder, HabitPolarityMismatch
from habitquest.habits.calendar import DayCalendar
from habitquest.habits.domain import Difficulty, HistoryEntry, NegativeHabit, PositiveHabit
from habitquest.habits.streak_engine import StreakUpdate, calculate_streak, record_event

CAL = DayCalendar("UTC")
DAY1 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def day(n: int, hour: int = 9) -> datetime:
    """Instant on day n (1-based) at the given hour."""
    return DAY1.replace(hour=hour) + timedelta(days=n - 1)


def positive(**kwargs) -> PositiveHabit:
    return PositiveHabit(user_id=1, difficulty=Difficulty.MEDIUM, id=10, **kwargs)


def negative(**kwargs) -> NegativeHabit:
    return NegativeHabit(user_id=1, difficulty=Difficulty.MEDIUM, id=20, **kwargs)


def run(habit, *events):
    """Apply (datetime, outcome) events in order, failing on any error value."""
    for at, outcome in events:
        update = record_event(habit, at, outcome, CAL)
        assert isinstance(update, StreakUpdate), update
        habit = update.habit
    return habit


class TestPositiveStreaks:
    """Completing a positive habit."""

    def test_first_completion_starts_at_one(self):
        update = record_event(positive(), day(1), True, CAL)
        assert update.streak == 1
        assert update.previous_streak == 0
        assert update.continuing is True
        assert update.streak_broken is False
        assert update.habit.longest_streak == 1

    def test_consecutive_days_increment(self):
        habit = run(positive(), *[(day(n), True) for n in range(1, 6)])
        assert habit.streak == 5
        assert habit.longest_streak == 5
        assert len(habit.history) == 5

    def test_gap_restarts_at_one(self):
        habit = run(positive(), (day(1), True), (day(2), True))
        update = record_event(habit, day(4), True, CAL)
        assert update.streak == 1
        assert update.previous_streak == 2
        assert update.streak_broken is True
        assert update.habit.longest_streak == 2

    def test_late_night_then_early_morning_is_adjacent(self):
        habit = run(positive(), (day(1, hour=23), True))
        update = record_event(habit, day(2, hour=0), True, CAL)
        assert update.streak == 2

    def test_longest_streak_survives_restart(self):
        habit = run(positive(), *[(day(n), True) for n in range(1, 4)], (day(10), True), (day(11), True))
        assert habit.streak == 2
        assert habit.longest_streak == 3

    def test_abstain_on_positive_is_polarity_mismatch(self):
        result = record_event(positive(), day(1), False, CAL)
        assert isinstance(result, HabitPolarityMismatch)
        assert result.habit_id == 10
        assert result.action == "abstain"

    def test_convenience_complete(self):
        update = positive().complete(day(1), CAL)
        assert isinstance(update, StreakUpdate)
        assert update.streak == 1


class TestNegativeStreaks:
    """Abstaining from / failing a negative habit."""

    def test_abstain_days_and_streak(self):
        habit = run(negative(), *[(day(n), False) for n in range(1, 5)])
        assert habit.streak == 4
        assert habit.abstain_days == 4
        assert habit.max_abstain_days == 4

    def test_fail_resets_streak_and_abstain_days(self):
        habit = run(negative(), *[(day(n), False) for n in range(1, 4)])
        update = record_event(habit, day(4), True, CAL)
        assert update.streak == 0
        assert update.continuing is False
        assert update.streak_broken is True
        assert update.habit.abstain_days == 0
        assert update.habit.max_abstain_days == 3
        assert update.habit.longest_streak == 3

    def test_fail_on_fresh_habit_is_not_a_break(self):
        update = record_event(negative(), day(1), True, CAL)
        assert update.streak == 0
        assert update.streak_broken is False

    def test_abstain_after_fail_restarts(self):
        habit = run(negative(), (day(1), False), (day(2), True))
        update = record_event(habit, day(3), False, CAL)
        assert update.streak == 1
        assert update.habit.abstain_days == 1

    def test_abstain_days_count_through_gaps(self):
        """A gap restarts the streak but only a fail resets abstain days."""
        habit = run(negative(), (day(1), False), (day(2), False), (day(5), False))
        assert habit.streak == 1
        assert habit.abstain_days == 3

    def test_convenience_wrappers(self):
        habit = negative()
        abstained = habit.abstain(day(1), CAL)
        assert abstained.habit.streak == 1
        failed = abstained.habit.fail(day(2), CAL)
        assert failed.habit.streak == 0


class TestRejections:
    """Duplicate and out-of-order marks are rejected and nothing changes."""

    def test_second_mark_same_day(self):
        habit = run(positive(), (day(1, hour=8), True))
        result = record_event(habit, day(1, hour=22), True, CAL)
        assert isinstance(result, AlreadyMarkedToday)
        assert result.day == date(2026, 3, 2)

    def test_fail_after_abstain_same_day(self):
        habit = run(negative(), (day(1), False))
        assert isinstance(record_event(habit, day(1, hour=20), True, CAL), AlreadyMarkedToday)

    def test_event_before_last_entry(self):
        habit = run(positive(), (day(3), True))
        result = record_event(habit, day(1), True, CAL)
        assert isinstance(result, EventOutOfOrder)
        assert result.last_day == date(2026, 3, 4)

    def test_day_boundary_follows_zone(self):
        """Two marks on the same UTC day fall on different Tokyo days."""
        tokyo = DayCalendar("Asia/Tokyo")
        habit = positive()
        first = record_event(habit, datetime(2026, 3, 2, 1, 0, tzinfo=timezone.utc), True, tokyo)
        second = record_event(first.habit, datetime(2026, 3, 2, 16, 0, tzinfo=timezone.utc), True, tokyo)
        assert isinstance(second, StreakUpdate)
        assert second.streak == 2


class TestPurity:
    def test_input_habit_is_untouched(self):
        habit = run(positive(), (day(1), True))
        before = (habit.streak, habit.longest_streak, habit.history)
        record_event(habit, day(2), True, CAL)
        assert (habit.streak, habit.longest_streak, habit.history) == before

    def test_rejection_returns_no_state(self):
        habit = run(positive(), (day(1), True))
        result = record_event(habit, day(1), True, CAL)
        assert not isinstance(result, StreakUpdate)
        assert len(habit.history) == 1


class TestCalculateStreak:
    """Recomputing a run from history."""

    def test_matches_stored_streak(self):
        habit = run(positive(), (day(1), True), (day(3), True), (day(4), True))
        assert calculate_streak(habit, CAL) == habit.streak == 2

    def test_stale_run_is_zero(self):
        habit = run(positive(), (day(1), True), (day(2), True))
        assert calculate_streak(habit, CAL, today=day(3)) == 2
        assert calculate_streak(habit, CAL, today=day(4)) == 0

    def test_negative_run_stops_at_fail(self):
        habit = run(negative(), (day(1), False), (day(2), True), (day(3), False), (day(4), False))
        assert calculate_streak(habit, CAL) == 2

    def test_empty_history(self):
        assert calculate_streak(positive(), CAL) == 0

    def test_manual_history(self):
        habit = positive(history=(HistoryEntry(day(1), True), HistoryEntry(day(2), True)))
        assert calculate_streak(habit, CAL, today=day(2)) == 2


@pytest.mark.parametrize("n", [1, 2, 7, 30])
def test_n_consecutive_days_give_streak_n(n):
    habit = run(positive(), *[(day(i), True) for i in range(1, n + 1)])
    assert habit.streak == n
