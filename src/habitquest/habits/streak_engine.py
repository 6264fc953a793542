"""Streak engine: applies one daily event to a habit's history.

Pure functions, no DB access. The input habit is never mutated; a new habit
state is returned inside StreakUpdate so a failed save upstream leaves
nothing half-applied.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime

from habitquest.errors import AlreadyMarkedToday, EventOutOfOrder, HabitPolarityMismatch, StreakError
from habitquest.habits.calendar import DayCalendar
from habitquest.habits.domain import Habit, HistoryEntry, MarkAction, NegativeHabit, PositiveHabit


@dataclass(frozen=True)
class StreakUpdate:
    habit: Habit
    event: HistoryEntry
    streak: int
    previous_streak: int
    streak_broken: bool
    continuing: bool

    @property
    def abstain_days(self) -> int:
        return self.habit.abstain_days if isinstance(self.habit, NegativeHabit) else 0


def record_event(
    habit: Habit,
    event_date: datetime,
    outcome: bool,
    calendar: DayCalendar,
) -> StreakUpdate | StreakError:
    """Append one event and recompute the streak counters.

    Positive habits accept only outcome=True (completed). Negative habits take
    outcome=False as abstained (continues the streak) and outcome=True as
    failed (resets streak and abstain days).
    """
    if isinstance(habit, PositiveHabit) and not outcome:
        return HabitPolarityMismatch(habit.id, MarkAction.ABSTAIN.value)

    event_day = calendar.day_key(event_date)
    last = habit.last_entry
    last_day = calendar.day_key(last.date) if last is not None else None

    if last_day is not None:
        if last_day == event_day:
            return AlreadyMarkedToday(habit.id, event_day)
        if event_day < last_day:
            return EventOutOfOrder(habit.id, event_day, last_day)

    entry = HistoryEntry(date=event_date, completed=outcome)
    continuing = habit.continues(entry)
    previous_streak = habit.streak

    if continuing:
        continued = (
            last is not None
            and habit.continues(last)
            and calendar.is_same_or_previous_day(last_day, event_day)
        )
        streak = previous_streak + 1 if continued else 1
        broken = previous_streak > 0 and not continued
    else:
        streak = 0
        broken = previous_streak > 0

    changes: dict[str, object] = {
        "history": (*habit.history, entry),
        "streak": streak,
        "longest_streak": max(habit.longest_streak, streak),
    }
    if isinstance(habit, NegativeHabit):
        abstain_days = habit.abstain_days + 1 if continuing else 0
        changes["abstain_days"] = abstain_days
        changes["max_abstain_days"] = max(habit.max_abstain_days, abstain_days)

    return StreakUpdate(
        habit=replace(habit, **changes),
        event=entry,
        streak=streak,
        previous_streak=previous_streak,
        streak_broken=broken,
        continuing=continuing,
    )


def calculate_streak(habit: Habit, calendar: DayCalendar, today: datetime | None = None) -> int:
    """Length of the unbroken run of continuing days ending at the latest entry.

    With `today` given, a run whose last day is older than yesterday counts as 0.
    Used to verify stored counters against history.
    """
    run = 0
    previous_day = None
    for entry in reversed(habit.history):
        if not habit.continues(entry):
            break
        day = calendar.day_key(entry.date)
        if previous_day is not None and not calendar.is_same_or_previous_day(day, previous_day):
            break
        run += 1
        previous_day = day

    if run and today is not None:
        last_day = calendar.day_key(habit.history[-1].date)
        if not calendar.is_same_or_previous_day(last_day, calendar.day_key(today)):
            return 0
    return run
