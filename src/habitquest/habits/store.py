"""Translate habit and user rows to and from the pure domain types."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from habitquest.db.models import Habit as HabitRow
from habitquest.db.models import HabitEntry, User
from habitquest.gamification.leveling import UserProgress
from habitquest.habits.calendar import DayCalendar
from habitquest.habits.domain import (
    Difficulty,
    Habit,
    HabitCategory,
    HistoryEntry,
    NegativeHabit,
    PositiveHabit,
)


async def get_or_create_user(
    db: AsyncSession,
    user_id: int,
    *,
    for_update: bool = False,
    display_name: str | None = None,
) -> User:
    """Get the user aggregate, creating an empty one on first sight."""
    stmt = select(User).where(User.id == user_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    user = (await db.execute(stmt)).scalar_one_or_none()
    if user is None:
        user = User(
            id=user_id,
            display_name=display_name or f"user-{user_id}",
            level=1,
            xp=0,
            coins=0,
            total_xp_earned=0,
            streak=0,
            longest_streak=0,
            total_completed_habits=0,
            total_habits_created=0,
            challenges_completed=0,
        )
        db.add(user)
        await db.flush()
    elif display_name and user.display_name != display_name:
        user.display_name = display_name
    return user


async def get_habit_row(
    db: AsyncSession,
    user_id: int,
    habit_id: int,
    *,
    for_update: bool = False,
) -> HabitRow | None:
    """Load one habit owned by `user_id`, or None."""
    stmt = select(HabitRow).where(HabitRow.id == habit_id, HabitRow.user_id == user_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    return (await db.execute(stmt)).scalar_one_or_none()


async def list_habit_rows(db: AsyncSession, user_id: int, category: str | None = None) -> list[HabitRow]:
    stmt = select(HabitRow).where(HabitRow.user_id == user_id).order_by(HabitRow.id)
    if category is not None:
        stmt = stmt.where(HabitRow.category == category)
    return list((await db.execute(stmt)).scalars().all())


def habit_from_row(row: HabitRow) -> Habit:
    history = tuple(HistoryEntry(date=e.occurred_at, completed=e.completed) for e in row.entries)
    if row.is_negative:
        return NegativeHabit(
            id=row.id,
            user_id=row.user_id,
            difficulty=Difficulty(row.difficulty),
            abstain_difficulty=Difficulty(row.abstain_difficulty) if row.abstain_difficulty else None,
            category=HabitCategory(row.category),
            history=history,
            streak=row.streak,
            longest_streak=row.longest_streak,
            abstain_days=row.abstain_days,
            max_abstain_days=row.max_abstain_days,
        )
    return PositiveHabit(
        id=row.id,
        user_id=row.user_id,
        difficulty=Difficulty(row.difficulty),
        category=HabitCategory(row.category),
        history=history,
        streak=row.streak,
        longest_streak=row.longest_streak,
    )


def apply_habit_state(row: HabitRow, habit: Habit, calendar: DayCalendar) -> None:
    """Write counters back and append history entries the row does not have yet."""
    row.streak = habit.streak
    row.longest_streak = habit.longest_streak
    if isinstance(habit, NegativeHabit):
        row.abstain_days = habit.abstain_days
        row.max_abstain_days = habit.max_abstain_days

    for entry in habit.history[len(row.entries):]:
        row.entries.append(HabitEntry(
            occurred_at=_to_utc(entry.date),
            day_key=calendar.day_key(entry.date),
            completed=entry.completed,
        ))


def progress_from_user(user: User) -> UserProgress:
    return UserProgress(
        level=user.level,
        xp=user.xp,
        coins=user.coins,
        total_xp_earned=user.total_xp_earned,
        streak=user.streak,
        longest_streak=user.longest_streak,
    )


def apply_progress(user: User, progress: UserProgress) -> None:
    user.level = progress.level
    user.xp = progress.xp
    user.coins = progress.coins
    user.total_xp_earned = progress.total_xp_earned
    user.streak = progress.streak
    user.longest_streak = progress.longest_streak


def _to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
