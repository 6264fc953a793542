"""Habit CRUD and the daily mark unit of work.

A mark runs as: lock habit and user -> load -> streak engine -> reward ->
level progression -> achievements -> save -> commit. The pure engine works
on copies, so a failed save leaves nothing half-applied in memory; the
session is rolled back and the rows stay as they were.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from habitquest.competition.leaderboard_service import refresh_after_write
from habitquest.config import Settings, get_settings
from habitquest.db.models import Habit as HabitRow
from habitquest.errors import HabitPolarityMismatch, StreakError
from habitquest.gamification.achievements import AchievementDefinition, AchievementKind
from habitquest.gamification.leveling import LevelCurve, LevelUpdate, mirror_streak
from habitquest.gamification.rewards import RewardAmounts, RewardTable, compute_reward
from habitquest.gamification.service import grant_experience, unlock_achievements
from habitquest.habits.calendar import DayCalendar
from habitquest.habits.domain import Difficulty, HabitCategory, MarkAction
from habitquest.habits.store import (
    apply_habit_state,
    apply_progress,
    get_habit_row,
    get_or_create_user,
    habit_from_row,
    list_habit_rows,
    progress_from_user,
)
from habitquest.habits.streak_engine import StreakUpdate, record_event
from habitquest.locks import habit_locks, user_locks

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"title", "description", "difficulty", "abstain_difficulty", "category"})


@dataclass(frozen=True)
class MarkResult:
    habit: HabitRow
    update: StreakUpdate
    reward: RewardAmounts
    level: LevelUpdate
    achievements: list[AchievementDefinition] = field(default_factory=list)


async def create_habit(
    db: AsyncSession,
    user_id: int,
    *,
    title: str,
    difficulty: Difficulty,
    is_negative: bool = False,
    abstain_difficulty: Difficulty | None = None,
    category: HabitCategory = HabitCategory.OTHER,
    description: str | None = None,
    display_name: str | None = None,
    now: datetime | None = None,
    settings: Settings | None = None,
) -> tuple[HabitRow, list[AchievementDefinition]]:
    """Create a habit and unlock habit-count achievements."""
    if now is None:
        now = datetime.now(timezone.utc)
    if settings is None:
        settings = get_settings()

    async with user_locks.hold(user_id):
        user = await get_or_create_user(db, user_id, for_update=True, display_name=display_name)
        row = HabitRow(
            user_id=user_id,
            title=title,
            description=description,
            is_negative=is_negative,
            difficulty=difficulty.value,
            abstain_difficulty=abstain_difficulty.value if is_negative and abstain_difficulty else None,
            category=category.value,
            streak=0,
            longest_streak=0,
            abstain_days=0,
            max_abstain_days=0,
            created_at=now,
            entries=[],
        )
        db.add(row)
        user.total_habits_created += 1
        unlocked = await unlock_achievements(
            db, user, kinds={AchievementKind.HABITS}, now=now, curve=LevelCurve.from_settings(settings),
        )
        await db.commit()

    logger.info("habit_created user=%d habit=%d negative=%s", user_id, row.id, is_negative)
    return row, unlocked


async def list_habits(db: AsyncSession, user_id: int) -> list[HabitRow]:
    return await list_habit_rows(db, user_id)


async def get_habit(db: AsyncSession, user_id: int, habit_id: int) -> HabitRow | None:
    return await get_habit_row(db, user_id, habit_id)


async def update_habit(
    db: AsyncSession,
    user_id: int,
    habit_id: int,
    **fields: object,
) -> HabitRow | HabitPolarityMismatch | None:
    """Edit a habit's descriptive fields. Polarity, streaks and history stay as they are.

    Returns None when the habit does not exist for this user, or
    HabitPolarityMismatch when an abstain difficulty is set on a positive habit.
    A new difficulty or category applies to marks and boards from now on.
    """
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        msg = f"Fields cannot be updated: {sorted(unknown)}"
        raise ValueError(msg)

    async with habit_locks.hold(habit_id):
        row = await get_habit_row(db, user_id, habit_id, for_update=True)
        if row is None:
            return None
        if fields.get("abstain_difficulty") is not None and not row.is_negative:
            return HabitPolarityMismatch(habit_id, "update")

        for name, value in fields.items():
            setattr(row, name, value.value if isinstance(value, Enum) else value)
        await db.commit()

    logger.info("habit_updated user=%d habit=%d fields=%s", user_id, habit_id, ",".join(sorted(fields)))
    return row


async def delete_habit(db: AsyncSession, user_id: int, habit_id: int) -> bool:
    """Delete a habit and its history. Returns False if it does not exist."""
    async with habit_locks.hold(habit_id):
        row = await get_habit_row(db, user_id, habit_id, for_update=True)
        if row is None:
            return False
        await db.delete(row)
        await db.commit()
    logger.info("habit_deleted user=%d habit=%d", user_id, habit_id)
    return True


async def mark_habit(
    db: AsyncSession,
    user_id: int,
    habit_id: int,
    action: MarkAction,
    *,
    now: datetime | None = None,
    calendar: DayCalendar | None = None,
    settings: Settings | None = None,
    display_name: str | None = None,
    refresh_leaderboards: bool = True,
) -> MarkResult | StreakError | None:
    """Record today's complete / abstain / fail on a habit.

    Returns None when the habit does not exist for this user, or a StreakError
    value when the mark is rejected. Nothing is written in either case.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    if settings is None:
        settings = get_settings()
    if calendar is None:
        calendar = DayCalendar(settings.day_boundary_timezone)
    table = RewardTable.from_settings(settings)
    curve = LevelCurve.from_settings(settings)

    async with habit_locks.hold(habit_id), user_locks.hold(user_id):
        row = await get_habit_row(db, user_id, habit_id, for_update=True)
        if row is None:
            return None

        habit = habit_from_row(row)
        if action not in habit.actions:
            return HabitPolarityMismatch(habit.id, action.value)

        update = record_event(habit, now, action.outcome, calendar)
        if not isinstance(update, StreakUpdate):
            logger.info(
                "habit_mark_rejected user=%d habit=%d action=%s reason=%s",
                user_id, habit_id, action.value, type(update).__name__,
            )
            return update

        reward = compute_reward(update.habit, update, table)

        try:
            user = await get_or_create_user(db, user_id, for_update=True, display_name=display_name)
            apply_habit_state(row, update.habit, calendar)

            level = await grant_experience(
                db, user, reward.xp, reward.coins,
                "habit_mark", str(habit_id), f"{action.value}: {row.title}",
                now=now, curve=curve,
            )
            apply_progress(user, mirror_streak(progress_from_user(user), update.streak))
            if update.continuing:
                user.total_completed_habits += 1
            user.last_active = now

            unlocked = await unlock_achievements(db, user, now=now, curve=curve)
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            raise

        # Achievement payouts can level the user up again after the mark itself.
        final = progress_from_user(user)
        level = LevelUpdate(
            progress=final,
            previous_level=level.previous_level,
            leveled_up=final.level > level.previous_level,
        )

    logger.info(
        "habit_marked user=%d habit=%d action=%s streak=%d xp=%d coins=%d",
        user_id, habit_id, action.value, update.streak, reward.xp, reward.coins,
    )

    if refresh_leaderboards:
        await refresh_after_write(db, user_id, now=now, calendar=calendar, reload=(row,))

    return MarkResult(habit=row, update=update, reward=reward, level=level, achievements=unlocked)
