"""Habit API endpoints: CRUD plus the three daily marks."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from habitquest.auth.dependencies import CurrentUser, get_current_user
from habitquest.config import Settings
from habitquest.db.models import Habit as HabitRow
from habitquest.dependencies import get_app_settings, get_calendar, get_clock, get_db
from habitquest.gamification.achievements import AchievementDefinition
from habitquest.gamification.leveling import LevelCurve
from habitquest.habits.calendar import Clock, DayCalendar
from habitquest.habits.domain import MarkAction
from habitquest.habits.schemas import (
    HabitCreateRequest,
    HabitCreateResponse,
    HabitListResponse,
    HabitResponse,
    HabitUpdateRequest,
    HistoryEntryResponse,
    LevelResponse,
    MarkResponse,
    RewardResponse,
    UnlockedAchievement,
)
from habitquest.habits.service import (
    MarkResult,
    create_habit,
    delete_habit,
    get_habit,
    list_habits,
    mark_habit,
    update_habit,
)
from habitquest.habits.store import habit_from_row
from habitquest.habits.streak_engine import calculate_streak
from habitquest.middleware.error_handler import http_error

router = APIRouter(prefix="/api/v1/habits", tags=["Habits"])


def habit_response(row: HabitRow, calendar: DayCalendar, now: datetime) -> HabitResponse:
    habit = habit_from_row(row)
    last = habit.last_entry
    return HabitResponse(
        id=row.id,
        title=row.title,
        description=row.description,
        is_negative=row.is_negative,
        difficulty=row.difficulty,
        abstain_difficulty=row.abstain_difficulty,
        category=row.category,
        streak=row.streak,
        active_streak=calculate_streak(habit, calendar, today=now),
        longest_streak=row.longest_streak,
        abstain_days=row.abstain_days,
        max_abstain_days=row.max_abstain_days,
        marked_today=last is not None and calendar.day_key(last.date) == calendar.day_key(now),
        created_at=row.created_at,
        history=[
            HistoryEntryResponse(date=e.date, day=calendar.day_key(e.date), completed=e.completed)
            for e in habit.history
        ],
    )


def _unlocked(achievements: list[AchievementDefinition]) -> list[UnlockedAchievement]:
    return [
        UnlockedAchievement(slug=a.slug, title=a.title, xp_reward=a.xp_reward, coins_reward=a.coins_reward)
        for a in achievements
    ]


@router.get("", response_model=HabitListResponse)
async def list_my_habits(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    calendar: DayCalendar = Depends(get_calendar),
):
    """List the caller's habits with current and active streaks."""
    now = clock.now()
    rows = await list_habits(db, user.id)
    return HabitListResponse(habits=[habit_response(r, calendar, now) for r in rows], total=len(rows))


@router.post("", response_model=HabitCreateResponse, status_code=201)
async def create_my_habit(
    body: HabitCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    calendar: DayCalendar = Depends(get_calendar),
    settings: Settings = Depends(get_app_settings),
):
    """Create a positive or negative habit."""
    now = clock.now()
    row, unlocked = await create_habit(
        db,
        user.id,
        display_name=user.display_name,
        title=body.title,
        description=body.description,
        is_negative=body.is_negative,
        difficulty=body.difficulty,
        abstain_difficulty=body.abstain_difficulty,
        category=body.category,
        now=now,
        settings=settings,
    )
    return HabitCreateResponse(habit=habit_response(row, calendar, now), achievements=_unlocked(unlocked))


@router.get("/{habit_id}", response_model=HabitResponse)
async def get_my_habit(
    habit_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    calendar: DayCalendar = Depends(get_calendar),
):
    row = await get_habit(db, user.id, habit_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Habit not found")
    return habit_response(row, calendar, clock.now())


@router.patch("/{habit_id}", response_model=HabitResponse)
async def update_my_habit(
    habit_id: int,
    body: HabitUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    calendar: DayCalendar = Depends(get_calendar),
):
    """Edit title, description, difficulty, abstain difficulty or category."""
    result = await update_habit(db, user.id, habit_id, **body.model_dump(exclude_unset=True))
    if result is None:
        raise HTTPException(status_code=404, detail="Habit not found")
    if not isinstance(result, HabitRow):
        raise http_error(result)
    return habit_response(result, calendar, clock.now())


@router.delete("/{habit_id}", status_code=204)
async def delete_my_habit(
    habit_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    if not await delete_habit(db, user.id, habit_id):
        raise HTTPException(status_code=404, detail="Habit not found")
    return Response(status_code=204)


async def _mark(
    action: MarkAction,
    habit_id: int,
    user: CurrentUser,
    db: AsyncSession,
    clock: Clock,
    calendar: DayCalendar,
    settings: Settings,
) -> MarkResponse:
    now = clock.now()
    result = await mark_habit(
        db, user.id, habit_id, action,
        now=now, calendar=calendar, settings=settings, display_name=user.display_name,
    )
    if result is None:
        raise HTTPException(status_code=404, detail="Habit not found")
    if not isinstance(result, MarkResult):
        raise http_error(result)

    curve = LevelCurve.from_settings(settings)
    level = result.level
    return MarkResponse(
        habit=habit_response(result.habit, calendar, now),
        action=action.value,
        streak=result.update.streak,
        previous_streak=result.update.previous_streak,
        streak_broken=result.update.streak_broken,
        reward=RewardResponse(
            xp=result.reward.xp,
            coins=result.reward.coins,
            base_xp=result.reward.base_xp,
            bonus_xp=result.reward.bonus_xp,
        ),
        level=LevelResponse(
            level=level.new_level,
            previous_level=level.previous_level,
            leveled_up=level.leveled_up,
            levels_gained=level.levels_gained,
            xp_into_level=level.progress.xp,
            xp_for_level=curve.threshold(level.new_level),
        ),
        achievements=_unlocked(result.achievements),
    )


@router.post("/{habit_id}/complete", response_model=MarkResponse)
async def complete_habit(
    habit_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    calendar: DayCalendar = Depends(get_calendar),
    settings: Settings = Depends(get_app_settings),
):
    """Mark a positive habit as done today."""
    return await _mark(MarkAction.COMPLETE, habit_id, user, db, clock, calendar, settings)


@router.post("/{habit_id}/abstain", response_model=MarkResponse)
async def abstain_habit(
    habit_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    calendar: DayCalendar = Depends(get_calendar),
    settings: Settings = Depends(get_app_settings),
):
    """Record a successful day of not doing a negative habit."""
    return await _mark(MarkAction.ABSTAIN, habit_id, user, db, clock, calendar, settings)


@router.post("/{habit_id}/fail", response_model=MarkResponse)
async def fail_habit(
    habit_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    calendar: DayCalendar = Depends(get_calendar),
    settings: Settings = Depends(get_app_settings),
):
    """Record a slip on a negative habit. Resets its streak."""
    return await _mark(MarkAction.FAIL, habit_id, user, db, clock, calendar, settings)
