"""Leaderboard endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from habitquest.auth.dependencies import CurrentUser, get_current_user
from habitquest.competition.leaderboard_service import get_leaderboard_view
from habitquest.competition.ranking import BoardType
from habitquest.competition.schemas import LeaderboardResponse
from habitquest.config import Settings
from habitquest.dependencies import get_app_settings, get_calendar, get_clock, get_db
from habitquest.habits.calendar import Clock, DayCalendar
from habitquest.habits.domain import HabitCategory

router = APIRouter(prefix="/api/v1/leaderboards", tags=["Leaderboards"])

# Boards reachable by type alone. Category boards have their own route.
TYPED_BOARDS = frozenset({BoardType.GLOBAL, BoardType.WEEKLY, BoardType.MONTHLY, BoardType.STREAK})


def _limit(limit: int | None, settings: Settings) -> int:
    if limit is None:
        return settings.leaderboard_default_limit
    return min(limit, settings.leaderboard_max_limit)


@router.get("/category/{category}", response_model=LeaderboardResponse)
async def category_leaderboard(
    category: HabitCategory,
    limit: int | None = Query(None, ge=1),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    calendar: DayCalendar = Depends(get_calendar),
    settings: Settings = Depends(get_app_settings),
):
    """Top users for one habit category plus the caller's position."""
    return await get_leaderboard_view(
        db,
        BoardType.CATEGORY,
        user.id,
        today=calendar.day_key(clock.now()),
        category=category.value,
        limit=_limit(limit, settings),
    )


@router.get("/{board_type}", response_model=LeaderboardResponse)
async def leaderboard(
    board_type: BoardType,
    limit: int | None = Query(None, ge=1),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    calendar: DayCalendar = Depends(get_calendar),
    settings: Settings = Depends(get_app_settings),
):
    """Top users for the current global, weekly, monthly or streak board."""
    if board_type not in TYPED_BOARDS:
        raise HTTPException(status_code=404, detail=f"No '{board_type.value}' leaderboard at this path")
    return await get_leaderboard_view(
        db,
        board_type,
        user.id,
        today=calendar.day_key(clock.now()),
        limit=_limit(limit, settings),
    )
