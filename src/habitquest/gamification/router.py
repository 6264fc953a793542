"""Progress and achievement endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from habitquest.auth.dependencies import CurrentUser, get_current_user
from habitquest.config import Settings
from habitquest.dependencies import get_app_settings, get_db
from habitquest.gamification.leveling import LevelCurve, level_info
from habitquest.gamification.schemas import AchievementResponse, AchievementsResponse, ProgressResponse
from habitquest.gamification.service import get_earned_slugs, list_achievements
from habitquest.habits.store import get_or_create_user, progress_from_user

router = APIRouter(prefix="/api/v1", tags=["Gamification"])


@router.get("/me/progress", response_model=ProgressResponse)
async def my_progress(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """Level, XP, coins and streak mirrors for the caller."""
    row = await get_or_create_user(db, user.id, display_name=user.display_name)
    await db.commit()
    info = level_info(progress_from_user(row), LevelCurve.from_settings(settings))
    return ProgressResponse(
        user_id=row.id,
        display_name=row.display_name,
        **info,
        total_xp_earned=row.total_xp_earned,
        coins=row.coins,
        streak=row.streak,
        longest_streak=row.longest_streak,
        total_completed_habits=row.total_completed_habits,
        total_habits_created=row.total_habits_created,
        achievements_earned=len(await get_earned_slugs(db, row.id)),
        last_active=row.last_active,
    )


@router.get("/achievements", response_model=AchievementsResponse)
async def my_achievements(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Full achievement catalog with the caller's earned flags."""
    items = [AchievementResponse(**a) for a in await list_achievements(db, user.id)]
    return AchievementsResponse(
        achievements=items,
        total_available=len(items),
        total_earned=sum(1 for a in items if a.earned),
    )
