"""XP grants and achievement unlocks against the user aggregate.

Both functions mutate rows in the caller's session and never commit; the
caller owns the unit of work.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from habitquest.db.models import User, UserAchievement, XPLedger
from habitquest.gamification.achievements import (
    ACHIEVEMENTS,
    AchievementDefinition,
    AchievementKind,
    AchievementStats,
    check_achievements,
)
from habitquest.gamification.leveling import DEFAULT_CURVE, LevelCurve, LevelUpdate, apply_experience
from habitquest.habits.store import apply_progress, progress_from_user

logger = logging.getLogger(__name__)


async def grant_experience(
    db: AsyncSession,
    user: User,
    amount: int,
    coins: int,
    source: str,
    source_id: str | None = None,
    description: str | None = None,
    *,
    now: datetime | None = None,
    curve: LevelCurve = DEFAULT_CURVE,
) -> LevelUpdate:
    """Add XP and coins to a user, log the grant, and level up as needed."""
    if now is None:
        now = datetime.now(timezone.utc)

    update = apply_experience(progress_from_user(user), amount, curve, coins_gained=coins)
    apply_progress(user, update.progress)

    if amount > 0:
        db.add(XPLedger(
            user_id=user.id,
            amount=amount,
            source=source,
            source_id=source_id,
            description=description,
            created_at=now,
        ))

    if update.leveled_up:
        logger.info(
            "level_up user=%d level=%d->%d", user.id, update.previous_level, update.new_level,
        )
    return update


async def get_earned_slugs(db: AsyncSession, user_id: int) -> set[str]:
    result = await db.execute(select(UserAchievement.slug).where(UserAchievement.user_id == user_id))
    return set(result.scalars().all())


def stats_for(user: User) -> AchievementStats:
    return AchievementStats(
        max_streak=user.longest_streak,
        completions=user.total_completed_habits,
        level=user.level,
        habits_created=user.total_habits_created,
    )


async def unlock_achievements(
    db: AsyncSession,
    user: User,
    *,
    kinds: set[AchievementKind] | None = None,
    now: datetime | None = None,
    curve: LevelCurve = DEFAULT_CURVE,
) -> list[AchievementDefinition]:
    """Unlock every achievement the user now qualifies for and pay out rewards.

    Rewards can raise the level, which can unlock level achievements, so the
    check repeats until nothing new unlocks.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    earned = await get_earned_slugs(db, user.id)
    unlocked: list[AchievementDefinition] = []
    check_kinds = kinds
    while True:
        fresh = check_achievements(stats_for(user), earned, check_kinds)
        if not fresh:
            break
        for achievement in fresh:
            db.add(UserAchievement(user_id=user.id, slug=achievement.slug, unlocked_at=now))
            earned.add(achievement.slug)
            unlocked.append(achievement)
            await grant_experience(
                db, user, achievement.xp_reward, achievement.coins_reward,
                "achievement", achievement.slug, f"Achievement: {achievement.title}",
                now=now, curve=curve,
            )
            logger.info("achievement_unlocked user=%d slug=%s", user.id, achievement.slug)
        # Only level thresholds can move as a side effect of the payouts.
        check_kinds = {AchievementKind.LEVEL}

    return unlocked


async def list_achievements(db: AsyncSession, user_id: int) -> list[dict]:
    """Full catalog with an `earned` flag and unlock time per entry."""
    result = await db.execute(select(UserAchievement).where(UserAchievement.user_id == user_id))
    unlocked_at = {row.slug: row.unlocked_at for row in result.scalars()}
    return [
        {
            "slug": a.slug,
            "title": a.title,
            "description": a.description,
            "kind": a.kind.value,
            "threshold": a.threshold,
            "xp_reward": a.xp_reward,
            "coins_reward": a.coins_reward,
            "rarity": a.rarity,
            "earned": a.slug in unlocked_at,
            "unlocked_at": unlocked_at.get(a.slug),
        }
        for a in ACHIEVEMENTS
    ]
