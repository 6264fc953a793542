"""Challenges: create, join, complete.

Completing a challenge pays its fixed reward through the same XP path as a
habit mark and bumps the user's challenges_completed counter, which the
leaderboards score.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from habitquest.competition.leaderboard_service import refresh_after_write
from habitquest.config import Settings, get_settings
from habitquest.db.models import Challenge, ChallengeParticipant
from habitquest.errors import (
    ChallengeAlreadyCompleted,
    ChallengeAlreadyJoined,
    ChallengeError,
    ChallengeExpired,
    ChallengeNotJoined,
)
from habitquest.gamification.achievements import AchievementDefinition
from habitquest.gamification.leveling import LevelCurve, LevelUpdate
from habitquest.gamification.service import grant_experience, unlock_achievements
from habitquest.habits.calendar import DayCalendar
from habitquest.habits.domain import Difficulty
from habitquest.habits.store import get_or_create_user, progress_from_user
from habitquest.locks import challenge_locks, user_locks

logger = logging.getLogger(__name__)

ACTIVE = "active"
COMPLETED = "completed"


class ChallengeKind(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    SPECIAL = "special"


@dataclass(frozen=True)
class ChallengeCompletion:
    challenge: Challenge
    xp: int
    coins: int
    level: LevelUpdate
    achievements: list[AchievementDefinition] = field(default_factory=list)


def _utc(dt: datetime) -> datetime:
    # SQLite returns naive datetimes; they were stored as UTC.
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt.astimezone(timezone.utc)


def is_open(challenge: Challenge, now: datetime) -> bool:
    """True while `now` falls inside the challenge window [starts_at, ends_at)."""
    return _utc(challenge.starts_at) <= _utc(now) < _utc(challenge.ends_at)


async def get_challenge(db: AsyncSession, challenge_id: int, *, for_update: bool = False) -> Challenge | None:
    stmt = select(Challenge).where(Challenge.id == challenge_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    return (await db.execute(stmt)).scalar_one_or_none()


async def get_participant(
    db: AsyncSession, challenge_id: int, user_id: int, *, for_update: bool = False,
) -> ChallengeParticipant | None:
    stmt = select(ChallengeParticipant).where(
        ChallengeParticipant.challenge_id == challenge_id,
        ChallengeParticipant.user_id == user_id,
    )
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    return (await db.execute(stmt)).scalar_one_or_none()


def _join(db: AsyncSession, challenge: Challenge, user_id: int, now: datetime) -> ChallengeParticipant:
    participant = ChallengeParticipant(challenge_id=challenge.id, user_id=user_id, status=ACTIVE, joined_at=now)
    db.add(participant)
    challenge.participants += 1
    return participant


async def create_challenge(
    db: AsyncSession,
    user_id: int,
    *,
    title: str,
    description: str = "",
    kind: ChallengeKind = ChallengeKind.DAILY,
    difficulty: Difficulty = Difficulty.MEDIUM,
    xp_reward: int = 50,
    coins_reward: int = 10,
    duration_days: int = 1,
    display_name: str | None = None,
    now: datetime | None = None,
) -> Challenge:
    """Create a challenge open from `now` for `duration_days`. The creator joins it."""
    if now is None:
        now = datetime.now(timezone.utc)
    if duration_days < 1:
        msg = f"duration_days must be >= 1, got {duration_days}"
        raise ValueError(msg)

    async with user_locks.hold(user_id):
        await get_or_create_user(db, user_id, for_update=True, display_name=display_name)
        challenge = Challenge(
            title=title,
            description=description,
            kind=kind.value,
            difficulty=difficulty.value,
            xp_reward=xp_reward,
            coins_reward=coins_reward,
            starts_at=_utc(now),
            ends_at=_utc(now) + timedelta(days=duration_days),
            participants=0,
            completions=0,
            created_by=user_id,
            created_at=now,
        )
        db.add(challenge)
        await db.flush()
        _join(db, challenge, user_id, now)
        await db.commit()

    logger.info("challenge_created user=%d challenge=%d kind=%s", user_id, challenge.id, kind.value)
    return challenge


async def list_challenges(db: AsyncSession, user_id: int, *, now: datetime) -> dict[str, list[Challenge]]:
    """Open challenges split into the caller's active, completed and available ones.

    Completed challenges are listed until their window closes.
    """
    utc_now = _utc(now)
    result = await db.execute(
        select(Challenge)
        .where(Challenge.starts_at <= utc_now, Challenge.ends_at > utc_now)
        .order_by(Challenge.ends_at, Challenge.id)
    )
    challenges = list(result.scalars())
    status = await participant_statuses(db, user_id, [c.id for c in challenges])

    groups: dict[str, list[Challenge]] = {"active": [], "completed": [], "available": []}
    for challenge in challenges:
        state = status.get(challenge.id)
        groups["available" if state is None else state].append(challenge)
    return groups


async def participant_statuses(db: AsyncSession, user_id: int, challenge_ids: list[int]) -> dict[int, str]:
    if not challenge_ids:
        return {}
    result = await db.execute(
        select(ChallengeParticipant.challenge_id, ChallengeParticipant.status).where(
            ChallengeParticipant.user_id == user_id,
            ChallengeParticipant.challenge_id.in_(challenge_ids),
        )
    )
    return {challenge_id: state for challenge_id, state in result.all()}


async def join_challenge(
    db: AsyncSession,
    user_id: int,
    challenge_id: int,
    *,
    now: datetime | None = None,
    display_name: str | None = None,
) -> ChallengeParticipant | ChallengeError | None:
    """Join an open challenge. Returns None when the challenge does not exist."""
    if now is None:
        now = datetime.now(timezone.utc)

    async with challenge_locks.hold(challenge_id):
        challenge = await get_challenge(db, challenge_id, for_update=True)
        if challenge is None:
            return None
        participant = await get_participant(db, challenge_id, user_id)
        if participant is not None:
            if participant.status == COMPLETED:
                return ChallengeAlreadyCompleted(challenge_id)
            return ChallengeAlreadyJoined(challenge_id)
        if not is_open(challenge, now):
            return ChallengeExpired(challenge_id)

        async with user_locks.hold(user_id):
            await get_or_create_user(db, user_id, for_update=True, display_name=display_name)
            participant = _join(db, challenge, user_id, now)
            await db.commit()

    logger.info("challenge_joined user=%d challenge=%d", user_id, challenge_id)
    return participant


async def complete_challenge(
    db: AsyncSession,
    user_id: int,
    challenge_id: int,
    *,
    now: datetime | None = None,
    calendar: DayCalendar | None = None,
    settings: Settings | None = None,
    display_name: str | None = None,
    refresh_leaderboards: bool = True,
) -> ChallengeCompletion | ChallengeError | None:
    """Complete a joined challenge and pay its reward.

    Returns None when the challenge does not exist, or a ChallengeError value
    when the caller has not joined it, already completed it, or it has closed.
    Nothing is written in those cases.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    if settings is None:
        settings = get_settings()
    if calendar is None:
        calendar = DayCalendar(settings.day_boundary_timezone)
    curve = LevelCurve.from_settings(settings)

    async with challenge_locks.hold(challenge_id), user_locks.hold(user_id):
        challenge = await get_challenge(db, challenge_id, for_update=True)
        if challenge is None:
            return None
        participant = await get_participant(db, challenge_id, user_id, for_update=True)
        if participant is None:
            return ChallengeNotJoined(challenge_id)
        if participant.status == COMPLETED:
            return ChallengeAlreadyCompleted(challenge_id)
        if not is_open(challenge, now):
            return ChallengeExpired(challenge_id)

        try:
            user = await get_or_create_user(db, user_id, for_update=True, display_name=display_name)
            participant.status = COMPLETED
            participant.completed_at = now
            challenge.completions += 1

            level = await grant_experience(
                db, user, challenge.xp_reward, challenge.coins_reward,
                "challenge", str(challenge_id), f"Challenge: {challenge.title}",
                now=now, curve=curve,
            )
            user.challenges_completed += 1
            user.last_active = now

            unlocked = await unlock_achievements(db, user, now=now, curve=curve)
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            raise

        final = progress_from_user(user)
        level = LevelUpdate(
            progress=final,
            previous_level=level.previous_level,
            leveled_up=final.level > level.previous_level,
        )

    logger.info(
        "challenge_completed user=%d challenge=%d xp=%d coins=%d",
        user_id, challenge_id, challenge.xp_reward, challenge.coins_reward,
    )

    if refresh_leaderboards:
        await refresh_after_write(db, user_id, now=now, calendar=calendar, reload=(challenge,))

    return ChallengeCompletion(
        challenge=challenge,
        xp=challenge.xp_reward,
        coins=challenge.coins_reward,
        level=level,
        achievements=unlocked,
    )
