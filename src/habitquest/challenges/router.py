"""Challenge endpoints: list, create, join, complete."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from habitquest.auth.dependencies import CurrentUser, get_current_user
from habitquest.challenges.schemas import (
    ChallengeCompleteResponse,
    ChallengeCreateRequest,
    ChallengeListResponse,
    ChallengeResponse,
)
from habitquest.challenges.service import (
    ChallengeCompletion,
    complete_challenge,
    create_challenge,
    get_challenge,
    get_participant,
    join_challenge,
    list_challenges,
)
from habitquest.config import Settings
from habitquest.db.models import Challenge, ChallengeParticipant
from habitquest.dependencies import get_app_settings, get_calendar, get_clock, get_db
from habitquest.habits.calendar import Clock, DayCalendar
from habitquest.habits.schemas import UnlockedAchievement
from habitquest.middleware.error_handler import http_error

router = APIRouter(prefix="/api/v1/challenges", tags=["Challenges"])


def challenge_response(row: Challenge, status: str | None = None) -> ChallengeResponse:
    return ChallengeResponse(
        id=row.id,
        title=row.title,
        description=row.description,
        kind=row.kind,
        difficulty=row.difficulty,
        xp_reward=row.xp_reward,
        coins_reward=row.coins_reward,
        starts_at=row.starts_at,
        ends_at=row.ends_at,
        participants=row.participants,
        completions=row.completions,
        created_by=row.created_by,
        status=status,
    )


@router.get("", response_model=ChallengeListResponse)
async def my_challenges(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Open challenges split into the caller's active, completed and available ones."""
    groups = await list_challenges(db, user.id, now=clock.now())
    return ChallengeListResponse(
        active=[challenge_response(c, "active") for c in groups["active"]],
        completed=[challenge_response(c, "completed") for c in groups["completed"]],
        available=[challenge_response(c) for c in groups["available"]],
    )


@router.post("", response_model=ChallengeResponse, status_code=201)
async def create_my_challenge(
    body: ChallengeCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Create a challenge starting now. The creator is joined automatically."""
    row = await create_challenge(
        db,
        user.id,
        title=body.title,
        description=body.description,
        kind=body.kind,
        difficulty=body.difficulty,
        xp_reward=body.xp_reward,
        coins_reward=body.coins_reward,
        duration_days=body.duration_days,
        display_name=user.display_name,
        now=clock.now(),
    )
    return challenge_response(row, "active")


@router.get("/{challenge_id}", response_model=ChallengeResponse)
async def challenge_details(
    challenge_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    row = await get_challenge(db, challenge_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Challenge not found")
    participant = await get_participant(db, challenge_id, user.id)
    return challenge_response(row, participant.status if participant else None)


@router.post("/{challenge_id}/join", response_model=ChallengeResponse)
async def join(
    challenge_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Join an open challenge."""
    result = await join_challenge(db, user.id, challenge_id, now=clock.now(), display_name=user.display_name)
    if result is None:
        raise HTTPException(status_code=404, detail="Challenge not found")
    if not isinstance(result, ChallengeParticipant):
        raise http_error(result)
    row = await get_challenge(db, challenge_id)
    return challenge_response(row, result.status)


@router.post("/{challenge_id}/complete", response_model=ChallengeCompleteResponse)
async def complete(
    challenge_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    calendar: DayCalendar = Depends(get_calendar),
    settings: Settings = Depends(get_app_settings),
):
    """Complete a joined challenge and collect its reward."""
    result = await complete_challenge(
        db, user.id, challenge_id,
        now=clock.now(), calendar=calendar, settings=settings, display_name=user.display_name,
    )
    if result is None:
        raise HTTPException(status_code=404, detail="Challenge not found")
    if not isinstance(result, ChallengeCompletion):
        raise http_error(result)
    return ChallengeCompleteResponse(
        challenge=challenge_response(result.challenge, "completed"),
        xp=result.xp,
        coins=result.coins,
        level=result.level.new_level,
        leveled_up=result.level.leveled_up,
        achievements=[
            UnlockedAchievement(slug=a.slug, title=a.title, xp_reward=a.xp_reward, coins_reward=a.coins_reward)
            for a in result.achievements
        ],
    )
