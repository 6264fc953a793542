"""Leaderboard rows <-> pure ranking state."""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from habitquest.competition.ranking import (
    BoardType,
    LeaderboardEntryState,
    LeaderboardMetrics,
    LeaderboardState,
    ScoringRules,
)
from habitquest.db.models import Leaderboard, LeaderboardEntry


async def find_board(
    db: AsyncSession,
    board_type: BoardType,
    category: str = "",
    period_key: str = "",
    *,
    for_update: bool = False,
) -> Leaderboard | None:
    stmt = select(Leaderboard).where(
        Leaderboard.board_type == board_type.value,
        Leaderboard.category == category,
        Leaderboard.period_key == period_key,
    )
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    return (await db.execute(stmt)).scalar_one_or_none()


async def get_or_create_board(
    db: AsyncSession,
    board_type: BoardType,
    category: str = "",
    period_key: str = "",
    *,
    for_update: bool = False,
) -> Leaderboard:
    """Load a board, creating an empty shell the first time it is needed."""
    board = await find_board(db, board_type, category, period_key, for_update=for_update)
    if board is not None:
        return board

    shell = Leaderboard(
        board_type=board_type.value,
        category=category,
        period_key=period_key,
        scoring_rules=asdict(ScoringRules.for_board(board_type)),
        total_participants=0,
        avg_score=0,
        highest_score=0,
        entries=[],
    )
    db.add(shell)
    await db.flush()
    return shell


def board_from_row(row: Leaderboard) -> LeaderboardState:
    return LeaderboardState(
        board_type=BoardType(row.board_type),
        category=row.category,
        period_key=row.period_key,
        scoring_rules=ScoringRules(**row.scoring_rules) if row.scoring_rules else ScoringRules(),
        entries=tuple(entry_from_row(e) for e in sorted(row.entries, key=lambda e: e.rank)),
        total_participants=row.total_participants,
        avg_score=row.avg_score,
        highest_score=row.highest_score,
    )


def entry_from_row(row: LeaderboardEntry) -> LeaderboardEntryState:
    return LeaderboardEntryState(
        user_id=row.user_id,
        metrics=LeaderboardMetrics(
            habits_completed=row.habits_completed,
            challenges_completed=row.challenges_completed,
            max_streak=row.max_streak,
            xp_earned=row.xp_earned,
            days_active=row.days_active,
        ),
        score=row.score,
        rank=row.rank,
        previous_rank=row.previous_rank,
        rank_change=row.rank_change,
        display_name=row.display_name,
        level=row.level,
    )


def save_board(row: Leaderboard, state: LeaderboardState, now: datetime) -> None:
    """Write the ranked state back onto the board row and its entry rows."""
    by_user = {e.user_id: e for e in row.entries}
    for entry in state.entries:
        target = by_user.get(entry.user_id)
        if target is None:
            target = LeaderboardEntry(user_id=entry.user_id)
            row.entries.append(target)
        target.display_name = entry.display_name
        target.level = entry.level
        target.habits_completed = entry.metrics.habits_completed
        target.challenges_completed = entry.metrics.challenges_completed
        target.max_streak = entry.metrics.max_streak
        target.xp_earned = entry.metrics.xp_earned
        target.days_active = entry.metrics.days_active
        target.score = entry.score
        target.rank = entry.rank
        target.previous_rank = entry.previous_rank
        target.rank_change = entry.rank_change
        target.updated_at = now

    row.total_participants = state.total_participants
    row.avg_score = state.avg_score
    row.highest_score = state.highest_score
    row.updated_at = now
