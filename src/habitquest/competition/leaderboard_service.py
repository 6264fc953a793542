"""Leaderboard ingestion and reads.

Metrics are derived from stored habits and the XP ledger, then pushed
through the pure ranking engine. Each board update is its own unit of work:
lock the board (row lock + in-process lock on its scope) -> load -> rank ->
save -> commit, so two re-ranks of one board never interleave.

Boards refreshed per user:
- global (lifetime)
- weekly (ISO week) and monthly (YYYY-MM) period boards
- streak (current streaks only)
- one category board per habit category the user has
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from habitquest.competition.periods import PERIOD_BOARDS, build_period_key, period_days
from habitquest.competition.ranking import (
    BoardType,
    EntryUpdate,
    LeaderboardMetrics,
    LeaderboardState,
    ScoringRules,
    get_top_users,
    get_user_position,
    update_entry,
)
from habitquest.competition.store import board_from_row, find_board, get_or_create_board, save_board
from habitquest.db.models import User, XPLedger
from habitquest.errors import InvalidMetrics, NotFound
from habitquest.habits.calendar import DayCalendar
from habitquest.habits.domain import Habit
from habitquest.habits.store import get_or_create_user, habit_from_row, list_habit_rows
from habitquest.habits.streak_engine import calculate_streak
from habitquest.locks import leaderboard_locks

logger = logging.getLogger(__name__)

USER_BOARDS = (BoardType.GLOBAL, BoardType.WEEKLY, BoardType.MONTHLY, BoardType.STREAK)


def habit_activity(
    habits: list[Habit],
    calendar: DayCalendar,
    today: date,
    days: tuple[date, date] | None = None,
) -> tuple[int, int, int]:
    """(habits_completed, max_streak, days_active) over `days` or all history.

    Completed counts continuing entries: completions of positive habits and
    abstains of negative habits. Days active counts any entry.
    """
    completed = 0
    active_days: set[date] = set()
    for habit in habits:
        for entry in habit.history:
            day = calendar.day_key(entry.date)
            if days is not None and not days[0] <= day < days[1]:
                continue
            active_days.add(day)
            if habit.continues(entry):
                completed += 1

    now = calendar.start_of_day(today)
    max_streak = max((calculate_streak(h, calendar, today=now) for h in habits), default=0)
    return completed, max_streak, len(active_days)


async def sum_xp(
    db: AsyncSession,
    user_id: int,
    *,
    since: datetime | None = None,
    until: datetime | None = None,
    source: str | None = None,
    source_ids: list[str] | None = None,
) -> int:
    stmt = select(func.coalesce(func.sum(XPLedger.amount), 0)).where(XPLedger.user_id == user_id)
    if since is not None:
        stmt = stmt.where(XPLedger.created_at >= since.astimezone(timezone.utc))
    if until is not None:
        stmt = stmt.where(XPLedger.created_at < until.astimezone(timezone.utc))
    if source is not None:
        stmt = stmt.where(XPLedger.source == source)
    if source_ids is not None:
        if not source_ids:
            return 0
        stmt = stmt.where(XPLedger.source_id.in_(source_ids))
    return int((await db.execute(stmt)).scalar_one())


async def collect_user_metrics(
    db: AsyncSession,
    user: User,
    board_type: BoardType,
    *,
    today: date,
    calendar: DayCalendar,
    category: str | None = None,
) -> LeaderboardMetrics:
    """Derive one user's metrics for one board from stored data."""
    rows = await list_habit_rows(db, user.id, category=category)
    habits = [habit_from_row(r) for r in rows]
    days = period_days(board_type, today)
    completed, max_streak, days_active = habit_activity(habits, calendar, today, days)

    if days is not None:
        xp = await sum_xp(
            db, user.id,
            since=calendar.start_of_day(days[0]),
            until=calendar.start_of_day(days[1]),
        )
    elif category is not None:
        xp = await sum_xp(db, user.id, source="habit_mark", source_ids=[str(r.id) for r in rows])
    else:
        xp = user.total_xp_earned

    return LeaderboardMetrics(
        habits_completed=completed,
        challenges_completed=user.challenges_completed,
        max_streak=max_streak,
        xp_earned=xp,
        days_active=days_active,
    )


async def refresh_board(
    db: AsyncSession,
    board_type: BoardType,
    user: User,
    metrics: LeaderboardMetrics,
    *,
    category: str = "",
    period_key: str = "",
    now: datetime | None = None,
) -> EntryUpdate | InvalidMetrics:
    """Upsert one user's entry on one board and commit the re-ranked board."""
    if now is None:
        now = datetime.now(timezone.utc)

    async with leaderboard_locks.hold((board_type.value, category, period_key)):
        row = await get_or_create_board(db, board_type, category, period_key, for_update=True)
        result = update_entry(
            board_from_row(row), user.id, metrics, display_name=user.display_name, level=user.level,
        )
        if isinstance(result, InvalidMetrics):
            # Board stays as it was; commit only releases the lock.
            await db.commit()
            logger.warning(
                "invalid_metrics board=%s user=%d fields=%s", board_type.value, user.id, result.fields,
            )
            return result
        save_board(row, result.board, now)
        await db.commit()
    return result


async def refresh_user_leaderboards(
    db: AsyncSession,
    user_id: int,
    *,
    now: datetime | None = None,
    calendar: DayCalendar | None = None,
) -> dict[str, EntryUpdate | InvalidMetrics]:
    """Re-ingest one user into every board they belong on.

    Returns results keyed by board label ('global', 'weekly', ...,
    'category:health').
    """
    if now is None:
        now = datetime.now(timezone.utc)
    if calendar is None:
        calendar = DayCalendar()
    today = calendar.day_key(now)

    user = await get_or_create_user(db, user_id)
    results: dict[str, EntryUpdate | InvalidMetrics] = {}
    for board_type in USER_BOARDS:
        metrics = await collect_user_metrics(db, user, board_type, today=today, calendar=calendar)
        results[board_type.value] = await refresh_board(
            db, board_type, user, metrics, period_key=build_period_key(board_type, today), now=now,
        )

    categories = sorted({r.category for r in await list_habit_rows(db, user_id)})
    for category in categories:
        metrics = await collect_user_metrics(
            db, user, BoardType.CATEGORY, today=today, calendar=calendar, category=category,
        )
        results[f"category:{category}"] = await refresh_board(
            db, BoardType.CATEGORY, user, metrics, category=category, now=now,
        )

    logger.info("leaderboard_refreshed user=%d boards=%d", user_id, len(results))
    return results


async def refresh_after_write(
    db: AsyncSession,
    user_id: int,
    *,
    now: datetime,
    calendar: DayCalendar,
    reload: tuple[object, ...] = (),
) -> bool:
    """Refresh the user's boards after a committed write, without failing it.

    On a database error the session is rolled back and `reload` instances are
    refreshed so callers can keep reading them. Returns False in that case.
    """
    try:
        await refresh_user_leaderboards(db, user_id, now=now, calendar=calendar)
    except SQLAlchemyError:
        await db.rollback()
        logger.warning("leaderboard_refresh_failed user=%d", user_id, exc_info=True)
        for instance in reload:
            await db.refresh(instance)
        return False
    return True


async def refresh_all_leaderboards(
    db: AsyncSession,
    *,
    now: datetime | None = None,
    calendar: DayCalendar | None = None,
) -> int:
    """Re-ingest every user. Returns the number of users processed."""
    user_ids = (await db.execute(select(User.id).order_by(User.id))).scalars().all()
    for user_id in user_ids:
        await refresh_user_leaderboards(db, user_id, now=now, calendar=calendar)
    return len(user_ids)


async def get_leaderboard_view(
    db: AsyncSession,
    board_type: BoardType,
    user_id: int,
    *,
    today: date,
    category: str = "",
    limit: int = 10,
) -> dict[str, Any]:
    """Top of the current board plus the caller's own position."""
    if board_type is BoardType.CATEGORY and not category:
        msg = "Category boards need a category"
        raise ValueError(msg)

    period_key = build_period_key(board_type, today) if board_type in PERIOD_BOARDS else ""
    row = await find_board(db, board_type, category, period_key)
    if row is not None:
        board = board_from_row(row)
    else:
        board = LeaderboardState(
            board_type=board_type,
            category=category,
            period_key=period_key,
            scoring_rules=ScoringRules.for_board(board_type),
        )

    position = get_user_position(board, user_id)
    return {
        "board_type": board.board_type.value,
        "category": board.category or None,
        "period_key": board.period_key or None,
        "total_participants": board.total_participants,
        "avg_score": board.avg_score,
        "highest_score": board.highest_score,
        "entries": get_top_users(board, limit),
        "user_position": None if isinstance(position, NotFound) else {
            "entry": position.entry,
            "users_above": position.users_above,
            "users_below": position.users_below,
        },
    }
