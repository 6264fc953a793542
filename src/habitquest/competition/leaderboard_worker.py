"""Leaderboard refresh arq worker.

Re-ingests every user into their boards on a fixed cadence so period boards
roll over and stale streaks drop out even for users who stopped marking.

Run with: arq habitquest.competition.leaderboard_worker.LeaderboardWorkerSettings
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from arq import cron
from arq.connections import RedisSettings

from habitquest.competition.leaderboard_service import refresh_all_leaderboards
from habitquest.config import get_settings
from habitquest.database import close_db, get_session_factory, init_db
from habitquest.habits.calendar import DayCalendar

logger = logging.getLogger(__name__)


async def refresh_leaderboards(ctx: dict) -> int:  # type: ignore[type-arg]
    """Refresh every board for every user. Returns the number of users processed."""
    calendar: DayCalendar = ctx["calendar"]
    now = datetime.now(timezone.utc)
    async with get_session_factory()() as db:
        processed = await refresh_all_leaderboards(db, now=now, calendar=calendar)
    logger.info("Leaderboards refreshed: %d users", processed)
    return processed


async def leaderboard_startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize the DB connection on worker startup."""
    settings = get_settings()
    await init_db(settings.database_url)
    ctx["calendar"] = DayCalendar(settings.day_boundary_timezone)
    logger.info("Leaderboard worker started")


async def leaderboard_shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Clean up on worker shutdown."""
    await close_db()
    logger.info("Leaderboard worker shut down")


def _refresh_minutes() -> set[int]:
    step = max(1, min(get_settings().leaderboard_refresh_minutes, 60))
    return set(range(0, 60, step))


class LeaderboardWorkerSettings:
    """arq worker settings for leaderboard refresh."""

    functions = [refresh_leaderboards]
    cron_jobs = [cron(refresh_leaderboards, minute=_refresh_minutes(), run_at_startup=True)]
    redis_settings = RedisSettings.from_dsn(get_settings().redis_url)
    on_startup = leaderboard_startup
    on_shutdown = leaderboard_shutdown
    max_jobs = 1
    job_timeout = 600
