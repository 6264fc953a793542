"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from habitquest.challenges.router import router as challenges_router
from habitquest.competition.router import router as leaderboard_router
from habitquest.config import get_settings
from habitquest.database import close_db, create_tables, init_db
from habitquest.gamification.router import router as gamification_router
from habitquest.habits.calendar import DayCalendar
from habitquest.habits.router import router as habits_router
from habitquest.health.router import router as health_router
from habitquest.middleware import setup_middleware

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Create tables on startup, dispose the engine on shutdown."""
    settings = get_settings()
    # Fails fast on a misspelled zone instead of on the first mark.
    calendar = DayCalendar(settings.day_boundary_timezone)
    await init_db(settings.database_url)
    await create_tables()
    logger.info("app_started", environment=settings.environment, day_zone=str(calendar.tz))

    yield

    await close_db()
    logger.info("app_stopped")


def create_app() -> FastAPI:
    """Build the app: middleware first, then the routers."""
    settings = get_settings()

    app = FastAPI(
        title="HabitQuest API",
        description="Habits, streaks, XP, achievements and leaderboards",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    for router in (health_router, habits_router, challenges_router, gamification_router, leaderboard_router):
        app.include_router(router)

    return app


app = create_app()
