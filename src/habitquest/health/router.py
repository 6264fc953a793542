"""Liveness, readiness and version probes."""

from fastapi import APIRouter, Depends
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from habitquest.config import Settings
from habitquest.db.models import User
from habitquest.dependencies import get_app_settings, get_db

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health() -> dict[str, str]:
    """200 while the process can serve requests."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(db: AsyncSession = Depends(get_db)) -> dict[str, object]:  # noqa: B008
    """Report whether the database answers and the schema is in place."""
    checks: dict[str, str] = {}
    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
        await db.execute(select(func.count()).select_from(User))
        checks["schema"] = "ok"
    except SQLAlchemyError as exc:
        checks.setdefault("database", f"error: {exc}")
        checks.setdefault("schema", f"error: {exc}")

    ready = all(value == "ok" for value in checks.values())
    return {"status": "ready" if ready else "degraded", "checks": checks}


@router.get("/version")
async def version(settings: Settings = Depends(get_app_settings)) -> dict[str, str]:  # noqa: B008
    return {
        "version": settings.app_version,
        "environment": settings.environment,
        "day_boundary_timezone": settings.day_boundary_timezone,
    }
