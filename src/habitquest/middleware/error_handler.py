"""Global error handler: consistent JSON error responses.

Domain error values (habitquest.errors) are turned into HTTPException by
http_error(); everything else unexpected becomes a logged 500.
"""

from __future__ import annotations

import dataclasses
from datetime import date

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from habitquest.errors import (
    AlreadyMarkedToday,
    ChallengeAlreadyCompleted,
    ChallengeAlreadyJoined,
    ChallengeExpired,
    ChallengeNotJoined,
    EventOutOfOrder,
    HabitPolarityMismatch,
    InvalidMetrics,
    NotFound,
)

logger = structlog.get_logger()

ERROR_STATUS: dict[type, int] = {
    AlreadyMarkedToday: 409,
    EventOutOfOrder: 409,
    HabitPolarityMismatch: 400,
    InvalidMetrics: 422,
    NotFound: 404,
    ChallengeExpired: 400,
    ChallengeNotJoined: 400,
    ChallengeAlreadyJoined: 409,
    ChallengeAlreadyCompleted: 409,
}


def error_detail(error: object) -> dict:
    """JSON-safe body for a domain error value."""
    detail = {"error": type(error).__name__}
    for key, value in dataclasses.asdict(error).items():
        detail[key] = value.isoformat() if isinstance(value, date) else value
    return detail


def http_error(error: object) -> HTTPException:
    """Map a domain error value to an HTTPException."""
    status = ERROR_STATUS.get(type(error))
    if status is None:
        msg = f"Unmapped domain error: {error!r}"
        raise TypeError(msg)
    if isinstance(error, InvalidMetrics):
        logger.warning("invalid_metrics", user_id=error.user_id, fields=error.fields)
    return HTTPException(status_code=status, detail=error_detail(error))


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Handle HTTP exceptions with consistent JSON format."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        """Handle validation errors with consistent JSON format."""
        errors = [{k: v for k, v in e.items() if k != "ctx"} for e in exc.errors()]
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation error", "errors": errors},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions; always returns JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )
