"""Middleware and exception handler wiring."""

from fastapi import FastAPI

from habitquest.config import Settings
from habitquest.middleware.cors import setup_cors
from habitquest.middleware.error_handler import setup_error_handlers
from habitquest.middleware.logging import setup_logging
from habitquest.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure logging, then install handlers and middleware on `app`.

    The last middleware added wraps all the others, so CORS goes last and
    its headers also land on error responses.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
