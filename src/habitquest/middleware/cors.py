"""CORS for the web and mobile clients."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from habitquest.config import Settings

# Every route the API exposes uses one of these.
ALLOWED_METHODS = ["GET", "POST", "PATCH", "DELETE", "OPTIONS"]
ALLOWED_HEADERS = ["Authorization", "Content-Type", "X-Request-Id"]


def setup_cors(app: FastAPI, settings: Settings) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=ALLOWED_METHODS,
        allow_headers=ALLOWED_HEADERS,
        expose_headers=["X-Request-Id"],
    )
