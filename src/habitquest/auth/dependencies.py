"""Bearer authentication for the API routes."""

from __future__ import annotations

from dataclasses import dataclass

import jwt
from fastapi import HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from habitquest.auth.jwt import subject_id, verify_token

_bearer = HTTPBearer()


@dataclass(frozen=True)
class CurrentUser:
    """Identity taken from a verified token. `display_name` is the optional `name` claim."""

    id: int
    display_name: str | None = None


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(_bearer),
) -> CurrentUser:
    """Resolve the caller from the bearer token, or answer 401."""
    try:
        claims = verify_token(credentials.credentials)
        user_id = subject_id(claims)
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    return CurrentUser(id=user_id, display_name=claims.get("name"))
