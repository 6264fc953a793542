"""
Access token verification.

HabitQuest never issues tokens. The auth service signs them with its RS256
private key and this module checks them against the matching public key:
signature, issuer, expiry (with a small leeway for clock skew) and the
`type` claim.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import jwt

from habitquest.config import get_settings

_public_key: str | None = None


def _load_public_key() -> str:
    global _public_key  # noqa: PLW0603
    if _public_key is None:
        _public_key = Path(get_settings().jwt_public_key_path).read_text()
    return _public_key


def reset_keys() -> None:
    """Forget the cached public key so the next call re-reads it."""
    global _public_key  # noqa: PLW0603
    _public_key = None


def verify_token(token: str, expected_type: str = "access") -> dict[str, Any]:
    """
    Decode `token` and return its claims.

    Tokens without a `type` claim are accepted as `expected_type`.

    Raises:
        jwt.InvalidTokenError: bad signature, wrong issuer, expired,
            missing `sub`/`exp`, or a different token type.
    """
    settings = get_settings()
    try:
        claims: dict[str, Any] = jwt.decode(
            token,
            _load_public_key(),
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            leeway=settings.jwt_leeway_seconds,
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    token_type = claims.get("type", expected_type)
    if token_type != expected_type:
        msg = f"Expected token type '{expected_type}', got '{token_type}'"
        raise jwt.InvalidTokenError(msg)
    return claims


def subject_id(claims: dict[str, Any]) -> int:
    """The numeric user id carried in `sub`."""
    try:
        return int(claims["sub"])
    except (TypeError, ValueError) as e:
        msg = "Invalid subject claim"
        raise jwt.InvalidTokenError(msg) from e
