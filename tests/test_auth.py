"""Bearer token verification tests against the real dependency."""

from datetime import datetime, timedelta, timezone

import pytest

pytestmark = pytest.mark.asyncio


def _bearer(value: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {value}"}


async def test_valid_token_carries_name(client, token):
    response = await client.get("/api/v1/me/progress", headers=_bearer(token(7, "grace")))
    assert response.status_code == 200
    assert response.json()["user_id"] == 7
    assert response.json()["display_name"] == "grace"


async def test_name_defaults_when_absent(client, token):
    response = await client.get("/api/v1/me/progress", headers=_bearer(token(8)))
    assert response.json()["display_name"] == "user-8"


async def test_missing_header(client):
    response = await client.get("/api/v1/me/progress")
    assert response.status_code in (401, 403)


async def test_expired(client, token):
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    response = await client.get("/api/v1/me/progress", headers=_bearer(token(1, exp=past)))
    assert response.status_code == 401
    assert response.json()["detail"] == "Token has expired"


async def test_wrong_issuer(client, token):
    response = await client.get("/api/v1/me/progress", headers=_bearer(token(1, iss="someone-else")))
    assert response.status_code == 401


async def test_refresh_token_rejected(client, token):
    response = await client.get("/api/v1/me/progress", headers=_bearer(token(1, type="refresh")))
    assert response.status_code == 401
    assert "refresh" in response.json()["detail"]


async def test_non_numeric_subject(client, token):
    response = await client.get("/api/v1/me/progress", headers=_bearer(token(1, sub="alice")))
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid subject claim"


async def test_garbage_token(client):
    response = await client.get("/api/v1/me/progress", headers=_bearer("not.a.jwt"))
    assert response.status_code == 401
