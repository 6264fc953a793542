"""Request id, CORS and error handler middleware tests."""

import pytest
from httpx import ASGITransport, AsyncClient

pytestmark = pytest.mark.asyncio


async def test_request_id_generated(client):
    response = await client.get("/health")
    assert len(response.headers["X-Request-Id"]) == 36


async def test_request_id_preserved(client):
    response = await client.get("/health", headers={"X-Request-Id": "abc-123"})
    assert response.headers["X-Request-Id"] == "abc-123"


async def test_overlong_request_id_replaced(client):
    response = await client.get("/health", headers={"X-Request-Id": "x" * 200})
    assert response.headers["X-Request-Id"] != "x" * 200
    assert len(response.headers["X-Request-Id"]) == 36


async def test_cors_preflight(client):
    response = await client.options(
        "/api/v1/habits",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "POST",
        },
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"


async def test_unknown_route_is_json_404(client):
    response = await client.get("/nope")
    assert response.status_code == 404
    assert response.json() == {"detail": "Not Found"}


async def test_unhandled_exception_is_json_500(app):
    @app.get("/boom")
    async def boom():
        msg = "kaboom"
        raise RuntimeError(msg)

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.get("/boom")
    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
