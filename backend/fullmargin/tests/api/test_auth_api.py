"""Auth routes, error payload and rate limiting."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from fullmargin.core.settings import settings

pytestmark = pytest.mark.asyncio


async def _register(client: AsyncClient, email: str = "Trader@Example.com", password: str = "long-enough-pw"):
    return await client.post(
        "/auth/register",
        json={"email": email, "password": password, "fullName": "Trader Joe"},
    )


async def test_register_login_and_me(client: AsyncClient) -> None:
    response = await _register(client)
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["ok"] is True
    session = body["data"]["session"]
    assert session["user"]["email"] == "trader@example.com"
    assert session["user"]["fullName"] == "Trader Joe"
    assert session["user"]["roles"] == ["user"]
    assert "passwordHash" not in session["user"]
    assert session["expiresAt"].endswith(("Z", "+00:00"))

    login = await client.post(
        "/auth/login",
        json={"email": " TRADER@example.com ", "password": "long-enough-pw"},
    )
    assert login.status_code == 200
    token = login.json()["data"]["session"]["token"]

    me = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["data"]["email"] == "trader@example.com"


async def test_register_conflicts_and_weak_password(client: AsyncClient) -> None:
    assert (await _register(client)).status_code == 201

    taken = await _register(client, email="trader@example.com")
    assert taken.status_code == 409
    assert taken.json()["error"]["code"] == "EMAIL_TAKEN"

    weak = await _register(client, email="other@example.com", password="short")
    assert weak.status_code == 422
    assert weak.json()["error"]["code"] == "WEAK_PASSWORD"


async def test_bad_credentials(client: AsyncClient) -> None:
    await _register(client)

    wrong = await client.post("/auth/login", json={"email": "trader@example.com", "password": "nope-nope"})
    unknown = await client.post("/auth/login", json={"email": "ghost@example.com", "password": "nope-nope"})

    for response in (wrong, unknown):
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "INVALID_CREDENTIALS"


async def test_me_requires_valid_token(client: AsyncClient) -> None:
    missing = await client.get("/auth/me")
    assert missing.status_code == 401
    error = missing.json()["error"]
    assert error["code"] == "UNAUTHORIZED"
    assert error["status"] == 401
    assert error["request_id"] == missing.headers["X-Request-Id"]

    forged = await client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert forged.status_code == 401
    assert forged.json()["error"]["message"] == "Token invalide"


async def test_request_id_is_echoed(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"X-Request-Id": "trace-123"})
    assert response.status_code == 200
    assert response.headers["X-Request-Id"] == "trace-123"
    assert response.json() == {"status": "ok", "env": "test"}


async def test_validation_errors_use_standard_payload(client: AsyncClient) -> None:
    response = await client.post("/auth/register", json={"email": "no-at-sign", "password": "x"})
    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert isinstance(error["details"], list)


async def test_auth_routes_are_rate_limited(client: AsyncClient, monkeypatch) -> None:
    monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", True)
    monkeypatch.setattr(settings, "RATE_LIMIT_RPM", 2)

    payload = {"email": "ghost@example.com", "password": "whatever"}
    statuses = [(await client.post("/auth/login", json=payload)).status_code for _ in range(3)]
    assert statuses == [401, 401, 429]

    limited = await client.post("/auth/login", json=payload)
    error = limited.json()["error"]
    assert error["code"] == "RATE_LIMITED"
    assert error["details"]["limit_rpm"] == 2

    # Other routes are not limited
    assert (await client.get("/health")).status_code == 200
