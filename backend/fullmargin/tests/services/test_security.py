"""Password hashing, session tokens and staff roles."""

from __future__ import annotations

import pytest

from fullmargin.core.errors import AppHTTPException
from fullmargin.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    is_staff,
    verify_password,
)
from fullmargin.core.settings import settings


def test_password_hash_is_salted_and_verifiable():
    first = hash_password("correct-horse")
    second = hash_password("correct-horse")

    assert first != second
    assert verify_password("correct-horse", first)
    assert not verify_password("wrong-horse", first)
    assert not verify_password("correct-horse", None)
    assert not verify_password("correct-horse", "garbage")


def test_session_token_round_trip():
    token, expires_at = create_access_token(user_id="u-1", email="a@example.com", roles=["user", "agent"])
    payload = decode_access_token(token)

    assert payload.user_id == "u-1"
    assert payload.roles == ["user", "agent"]
    assert int(payload.expires_at.timestamp()) == int(expires_at.timestamp())


def test_expired_session_is_rejected(monkeypatch):
    monkeypatch.setattr(settings, "JWT_EXPIRES_MIN", -1)
    token, _ = create_access_token(user_id="u-1", email="a@example.com", roles=[])

    with pytest.raises(AppHTTPException) as exc:
        decode_access_token(token)
    assert exc.value.status_code == 401
    assert exc.value.detail["message"] == "Session expirée"


def test_missing_secret_in_prod_is_a_server_error(monkeypatch):
    monkeypatch.setattr(settings, "JWT_SECRET", "")
    monkeypatch.setattr(settings, "ENV", "prod")

    with pytest.raises(AppHTTPException) as exc:
        create_access_token(user_id="u-1", email="a@example.com", roles=[])
    assert exc.value.code == "SERVER_MISCONFIG"


@pytest.mark.parametrize(
    "roles, expected",
    [(["admin"], True), (["user", "agent"], True), (["user"], False), (None, False)],
)
def test_staff_roles(roles, expected):
    assert is_staff(roles) is expected
