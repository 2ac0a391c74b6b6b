"""Tests for bearer-token identity."""

import time
import uuid

import jwt as pyjwt
import pytest
from starlette.requests import Request

from app.core.auth import ROLE_ADMIN, AuthUser, decode_token, require_admin, require_auth
from app.core.config import get_settings
from app.core.exceptions import ForbiddenError, UnauthorizedError

pytestmark = pytest.mark.unit


def _sign(payload: dict, secret: str | None = None) -> str:
    settings = get_settings()
    return pyjwt.encode(payload, secret or settings.jwt_secret, algorithm=settings.jwt_algorithm)


def _claims(**overrides) -> dict:
    return {"sub": str(uuid.uuid4()), "exp": int(time.time()) + 300, **overrides}


class TestDecodeToken:
    def test_valid_user_token(self):
        claims = _claims(email="dana@example.com")

        user = decode_token(_sign(claims))

        assert user.user_id == uuid.UUID(claims["sub"])
        assert user.role == "user"
        assert user.is_admin is False
        assert user.email == "dana@example.com"

    def test_admin_role(self):
        assert decode_token(_sign(_claims(role="admin"))).is_admin is True

    def test_expired(self):
        with pytest.raises(UnauthorizedError) as exc_info:
            decode_token(_sign(_claims(exp=int(time.time()) - 10)))
        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Token expired"

    def test_wrong_secret(self):
        with pytest.raises(UnauthorizedError) as exc_info:
            decode_token(_sign(_claims(), secret="not-the-secret"))
        assert exc_info.value.status_code == 401

    def test_missing_sub(self):
        claims = _claims()
        del claims["sub"]
        with pytest.raises(UnauthorizedError) as exc_info:
            decode_token(_sign(claims))
        assert "sub" in exc_info.value.detail

    def test_sub_must_be_uuid(self):
        with pytest.raises(UnauthorizedError) as exc_info:
            decode_token(_sign(_claims(sub="user_123")))
        assert exc_info.value.status_code == 401

    def test_unknown_role(self):
        with pytest.raises(UnauthorizedError):
            decode_token(_sign(_claims(role="superuser")))

    def test_garbage(self):
        with pytest.raises(UnauthorizedError):
            decode_token("not-a-jwt")


class TestRequireAdmin:
    async def test_admin_passes(self):
        admin = AuthUser(user_id=uuid.uuid4(), role=ROLE_ADMIN)
        assert await require_admin(admin) is admin

    async def test_user_rejected(self):
        with pytest.raises(ForbiddenError) as exc_info:
            await require_admin(AuthUser(user_id=uuid.uuid4()))
        assert exc_info.value.status_code == 403


class TestRequireAuth:
    async def test_missing_header(self):
        request = Request({"type": "http", "headers": [], "method": "GET", "path": "/"})
        with pytest.raises(UnauthorizedError) as exc_info:
            await require_auth(request, None)
        assert exc_info.value.status_code == 401
