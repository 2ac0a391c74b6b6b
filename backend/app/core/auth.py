"""Bearer-token identity for FastAPI.

Tokens are minted by the external authentication service; this module only
verifies them and exposes the caller's ``{user_id, role}`` to route handlers.
"""

import uuid
from dataclasses import dataclass, field

import jwt as pyjwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import get_settings
from app.core.exceptions import ForbiddenError, UnauthorizedError

_bearer_scheme = HTTPBearer(auto_error=False)

ROLE_USER = "user"
ROLE_ADMIN = "admin"


@dataclass(frozen=True)
class AuthUser:
    """Authenticated caller extracted from a bearer token."""

    user_id: uuid.UUID
    role: str = ROLE_USER
    claims: dict = field(default_factory=dict)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def email(self) -> str | None:
        return self.claims.get("email")


def decode_token(token: str) -> AuthUser:
    """Verify and decode a session token.

    Raises ``UnauthorizedError`` on any validation failure.
    """
    settings = get_settings()
    options = {"verify_exp": True, "require": ["sub", "exp"]}
    try:
        payload = pyjwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer or None,
            options=options,
        )
    except pyjwt.ExpiredSignatureError as exc:
        raise UnauthorizedError("Token expired") from exc
    except pyjwt.MissingRequiredClaimError as exc:
        raise UnauthorizedError(f"Missing required claim: {exc}") from exc
    except pyjwt.InvalidTokenError as exc:
        raise UnauthorizedError(f"Invalid token: {exc}") from exc

    try:
        user_id = uuid.UUID(str(payload["sub"]))
    except ValueError as exc:
        raise UnauthorizedError("Token sub claim is not a user id") from exc

    role = payload.get("role", ROLE_USER)
    if role not in (ROLE_USER, ROLE_ADMIN):
        raise UnauthorizedError(f"Unknown role: {role}")

    return AuthUser(user_id=user_id, role=role, claims=payload)


async def require_auth(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> AuthUser:
    """FastAPI dependency that resolves the caller identity.

    Usage::

        @router.get("/protected")
        async def protected(user: AuthUser = Depends(require_auth)):
            ...
    """
    if credentials is None:
        raise UnauthorizedError("Missing authorization header")

    user = decode_token(credentials.credentials)

    # Downstream error handlers log this
    request.state.user_id = str(user.user_id)

    return user


async def require_admin(user: AuthUser = Depends(require_auth)) -> AuthUser:
    """FastAPI dependency that requires the admin role."""
    if not user.is_admin:
        raise ForbiddenError("Admin access required")
    return user
