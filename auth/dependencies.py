"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication and authorization.

protect() locates the bearer token in priority order:
  1. "jwt" cookie -- set by register/login for browser clients.
  2. Authorization: Bearer <token> header -- programmatic clients.

authorize(*roles) builds a dependency that checks the identity protect()
attached to request.state.user. It never looks at the token itself, so
listing it without protect() on a route fails closed with 401.

Route usage:
    router = APIRouter(dependencies=[Depends(protect), Depends(authorize(Role.ADMIN))])

FastAPI resolves a router's dependency list in order, so protect() has run
by the time authorize() reads request.state.

Failures are raised as AuthFailure and turned into responses by the handler
in api/main.py. Expired and forged tokens produce the same client-visible
failure; the difference is only logged.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from fastapi import Request

from auth.errors import AuthFailure, ErrorKind, Failure
from auth.models import Role, User
from auth.store import UserStore
from auth.tokens import COOKIE_NAME, TokenError, TokenExpired, TokenService

logger = logging.getLogger("accessgate.auth")

_NO_TOKEN = Failure(ErrorKind.UNAUTHENTICATED, "Not authorized, no token")
_TOKEN_FAILED = Failure(ErrorKind.UNAUTHENTICATED, "Not authorized, token failed")


def extract_token(request: Request) -> str | None:
    """Return the raw token from the cookie or Bearer header, or None."""
    token = request.cookies.get(COOKIE_NAME)
    if token:
        return token
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def protect(request: Request) -> User:
    """Require a valid token that resolves to an existing user.

    Attaches the user to request.state.user and returns it.
    """
    token = extract_token(request)
    if token is None:
        raise AuthFailure(_NO_TOKEN)

    token_service: TokenService = request.app.state.token_service
    try:
        claims = token_service.verify(token)
    except TokenError as exc:
        reason = "expired" if isinstance(exc, TokenExpired) else "invalid"
        logger.info("Rejected %s token on %s %s", reason, request.method, request.url.path)
        raise AuthFailure(_TOKEN_FAILED) from exc

    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(claims.user_id)
    if user is None:
        logger.info("Rejected token for unknown user id=%s", claims.user_id)
        raise AuthFailure(_TOKEN_FAILED)

    request.state.user = user
    return user


def authorize(*roles: Role) -> Callable[[Request], User]:
    """Build a dependency that admits only identities whose role is in roles."""
    allowed = frozenset(Role(r) for r in roles)

    def _authorize(request: Request) -> User:
        user: User | None = getattr(request.state, "user", None)
        if user is None:
            logger.error("authorize() reached without an identity on %s", request.url.path)
            raise AuthFailure(Failure(ErrorKind.UNAUTHENTICATED, "Not authorized"))
        if user.role not in allowed:
            raise AuthFailure(
                Failure(ErrorKind.FORBIDDEN, f"User role {user.role.value} is not authorized to access this route")
            )
        return user

    return _authorize
