"""
auth/tokens.py -- JWT issuance, verification and cookie delivery.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry the user id (sub), role, issue
       time and expiry. verify() distinguishes TokenExpired from TokenInvalid
       for logging; the auth dependency collapses both into one 401 so the
       client never learns which it was.

  Signing key: held by an immutable TokenConfig that the application builds
       once at startup (api/main.py lifespan) and injects into TokenService.
       Nothing in this module reads settings or environment variables, and
       the key cannot change while the process runs.

  Delivery: issue() computes the token once and writes it to two channels in
       order -- the "jwt" httpOnly cookie for browsers, then the return value
       for the JSON body of programmatic clients. Cookie expiry always equals
       token expiry.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Literal

from jose import ExpiredSignatureError, JWTError, jwt
from starlette.responses import Response

from auth.models import Role, TokenClaims

logger = logging.getLogger("accessgate.auth")

COOKIE_NAME = "jwt"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class TokenError(Exception):
    """Base class for token verification failures."""


class TokenInvalid(TokenError):
    """Signature mismatch, malformed token, or missing/unknown claims."""


class TokenExpired(TokenError):
    """Well-formed and correctly signed, but past its exp claim."""


@dataclass(frozen=True)
class TokenConfig:
    secret_key: str
    expire_seconds: int
    algorithm: str = "HS256"
    cookie_secure: bool = True
    cookie_samesite: Literal["strict", "lax"] = "strict"

    def __post_init__(self) -> None:
        if not self.secret_key:
            raise ValueError("TokenConfig.secret_key must not be empty.")
        if self.expire_seconds <= 0:
            raise ValueError("TokenConfig.expire_seconds must be positive.")


class TokenService:
    """Signs, verifies, and delivers bearer tokens.

    Usage:
        service = TokenService(TokenConfig(secret_key=..., expire_seconds=3600))
        token = service.issue(response, user.id, user.role)
        claims = service.verify(token)
    """

    def __init__(self, config: TokenConfig) -> None:
        self._config = config

    @property
    def config(self) -> TokenConfig:
        return self._config

    def create_token(self, user_id: str, role: Role, now: datetime | None = None) -> tuple[str, TokenClaims]:
        """Encode a signed token for user_id/role and return it with its claims.

        now defaults to the current UTC time. JWT timestamps have one-second
        resolution, so it is truncated to whole seconds before use.
        """
        issued_at = (now or datetime.now(timezone.utc)).replace(microsecond=0)
        expires_at = issued_at + timedelta(seconds=self._config.expire_seconds)
        payload = {
            "sub": user_id,
            "role": Role(role).value,
            "iat": issued_at,
            "exp": expires_at,
        }
        token = jwt.encode(payload, self._config.secret_key, algorithm=self._config.algorithm)
        return token, TokenClaims(user_id=user_id, role=Role(role), issued_at=issued_at, expires_at=expires_at)

    def issue(self, response: Response, user_id: str, role: Role) -> str:
        """Create a token, set it as the auth cookie, and return it for the body."""
        token, claims = self.create_token(user_id, role)
        response.set_cookie(
            COOKIE_NAME,
            value=token,
            max_age=self._config.expire_seconds,
            expires=claims.expires_at,
            httponly=True,
            secure=self._config.cookie_secure,
            samesite=self._config.cookie_samesite,
        )
        return token

    def verify(self, token: str) -> TokenClaims:
        """Decode and check a token. Pure: no store or network access.

        Raises TokenExpired past exp, TokenInvalid for anything else wrong.
        """
        try:
            payload = jwt.decode(token, self._config.secret_key, algorithms=[self._config.algorithm])
        except ExpiredSignatureError as exc:
            raise TokenExpired("Token has expired.") from exc
        except JWTError as exc:
            raise TokenInvalid(f"Invalid token: {exc}") from exc

        user_id = payload.get("sub")
        if not isinstance(user_id, str) or not user_id:
            raise TokenInvalid("Token has no subject.")
        if "exp" not in payload or "iat" not in payload:
            raise TokenInvalid("Token is missing iat/exp.")
        try:
            role = Role(payload.get("role"))
        except ValueError as exc:
            raise TokenInvalid("Token carries an unknown role.") from exc

        return TokenClaims(
            user_id=user_id,
            role=role,
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )

    def clear(self, response: Response) -> None:
        """Overwrite the auth cookie with an empty, already-expired value."""
        response.set_cookie(
            COOKIE_NAME,
            value="",
            max_age=0,
            expires=_EPOCH,
            httponly=True,
            secure=self._config.cookie_secure,
            samesite=self._config.cookie_samesite,
        )
