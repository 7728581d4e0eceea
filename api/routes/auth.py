"""
api/routes/auth.py -- Registration, login, logout and identity endpoints.

Routes:
  POST /api/auth/register  -- create account; token + cookie only if auto-approved
  POST /api/auth/login     -- email/password; token + cookie if approved
  POST /api/auth/logout    -- clears the jwt cookie; always 200
  GET  /api/auth/me        -- current identity (requires protect)

Token delivery: the handler receives FastAPI's injected Response, lets
TokenService.issue() write the cookie onto it, and puts the returned token
into the JSON body. FastAPI merges the cookie into the final response.

Errors: lifecycle operations return Failure; handlers re-raise it as
AuthFailure and api/main.py picks the status code.

Security:
  Login and register responses carry Cache-Control: no-store.
  Unknown email and wrong password share one message (see auth.lifecycle.login).
"""

from __future__ import annotations

from typing import Union

from fastapi import APIRouter, Depends, Request, Response

from api.models import (
    AuthResponse,
    LoginRequest,
    MeResponse,
    MessageResponse,
    PendingRegistrationResponse,
    RegisterRequest,
    UserSummary,
)
from auth import lifecycle
from auth.dependencies import protect
from auth.errors import AuthFailure, Failure
from auth.models import User
from auth.store import UserStore
from auth.tokens import TokenService

# Auth policy:
# - POST /api/auth/register: public
# - POST /api/auth/login:    public
# - POST /api/auth/logout:   public -- clearing a cookie needs no prior auth
# - GET  /api/auth/me:       requires auth (protect)
router = APIRouter(prefix="/auth")


@router.post("/register", response_model=Union[AuthResponse, PendingRegistrationResponse], status_code=201)
def register(request: Request, response: Response, body: RegisterRequest):
    """Register an account.

    Role "user" (the default) is approved immediately and receives a token.
    Any other role is created pending: no token, no cookie, and a message
    telling the caller to wait for an admin.
    """
    user_store: UserStore = request.app.state.user_store
    result = lifecycle.register(user_store, body.to_registration())
    if isinstance(result, Failure):
        raise AuthFailure(result)

    response.headers["Cache-Control"] = "no-store"
    summary = UserSummary.from_user(result)
    if not result.is_approved:
        return PendingRegistrationResponse(message=lifecycle.PENDING_MESSAGE, user=summary)

    token_service: TokenService = request.app.state.token_service
    token = token_service.issue(response, result.id, result.role)
    return AuthResponse(token=token, user=summary)


@router.post("/login", response_model=AuthResponse)
def login(request: Request, response: Response, body: LoginRequest) -> AuthResponse:
    """Authenticate with email and password; issue a token if the account is approved."""
    user_store: UserStore = request.app.state.user_store
    result = lifecycle.login(user_store, body.email, body.password)
    if isinstance(result, Failure):
        raise AuthFailure(result)

    token_service: TokenService = request.app.state.token_service
    token = token_service.issue(response, result.id, result.role)
    response.headers["Cache-Control"] = "no-store"
    return AuthResponse(token=token, user=UserSummary.from_user(result))


@router.post("/logout", response_model=MessageResponse)
def logout(request: Request, response: Response) -> MessageResponse:
    """Expire the jwt cookie. Succeeds whether or not the caller was logged in."""
    token_service: TokenService = request.app.state.token_service
    token_service.clear(response)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=MeResponse)
def me(current_user: User = Depends(protect)) -> MeResponse:
    """Return identity information for the currently authenticated user."""
    return MeResponse(
        id=current_user.id,
        name=current_user.name,
        email=current_user.email,
        role=current_user.role.value,
    )
