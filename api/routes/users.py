"""
api/routes/users.py -- Admin-only user management endpoints.

Routes:
  GET /api/users                 -- every user
  GET /api/users/pending         -- users waiting for approval
  PUT /api/users/{user_id}/approve -- Pending -> Approved

Every route on this router runs protect() then authorize(Role.ADMIN), in that
order, via the router-level dependency list.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import UserSummary
from auth import lifecycle
from auth.dependencies import authorize, protect
from auth.errors import AuthFailure, Failure
from auth.models import Role
from auth.store import UserStore

router = APIRouter(
    prefix="/users",
    dependencies=[Depends(protect), Depends(authorize(Role.ADMIN))],
)


@router.get("", response_model=list[UserSummary])
def list_users(request: Request) -> list[UserSummary]:
    user_store: UserStore = request.app.state.user_store
    return [UserSummary.from_user(u) for u in lifecycle.list_users(user_store)]


@router.get("/pending", response_model=list[UserSummary])
def list_pending_users(request: Request) -> list[UserSummary]:
    """List accounts still in the Pending state. No pagination."""
    user_store: UserStore = request.app.state.user_store
    return [UserSummary.from_user(u) for u in lifecycle.list_pending(user_store)]


@router.put("/{user_id}/approve", response_model=UserSummary)
def approve_user(request: Request, user_id: str) -> UserSummary:
    """Approve a pending account. Approving an approved account succeeds unchanged."""
    user_store: UserStore = request.app.state.user_store
    result = lifecycle.approve(user_store, user_id)
    if isinstance(result, Failure):
        raise AuthFailure(result)
    return UserSummary.from_user(result)
