"""
auth/models.py -- Domain dataclasses and enums for authentication entities.

Pattern: Data class (pure data container, near-zero logic). Dataclasses own
domain shape; the store and routes do the work.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """Closed set of roles. Unknown role strings are rejected at registration.

    tOfficer is the privileged operational role; like admin it starts pending.
    """

    USER = "user"
    ADMIN = "admin"
    T_OFFICER = "tOfficer"


class ApprovalState(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"


@dataclass
class User:
    """A registered identity.

    is_approved is True at registration only for Role.USER. The store offers
    no path back from True to False, and role cannot be changed after insert.

    password_hash is the bcrypt digest. It never leaves the process: the API
    layer maps User into response models that omit it.
    """

    name: str
    email: str
    role: Role
    password_hash: str
    phone_number: str | None = None
    address: str | None = None
    is_approved: bool = False
    id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def approval_state(self) -> ApprovalState:
        return ApprovalState.APPROVED if self.is_approved else ApprovalState.PENDING


@dataclass
class Registration:
    """Raw registration input as received from the client, before validation.

    Every field is optional here so that missing values surface as
    ValidationFailed from the lifecycle rather than as a transport error.
    """

    name: str | None = None
    email: str | None = None
    password: str | None = None
    role: str | None = None
    address: str | None = None
    phone_number: str | None = None


@dataclass(frozen=True)
class TokenClaims:
    """The verified contents of a bearer token."""

    user_id: str
    role: Role
    issued_at: datetime
    expires_at: datetime
