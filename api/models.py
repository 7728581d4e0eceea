"""
API request and response models for AccessGate REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

JSON field names are camelCase (isApproved, phoneNumber); Python attributes
stay snake_case via the alias generator. Responses must be dumped with
by_alias=True.

No response model has a password or hash field, so a User can never leak
its digest through the API.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from auth.models import Registration, User

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/auth/register.

    All fields are optional at the transport level. Presence, format and role
    checks belong to auth.lifecycle.validate_registration() so that they come
    back as a single 400 with every problem listed.
    """

    model_config = _CAMEL

    name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=255)
    role: Optional[str] = Field(default=None, max_length=30)
    address: Optional[str] = Field(default=None, max_length=1000)
    phone_number: Optional[str] = Field(default=None, max_length=50)

    def to_registration(self) -> Registration:
        return Registration(
            name=self.name,
            email=self.email,
            password=self.password,
            role=self.role,
            address=self.address,
            phone_number=self.phone_number,
        )


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login."""

    email: str = Field(default="", max_length=255)
    password: str = Field(default="", max_length=255)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserSummary(BaseModel):
    """Public view of a user. Used by register, login, approve and the user lists."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    name: str
    email: str
    role: str
    is_approved: bool
    address: Optional[str] = None
    phone_number: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role.value,
            is_approved=user.is_approved,
            address=user.address,
            phone_number=user.phone_number,
            created_at=user.created_at,
        )


class AuthResponse(BaseModel):
    """Returned when a token was issued: register (auto-approved) and login."""

    model_config = _CAMEL

    token: str
    user: UserSummary


class PendingRegistrationResponse(BaseModel):
    """Returned by register when the account waits for admin approval. No token."""

    model_config = _CAMEL

    message: str
    user: UserSummary


class MeResponse(BaseModel):
    """Response for GET /api/auth/me."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str
    role: str


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class ErrorResponse(BaseModel):
    """Error envelope returned on every 4xx/5xx response.

    stack is only populated for unexpected errors when DEBUG is on.
    """

    model_config = ConfigDict(frozen=True)

    message: str
    code: str
    stack: Optional[str] = None


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
