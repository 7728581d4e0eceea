"""
auth/errors.py -- Failure taxonomy for the auth domain.

Lifecycle operations return a Failure instead of raising, so every outcome is
visible in the return type. Dependencies and route handlers that need to stop
the request wrap the Failure in AuthFailure; the exception handler in
api/main.py is the one place that turns an ErrorKind into an HTTP status.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION_FAILED = "validation_failed"
    DUPLICATE_IDENTITY = "duplicate_identity"
    INVALID_DATA = "invalid_data"
    INVALID_CREDENTIALS = "invalid_credentials"
    ACCOUNT_NOT_APPROVED = "account_not_approved"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class Failure:
    """A classified, client-safe failure. message is shown to the caller as-is."""

    kind: ErrorKind
    message: str


class AuthFailure(Exception):
    """Carries a Failure out of a dependency or handler to the boundary."""

    def __init__(self, failure: Failure) -> None:
        super().__init__(failure.message)
        self.failure = failure
