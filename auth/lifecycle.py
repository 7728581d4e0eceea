"""
auth/lifecycle.py -- Account lifecycle: registration, login, approval.

Every account is in one of two states, derived from User.is_approved:

    Pending --approve()--> Approved

There is no reverse transition. Registration puts Role.USER accounts straight
into Approved; every other role starts Pending and cannot log in until an
admin approves it.

Each operation returns either its result or a Failure. Nothing here raises
for an expected outcome, and nothing here knows about HTTP status codes --
api/main.py maps ErrorKind to a status exactly once.

Token issuance is deliberately not done here. register() and login() only
decide whether the caller is entitled to a token; the route handler owns the
response object and asks the TokenService to write the cookie.
"""

from __future__ import annotations

import logging
import re

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import ErrorKind, Failure
from auth.models import Registration, Role, User
from auth.passwords import DUMMY_HASH, hash_password, verify_password
from auth.store import UserStore

logger = logging.getLogger("accessgate.auth")

MIN_PASSWORD_LENGTH = 6

PENDING_MESSAGE = "Account created successfully. Please wait for admin approval."

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Same text for unknown email and wrong password.
_INVALID_CREDENTIALS = Failure(ErrorKind.INVALID_CREDENTIALS, "Invalid email or password")


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def validate_registration(registration: Registration) -> list[str]:
    """Return every problem with the registration input, in a stable order."""
    errors: list[str] = []
    if _blank(registration.name):
        errors.append("Name is required")
    if _blank(registration.email):
        errors.append("Email is required")
    elif not _EMAIL_RE.match(registration.email):
        errors.append("Invalid email format")
    if _blank(registration.password):
        errors.append("Password is required")
    elif len(registration.password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if _blank(registration.phone_number):
        errors.append("Phone number is required")
    if not _blank(registration.role) and registration.role not in {r.value for r in Role}:
        errors.append(f"Unknown role: {registration.role}")
    return errors


def register(store: UserStore, registration: Registration) -> User | Failure:
    """Create an account. Role.USER starts approved, every other role pending.

    Nothing is written unless validation passes. The duplicate check runs
    before hashing so a known-taken email is rejected cheaply; the UNIQUE
    index still catches a concurrent insert that slips past it.
    """
    errors = validate_registration(registration)
    if errors:
        return Failure(ErrorKind.VALIDATION_FAILED, ", ".join(errors))

    if store.get_by_email(registration.email) is not None:
        return Failure(ErrorKind.DUPLICATE_IDENTITY, "User already exists")

    role = Role.USER if _blank(registration.role) else Role(registration.role)
    user = User(
        name=registration.name.strip(),
        email=registration.email,
        role=role,
        password_hash=hash_password(registration.password),
        phone_number=registration.phone_number.strip(),
        address=registration.address,
        is_approved=role is Role.USER,
    )
    try:
        user_id = store.create_user(user)
    except IntegrityError:
        return Failure(ErrorKind.DUPLICATE_IDENTITY, "User already exists")
    except SQLAlchemyError:
        logger.exception("User insert failed for role=%s", role.value)
        return Failure(ErrorKind.INVALID_DATA, "Invalid user data")

    created = store.get_by_id(user_id)
    if created is None:
        return Failure(ErrorKind.INVALID_DATA, "Invalid user data")
    logger.info("Registered user id=%s role=%s state=%s", created.id, created.role.value, created.approval_state.value)
    return created


def login(store: UserStore, email: str, password: str) -> User | Failure:
    """Check credentials and approval. Returns the user if a token may be issued.

    bcrypt always runs, against DUMMY_HASH when the email is unknown, so
    response time does not reveal whether the account exists. The approval
    check comes after the password check: only someone who knows the
    password learns that the account is pending.
    """
    user = store.get_by_email(email) if email else None
    if user is None:
        verify_password(password, DUMMY_HASH)
        logger.info("Login rejected: unknown email")
        return _INVALID_CREDENTIALS
    if not verify_password(password, user.password_hash):
        logger.info("Login rejected: bad password for id=%s", user.id)
        return _INVALID_CREDENTIALS
    if not user.is_approved:
        logger.info("Login rejected: id=%s is pending approval", user.id)
        return Failure(ErrorKind.ACCOUNT_NOT_APPROVED, "Account not approved yet")
    return user


def approve(store: UserStore, user_id: str) -> User | Failure:
    """Move a Pending account to Approved. Approving an approved account is a no-op success."""
    if not store.approve(user_id):
        return Failure(ErrorKind.NOT_FOUND, "User not found")
    user = store.get_by_id(user_id)
    if user is None:
        return Failure(ErrorKind.NOT_FOUND, "User not found")
    logger.info("Approved user id=%s role=%s", user.id, user.role.value)
    return user


def list_users(store: UserStore) -> list[User]:
    return store.list_users()


def list_pending(store: UserStore) -> list[User]:
    return store.list_pending()


def bootstrap_admin(store: UserStore, name: str, email: str, password: str) -> User:
    """Seed an approved admin unless the email is already registered.

    Administrative path, used at startup and by test fixtures. It bypasses
    the Pending state on purpose: without it the first admin could never be
    approved by anyone. An existing account is returned unchanged, whatever
    its role; a non-admin one is logged, since the app then has no seeded admin.
    """
    existing = store.get_by_email(email)
    if existing is not None:
        if existing.role is not Role.ADMIN:
            logger.warning(
                "Bootstrap admin email %s belongs to id=%s with role=%s; no admin was seeded",
                email,
                existing.id,
                existing.role.value,
            )
        return existing
    user_id = store.create_user(
        User(
            name=name,
            email=email,
            role=Role.ADMIN,
            password_hash=hash_password(password),
            is_approved=True,
        )
    )
    logger.warning("Bootstrapped admin account id=%s", user_id)
    return store.get_by_id(user_id)
