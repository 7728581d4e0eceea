"""
auth/passwords.py -- bcrypt password hashing and verification.

bcrypt is used directly (no passlib wrapper): it salts automatically and its
cost factor makes brute force expensive. The cost comes from BCRYPT_ROUNDS;
tests lower it to keep the suite fast.

bcrypt only looks at the first 72 bytes of its input. Newer bcrypt releases
raise on longer input instead of truncating silently, so we truncate first.

DUMMY_HASH enables timing equalization in auth/lifecycle.login(): when the
email is unknown we still run a full bcrypt check, so response time does not
reveal whether an account exists.
"""

from __future__ import annotations

import bcrypt

from core.config import get_settings

_BCRYPT_MAX_BYTES = 72

_settings = get_settings()


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of plain. Raises ValueError on empty input."""
    if not plain:
        raise ValueError("Password must not be empty.")
    salt = bcrypt.gensalt(rounds=_settings.bcrypt_rounds)
    return bcrypt.hashpw(_encode(plain), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if plain matches the bcrypt hash.

    Mismatches, empty input and malformed digests all return False.
    """
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at import so the first unknown-email login is not measurably
# slower than later ones.
DUMMY_HASH: str = hash_password("accessgate_timing_dummy")
