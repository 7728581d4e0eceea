"""Unit tests for auth/lifecycle.py -- the Pending/Approved account state machine.

Covers:
- register(): role "user" (explicit or defaulted) starts Approved; other roles start Pending
- register(): validation failures list every problem and write nothing
- register(): blank role is treated as missing
- register(): duplicate email -> DUPLICATE_IDENTITY, including a lost insert race; store failure -> INVALID_DATA
- login(): unknown email and wrong password return the identical failure
- login(): correct password on a Pending account -> ACCOUNT_NOT_APPROVED
- approve(): Pending -> Approved, idempotent, NOT_FOUND for unknown ids
- bootstrap_admin(): seeds an approved admin once; warns when the email belongs to a non-admin
"""

from __future__ import annotations

import logging
from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from auth import lifecycle
from auth.errors import ErrorKind, Failure
from auth.models import ApprovalState, Registration, Role, User
from auth.passwords import verify_password
from auth.store import UserStore


def _registration(**overrides) -> Registration:
    values = {
        "name": "Test User",
        "email": "test@example.com",
        "password": "password123",
        "phone_number": "1234567890",
    }
    values.update(overrides)
    return Registration(**values)


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


class TestRegister:
    def test_default_role_is_user_and_approved(self, store: UserStore) -> None:
        user = lifecycle.register(store, _registration())
        assert isinstance(user, User)
        assert user.role is Role.USER
        assert user.is_approved is True
        assert user.approval_state is ApprovalState.APPROVED

    def test_password_is_stored_hashed(self, store: UserStore) -> None:
        user = lifecycle.register(store, _registration())
        assert user.password_hash != "password123"
        assert verify_password("password123", user.password_hash)

    @pytest.mark.parametrize("role", [Role.ADMIN, Role.T_OFFICER])
    def test_privileged_roles_start_pending(self, store: UserStore, role: Role) -> None:
        user = lifecycle.register(store, _registration(role=role.value))
        assert user.role is role
        assert user.is_approved is False
        assert user.approval_state is ApprovalState.PENDING

    def test_explicit_user_role_is_approved(self, store: UserStore) -> None:
        user = lifecycle.register(store, _registration(role="user"))
        assert user.is_approved is True

    def test_validation_lists_every_problem(self, store: UserStore) -> None:
        result = lifecycle.register(
            store, _registration(name=" ", email="invalid-email", password="123", phone_number="")
        )
        assert isinstance(result, Failure)
        assert result.kind is ErrorKind.VALIDATION_FAILED
        assert result.message == (
            "Name is required, Invalid email format, "
            "Password must be at least 6 characters, Phone number is required"
        )
        assert store.list_users() == []

    def test_missing_fields(self, store: UserStore) -> None:
        result = lifecycle.register(store, Registration())
        assert result.kind is ErrorKind.VALIDATION_FAILED
        assert "Email is required" in result.message
        assert "Password is required" in result.message

    def test_unknown_role_rejected(self, store: UserStore) -> None:
        result = lifecycle.register(store, _registration(role="superuser"))
        assert result.kind is ErrorKind.VALIDATION_FAILED
        assert "Unknown role: superuser" in result.message
        assert store.list_users() == []

    def test_duplicate_email(self, store: UserStore) -> None:
        lifecycle.register(store, _registration())
        result = lifecycle.register(store, _registration(name="Someone Else"))
        assert result == Failure(ErrorKind.DUPLICATE_IDENTITY, "User already exists")
        assert len(store.list_users()) == 1

    def test_blank_role_defaults_to_approved_user(self, store: UserStore) -> None:
        for i, blank in enumerate(("", "   ")):
            user = lifecycle.register(store, _registration(email=f"blank{i}@example.com", role=blank))
            assert isinstance(user, User)
            assert user.role is Role.USER
            assert user.is_approved is True

    def test_concurrent_insert_of_same_email_is_duplicate(self, store: UserStore) -> None:
        # The pre-check sees no user, but another insert wins before ours.
        lost_race = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: users.email"))
        with patch.object(store, "create_user", side_effect=lost_race):
            result = lifecycle.register(store, _registration())
        assert result == Failure(ErrorKind.DUPLICATE_IDENTITY, "User already exists")

    def test_store_failure_is_invalid_data(self, store: UserStore) -> None:
        boom = OperationalError("INSERT", {}, Exception("disk I/O error"))
        with patch.object(store, "create_user", side_effect=boom):
            result = lifecycle.register(store, _registration())
        assert result == Failure(ErrorKind.INVALID_DATA, "Invalid user data")


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


class TestLogin:
    def test_approved_user_logs_in(self, store: UserStore) -> None:
        registered = lifecycle.register(store, _registration())
        user = lifecycle.login(store, "test@example.com", "password123")
        assert isinstance(user, User)
        assert user.id == registered.id

    def test_wrong_password_and_unknown_email_look_identical(self, store: UserStore) -> None:
        lifecycle.register(store, _registration())
        wrong_password = lifecycle.login(store, "test@example.com", "nope-nope")
        unknown_email = lifecycle.login(store, "ghost@example.com", "password123")
        assert isinstance(wrong_password, Failure)
        assert wrong_password == unknown_email
        assert wrong_password.kind is ErrorKind.INVALID_CREDENTIALS

    def test_unknown_email_still_runs_bcrypt(self, store: UserStore) -> None:
        with patch("auth.lifecycle.verify_password", return_value=False) as verify:
            lifecycle.login(store, "ghost@example.com", "password123")
        verify.assert_called_once()

    def test_pending_user_with_correct_password(self, store: UserStore) -> None:
        lifecycle.register(store, _registration(role="tOfficer"))
        result = lifecycle.login(store, "test@example.com", "password123")
        assert result == Failure(ErrorKind.ACCOUNT_NOT_APPROVED, "Account not approved yet")

    def test_pending_user_with_wrong_password_gets_generic_failure(self, store: UserStore) -> None:
        lifecycle.register(store, _registration(role="tOfficer"))
        result = lifecycle.login(store, "test@example.com", "wrong-password")
        assert result.kind is ErrorKind.INVALID_CREDENTIALS


# ---------------------------------------------------------------------------
# Approval
# ---------------------------------------------------------------------------


class TestApprove:
    def test_pending_to_approved_unlocks_login(self, store: UserStore) -> None:
        pending = lifecycle.register(store, _registration(role="tOfficer"))
        assert lifecycle.login(store, "test@example.com", "password123").kind is ErrorKind.ACCOUNT_NOT_APPROVED

        approved = lifecycle.approve(store, pending.id)
        assert approved.is_approved is True
        assert approved.role is Role.T_OFFICER

        user = lifecycle.login(store, "test@example.com", "password123")
        assert isinstance(user, User)

    def test_approve_is_idempotent(self, store: UserStore) -> None:
        user = lifecycle.register(store, _registration())
        again = lifecycle.approve(store, user.id)
        assert isinstance(again, User)
        assert again.is_approved is True

    def test_approve_unknown(self, store: UserStore) -> None:
        assert lifecycle.approve(store, "missing") == Failure(ErrorKind.NOT_FOUND, "User not found")

    def test_list_pending(self, store: UserStore) -> None:
        lifecycle.register(store, _registration(email="u@example.com"))
        officer = lifecycle.register(store, _registration(email="o@example.com", role="tOfficer"))
        assert [u.id for u in lifecycle.list_pending(store)] == [officer.id]
        assert len(lifecycle.list_users(store)) == 2


class TestBootstrapAdmin:
    def test_seeds_approved_admin_once(self, store: UserStore) -> None:
        admin = lifecycle.bootstrap_admin(store, "Root", "root@example.com", "rootpass1")
        assert admin.role is Role.ADMIN
        assert admin.is_approved is True
        again = lifecycle.bootstrap_admin(store, "Root", "root@example.com", "different")
        assert again.id == admin.id
        assert len(store.list_users()) == 1
        assert isinstance(lifecycle.login(store, "root@example.com", "rootpass1"), User)

    def test_existing_non_admin_email_is_returned_with_warning(self, store: UserStore, caplog) -> None:
        officer = lifecycle.register(store, _registration(email="root@example.com", role="tOfficer"))
        with caplog.at_level(logging.WARNING, logger="accessgate.auth"):
            result = lifecycle.bootstrap_admin(store, "Root", "root@example.com", "rootpass1")
        assert result.id == officer.id
        assert result.role is Role.T_OFFICER
        assert "no admin was seeded" in caplog.text
        assert len(store.list_users()) == 1

    def test_existing_admin_is_returned_quietly(self, store: UserStore, caplog) -> None:
        lifecycle.bootstrap_admin(store, "Root", "root@example.com", "rootpass1")
        caplog.clear()
        with caplog.at_level(logging.WARNING, logger="accessgate.auth"):
            lifecycle.bootstrap_admin(store, "Root", "root@example.com", "rootpass1")
        assert "no admin was seeded" not in caplog.text
