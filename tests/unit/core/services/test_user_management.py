"""Unit tests for account registration and credential checks."""

import pytest
from sqlmodel import Session

from src.library.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DuplicateKeyError,
    ValidationError,
)
from src.library.core.models.actor import Role
from src.library.core.services import UserManagementService
from src.library.runtime.config.config_data import ConfigData, SecurityConfig
from src.library.runtime.context import with_context


@pytest.fixture
def users(session: Session) -> UserManagementService:
    return UserManagementService(session)


class TestRegister:
    def test_register_hashes_password(self, users):
        user = users.register("alice", "secret123")

        assert user.role == Role.USER
        assert user.password_hash != "secret123"
        assert users.get_user(user.id) == user

    def test_username_is_trimmed(self, users):
        assert users.register("  alice ", "secret123").username == "alice"

    @pytest.mark.parametrize(
        ("username", "password"), [("al", "secret123"), ("alice", "short")]
    )
    def test_too_short(self, users, username, password):
        with pytest.raises(ValidationError):
            users.register(username, password)

    def test_duplicate_username(self, users):
        users.register("alice", "secret123")

        with pytest.raises(DuplicateKeyError):
            users.register("alice", "another123")

        assert len(users.list_users()) == 1

    def test_admin_registration_disabled_by_default(self, users):
        with pytest.raises(AuthorizationError):
            users.register("root", "secret123", Role.ADMIN)

        assert users.list_users() == []

    def test_admin_registration_when_enabled(self, users):
        override = ConfigData(security=SecurityConfig(allow_admin_registration=True))
        with with_context(override):
            user = users.register("root", "secret123", Role.ADMIN)

        assert user.role == Role.ADMIN

    def test_explicit_admin_bootstrap(self, users):
        user = users.register("root", "secret123", Role.ADMIN, allow_admin=True)

        assert user.to_actor().is_admin


class TestAuthenticate:
    def test_valid_credentials(self, users):
        registered = users.register("alice", "secret123")

        assert users.authenticate("alice", "secret123") == registered

    @pytest.mark.parametrize(
        ("username", "password"), [("alice", "wrong-pass"), ("nobody", "secret123")]
    )
    def test_invalid_credentials_share_one_message(self, users, username, password):
        users.register("alice", "secret123")

        with pytest.raises(AuthenticationError, match="Invalid credentials"):
            users.authenticate(username, password)
