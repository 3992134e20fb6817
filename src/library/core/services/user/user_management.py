from loguru import logger
from sqlmodel import Session

from src.library.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ValidationError,
)
from src.library.core.models.actor import Role
from src.library.core.security import MIN_PASSWORD_LENGTH, hash_password, verify_password
from src.library.entities.core.user.entity import User
from src.library.entities.core.user.repository import UserRepository
from src.library.runtime.context import get_config

MIN_USERNAME_LENGTH = 3


class UserManagementService:
    """Registration and credential checks for local accounts."""

    def __init__(self, db_session: Session):
        self._user_repo = UserRepository(db_session)
        self._db_session = db_session

    def register(
        self,
        username: str,
        password: str,
        role: Role = Role.USER,
        *,
        allow_admin: bool | None = None,
    ) -> User:
        """Create an account.

        ``allow_admin`` overrides ``security.allow_admin_registration``; the
        CLI passes True to bootstrap the first administrator.

        Raises:
            ValidationError: username or password too short
            AuthorizationError: admin role requested but not allowed
            DuplicateKeyError: username already taken
        """
        username = username.strip()
        if len(username) < MIN_USERNAME_LENGTH:
            raise ValidationError(
                f"Username must be at least {MIN_USERNAME_LENGTH} characters long"
            )
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
            )

        if allow_admin is None:
            allow_admin = get_config().security.allow_admin_registration
        if role == Role.ADMIN and not allow_admin:
            logger.bind(username=username).warning("auth.admin_registration_denied")
            raise AuthorizationError("Registering as admin is not allowed")

        try:
            user = self._user_repo.create(
                User(username=username, password_hash=hash_password(password), role=role)
            )
            self._db_session.commit()
        except Exception:
            self._db_session.rollback()
            raise

        logger.bind(user_id=user.id, username=user.username).info("auth.registered")
        return user

    def authenticate(self, username: str, password: str) -> User:
        """Return the user for valid credentials.

        Raises:
            AuthenticationError: unknown username or wrong password, with the
                same message for both
        """
        user = self._user_repo.get_by_username(username.strip())
        if user is None:
            logger.bind(username=username).warning("auth.unknown_user")
            raise AuthenticationError("Invalid credentials")
        if not verify_password(user.password_hash, password):
            logger.bind(username=username).warning("auth.bad_password")
            raise AuthenticationError("Invalid credentials")

        logger.bind(user_id=user.id, username=user.username).info("auth.login")
        return user

    def get_user(self, user_id: str) -> User | None:
        return self._user_repo.get(user_id)

    def list_users(self) -> list[User]:
        return self._user_repo.list_all()
