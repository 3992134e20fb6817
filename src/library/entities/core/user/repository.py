"""User repository for data access operations."""

from collections.abc import Iterable

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from src.library.core.exceptions import DuplicateKeyError
from src.library.entities.core.user.entity import User
from src.library.entities.core.user.table import UserTable


class UserRepository:
    """Data-access layer for users."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, user_id: str) -> User | None:
        row = self._session.get(UserTable, user_id)
        if row is None:
            return None
        return User.model_validate(row, from_attributes=True)

    def get_by_username(self, username: str) -> User | None:
        statement = select(UserTable).where(UserTable.username == username)
        row = self._session.exec(statement).first()
        if row is None:
            return None
        return User.model_validate(row, from_attributes=True)

    def get_many(self, user_ids: Iterable[str]) -> dict[str, User]:
        """Load several users at once, keyed by id. Unknown ids are skipped."""
        ids = {user_id for user_id in user_ids if user_id}
        if not ids:
            return {}
        statement = select(UserTable).where(col(UserTable.id).in_(ids))
        return {
            row.id: User.model_validate(row, from_attributes=True)
            for row in self._session.exec(statement)
        }

    def list_all(self) -> list[User]:
        statement = select(UserTable).order_by(col(UserTable.created_at))
        return [
            User.model_validate(row, from_attributes=True)
            for row in self._session.exec(statement)
        ]

    def create(self, user: User) -> User:
        """Insert a user, raising ``DuplicateKeyError`` if the username is taken."""
        if self.get_by_username(user.username) is not None:
            raise DuplicateKeyError(f"Username '{user.username}' already exists")

        row = UserTable(
            id=user.id,
            username=user.username,
            password_hash=user.password_hash,
            role=user.role.value,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )
        self._session.add(row)
        try:
            self._session.flush()
        except IntegrityError as e:
            self._session.rollback()
            raise DuplicateKeyError(f"Username '{user.username}' already exists") from e
        self._session.refresh(row)
        return User.model_validate(row, from_attributes=True)
