"""User database table model."""

from sqlmodel import Field

from src.library.entities.core._base import EntityTable


class UserTable(EntityTable, table=True):
    """Database persistence model for users."""

    __tablename__ = "users"

    username: str = Field(max_length=150, unique=True, index=True)
    password_hash: str
    role: str = Field(default="user", max_length=20)
