"""User domain entity."""

from typing import Any

from pydantic import Field

from src.library.core.models.actor import Actor, Role
from src.library.entities.core._base import Entity


class User(Entity):
    """User entity representing an account in the system.

    The password is only ever held as a salted hash; it is excluded from
    serialization so it never leaves the service layer.
    """

    username: str = Field(min_length=3, description="Unique username")
    password_hash: str = Field(exclude=True, repr=False, description="Salted hash")
    role: Role = Field(default=Role.USER, description="User role")

    def to_actor(self) -> Actor:
        return Actor(id=self.id, username=self.username, role=self.role)

    def __eq__(self, other: Any) -> bool:
        """Compare users by business attributes, ignoring timestamps."""
        if not isinstance(other, User):
            return False

        return (
            self.id == other.id
            and self.username == other.username
            and self.role == other.role
        )

    def __hash__(self) -> int:
        return hash((self.id, self.username, self.role))
