"""Authenticated caller identity."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class Role(StrEnum):
    ADMIN = "admin"
    USER = "user"


class Actor(BaseModel):
    """The identity a request acts as, resolved by access control.

    Services take an ``Actor`` instead of a request or session so that the
    authorization rules do not depend on how the caller authenticated.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="User id")
    username: str = Field(description="Username")
    role: Role = Field(default=Role.USER, description="User role")

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def acts_for(self, user_id: str | None) -> bool:
        """True if the actor is ``user_id`` or holds admin privilege."""
        return self.is_admin or (user_id is not None and self.id == user_id)
