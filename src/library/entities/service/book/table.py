"""Book database table model."""

from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field

from src.library.entities.core._base import EntityTable
from src.library.entities.service.book.entity import DEFAULT_COVER


class BookTable(EntityTable, table=True):
    """Database persistence model for books.

    The lending columns are the flat projection of ``Book.lending``; columns
    that do not apply to the current status are NULL.
    """

    __tablename__ = "books"

    title: str = Field(max_length=200, index=True)
    author: str = Field(max_length=100, index=True)
    year: int = Field(index=True)
    status: str = Field(default="available", max_length=20, index=True)
    isbn: str | None = Field(default=None, max_length=32, unique=True)
    description: str | None = Field(default=None, max_length=1000)
    image: str = Field(default=DEFAULT_COVER, max_length=255)
    created_by: str = Field(foreign_key="users.id", index=True)

    borrowed_by: str | None = Field(default=None, foreign_key="users.id")
    borrowed_at: datetime | None = Field(
        default=None, sa_type=sa.DateTime(timezone=True)
    )
    due_date: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))

    reserved_by: str | None = Field(default=None, foreign_key="users.id")
    reserved_at: datetime | None = Field(
        default=None, sa_type=sa.DateTime(timezone=True)
    )
