"""Entity: Book."""

from datetime import UTC, datetime
from typing import Any

from pydantic import Field, field_validator

from src.library.entities.core._base import Entity, as_utc
from src.library.entities.service.book.lending import (
    Available,
    BookStatus,
    LendingState,
    Loan,
    Reservation,
    from_columns,
)

DEFAULT_COVER = "default-book.png"
MIN_YEAR = 1000


def max_year() -> int:
    return datetime.now(UTC).year + 1


def check_year(value: int) -> int:
    if not MIN_YEAR <= value <= max_year():
        raise ValueError(f"Year must be between {MIN_YEAR} and {max_year()}")
    return value


def clean_isbn(value: str | None) -> str | None:
    """Trim an isbn; blank values mean "no catalog code"."""
    if value is None:
        return None
    value = value.strip()
    return value or None


class Book(Entity):
    """Book entity representing one catalog item.

    The lending fields live in ``lending``, a tagged variant whose ``status``
    is the single source of truth. Catalog fields can be edited freely and
    never touch it.
    """

    title: str = Field(min_length=1, max_length=200, description="Title")
    author: str = Field(min_length=1, max_length=100, description="Author")
    year: int = Field(description="Publication year")
    isbn: str | None = Field(default=None, description="Catalog code, unique when set")
    description: str | None = Field(default=None, max_length=1000)
    image: str = Field(default=DEFAULT_COVER, description="Cover image reference")
    created_by: str = Field(description="Id of the user who created the book")
    lending: LendingState = Field(default_factory=Available)

    @field_validator("title", "author", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("year")
    @classmethod
    def _check_year(cls, value: int) -> int:
        return check_year(value)

    @field_validator("isbn", mode="before")
    @classmethod
    def _clean_isbn(cls, value: Any) -> Any:
        return clean_isbn(value) if isinstance(value, str) or value is None else value

    @property
    def status(self) -> BookStatus:
        return self.lending.status

    @property
    def loan(self) -> Loan | None:
        return self.lending.active_loan

    @property
    def reservation(self) -> Reservation | None:
        return self.lending.reservation

    @property
    def has_custom_cover(self) -> bool:
        return bool(self.image) and self.image != DEFAULT_COVER

    @classmethod
    def from_row(cls, row: Any) -> "Book":
        """Build a book from a ``BookTable`` row."""
        return cls(
            id=row.id,
            title=row.title,
            author=row.author,
            year=row.year,
            isbn=row.isbn,
            description=row.description,
            image=row.image,
            created_by=row.created_by,
            created_at=as_utc(row.created_at),
            updated_at=as_utc(row.updated_at),
            lending=from_columns(
                status=row.status,
                borrowed_by=row.borrowed_by,
                borrowed_at=as_utc(row.borrowed_at),
                due_date=as_utc(row.due_date),
                reserved_by=row.reserved_by,
                reserved_at=as_utc(row.reserved_at),
            ),
        )

    def __eq__(self, other: Any) -> bool:
        """Compare books by business attributes, ignoring timestamps."""
        if not isinstance(other, Book):
            return False

        return (
            self.id == other.id
            and self.title == other.title
            and self.author == other.author
            and self.year == other.year
            and self.isbn == other.isbn
            and self.lending == other.lending
        )

    def __hash__(self) -> int:
        return hash((self.id, self.title, self.author, self.year, self.isbn))
