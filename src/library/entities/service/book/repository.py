"""Book repository for data access operations."""

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import ColumnElement, and_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, func, select

from src.library.core.exceptions import DuplicateKeyError
from src.library.entities.core._base import utcnow
from src.library.entities.service.book.entity import Book
from src.library.entities.service.book.lending import LendingState, to_columns
from src.library.entities.service.book.table import BookTable

Predicate = Sequence[ColumnElement[bool]]

_EDITABLE_FIELDS = ("title", "author", "year", "isbn", "description", "image")


def _matches(column, value) -> ColumnElement[bool]:
    return col(column).is_(None) if value is None else column == value


class BookRepository:
    """Data-access layer for books.

    Lifecycle writes go through ``transition``, a conditional update that only
    applies when the row still holds the state it was computed from.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, book_id: str) -> Book | None:
        row = self._session.get(BookTable, book_id)
        if row is None:
            return None
        return Book.from_row(row)

    def get_by_isbn(self, isbn: str) -> Book | None:
        statement = select(BookTable).where(BookTable.isbn == isbn)
        row = self._session.exec(statement).first()
        if row is None:
            return None
        return Book.from_row(row)

    def find(
        self,
        predicate: Predicate = (),
        order_by: ColumnElement | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[Book]:
        statement = select(BookTable).where(and_(True, *predicate))
        if order_by is not None:
            statement = statement.order_by(order_by)
        statement = statement.offset(skip)
        if limit is not None:
            statement = statement.limit(limit)
        return [Book.from_row(row) for row in self._session.exec(statement)]

    def count(self, predicate: Predicate = ()) -> int:
        statement = (
            select(func.count()).select_from(BookTable).where(and_(True, *predicate))
        )
        return self._session.exec(statement).one()

    def create(self, book: Book) -> Book:
        """Insert a book, raising ``DuplicateKeyError`` on an isbn collision."""
        self._ensure_isbn_free(book.isbn, book.id)
        row = BookTable(
            id=book.id,
            title=book.title,
            author=book.author,
            year=book.year,
            isbn=book.isbn,
            description=book.description,
            image=book.image,
            created_by=book.created_by,
            created_at=book.created_at,
            updated_at=book.updated_at,
            **to_columns(book.lending),
        )
        self._session.add(row)
        self._flush(book.isbn)
        self._session.refresh(row)
        return Book.from_row(row)

    def update(self, book: Book) -> Book:
        """Persist the catalog fields of ``book``. Lending columns are untouched."""
        row = self._session.get(BookTable, book.id)
        if row is None:
            raise ValueError(f"Book with id {book.id} not found")

        self._ensure_isbn_free(book.isbn, book.id)
        for field in _EDITABLE_FIELDS:
            setattr(row, field, getattr(book, field))
        row.updated_at = utcnow()
        self._session.add(row)
        self._flush(book.isbn)
        self._session.refresh(row)
        return Book.from_row(row)

    def delete(self, book_id: str) -> Book | None:
        """Delete a book and return what was removed, or None if absent."""
        row = self._session.get(BookTable, book_id)
        if row is None:
            return None
        deleted = Book.from_row(row)
        self._session.delete(row)
        self._session.flush()
        return deleted

    def transition(
        self,
        book_id: str,
        expected: LendingState,
        new: LendingState,
        now: datetime | None = None,
    ) -> Book | None:
        """Move a book from ``expected`` to ``new`` in one conditional UPDATE.

        Returns the updated book, or None when the row is gone or no longer
        holds ``expected`` (another request got there first).
        """
        before = to_columns(expected)
        statement = (
            update(BookTable)
            .where(
                col(BookTable.id) == book_id,
                col(BookTable.status) == before["status"],
                _matches(BookTable.borrowed_by, before["borrowed_by"]),
                _matches(BookTable.reserved_by, before["reserved_by"]),
            )
            .values(**to_columns(new), updated_at=now or utcnow())
            .execution_options(synchronize_session=False)
        )
        result = self._session.execute(statement)
        if result.rowcount != 1:
            return None

        row = self._session.get(BookTable, book_id, populate_existing=True)
        return Book.from_row(row) if row is not None else None

    def _ensure_isbn_free(self, isbn: str | None, book_id: str) -> None:
        if isbn is None:
            return
        existing = self.get_by_isbn(isbn)
        if existing is not None and existing.id != book_id:
            raise DuplicateKeyError(f"ISBN '{isbn}' already exists")

    def _flush(self, isbn: str | None) -> None:
        try:
            self._session.flush()
        except IntegrityError as e:
            self._session.rollback()
            raise DuplicateKeyError(f"ISBN '{isbn}' already exists") from e
