"""Catalog query engine: filtering, sorting and pagination over books."""

import math
from datetime import datetime
from enum import StrEnum
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import ColumnElement, or_
from sqlmodel import Session, col

from src.library.core.exceptions import ValidationError
from src.library.entities.core.user.repository import UserRepository
from src.library.entities.service.book.entity import Book
from src.library.entities.service.book.lending import BookStatus
from src.library.entities.service.book.repository import BookRepository, Predicate
from src.library.entities.service.book.table import BookTable
from src.library.runtime.context import get_config

DEFAULT_PAGE = 1
# Bounds keep OFFSET/LIMIT and year parameters inside a 64-bit integer
MAX_QUERY_INT = 2**31 - 1


class SortField(StrEnum):
    CREATED_AT = "createdAt"
    TITLE = "title"
    AUTHOR = "author"
    YEAR = "year"


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"


_SORT_COLUMNS = {
    SortField.CREATED_AT: BookTable.created_at,
    SortField.TITLE: BookTable.title,
    SortField.AUTHOR: BookTable.author,
    SortField.YEAR: BookTable.year,
}


def _positive_or_none(value: Any) -> int | None:
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if 1 <= number <= MAX_QUERY_INT else None


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class CatalogQuery(BaseModel):
    """Catalog listing parameters with forgiving defaults.

    ``page`` and ``limit`` that are missing, non-numeric or below 1 fall back
    to their defaults instead of producing empty pages. So do values too
    large to page with.
    """

    page: int = DEFAULT_PAGE
    limit: int = Field(default_factory=lambda: get_config().catalog.default_page_size)
    search: str = ""
    status: BookStatus | None = None
    sort_by: SortField = SortField.CREATED_AT
    order: SortOrder = SortOrder.DESC
    year_from: int | None = Field(default=None, ge=-MAX_QUERY_INT, le=MAX_QUERY_INT)
    year_to: int | None = Field(default=None, ge=-MAX_QUERY_INT, le=MAX_QUERY_INT)

    @field_validator("page", mode="before")
    @classmethod
    def _normalize_page(cls, value: Any) -> int:
        return _positive_or_none(value) or DEFAULT_PAGE

    @field_validator("limit", mode="before")
    @classmethod
    def _normalize_limit(cls, value: Any) -> int:
        return _positive_or_none(value) or get_config().catalog.default_page_size

    @field_validator("search", mode="before")
    @classmethod
    def _normalize_search(cls, value: Any) -> str:
        return value.strip() if isinstance(value, str) else ""

    @field_validator("status", "year_from", "year_to", mode="before")
    @classmethod
    def _blank(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("sort_by", mode="before")
    @classmethod
    def _default_sort(cls, value: Any) -> Any:
        return _blank_to_none(value) or SortField.CREATED_AT

    @field_validator("order", mode="before")
    @classmethod
    def _default_order(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        if value is None:
            return SortOrder.DESC
        return value.lower() if isinstance(value, str) else value

    @classmethod
    def parse(cls, **params: Any) -> "CatalogQuery":
        """Build a query from raw request parameters.

        Raises:
            ValidationError: an unknown status, sort field or order, or a
                non-integer or out-of-range year bound
        """
        try:
            return cls(**{k: v for k, v in params.items() if v is not None})
        except PydanticValidationError as e:
            fields = ", ".join(str(err["loc"][0]) for err in e.errors())
            raise ValidationError(f"Invalid catalog parameters: {fields}") from e

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


class UserSummary(BaseModel):
    id: str
    username: str


class BookView(BaseModel):
    """A book with its user references resolved to summaries."""

    id: str
    title: str
    author: str
    year: int
    status: BookStatus
    isbn: str | None = None
    description: str | None = None
    image: str
    created_by: UserSummary | None = None
    borrowed_by: UserSummary | None = None
    borrowed_at: datetime | None = None
    due_date: datetime | None = None
    reserved_by: UserSummary | None = None
    reserved_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class CatalogPage(BaseModel):
    items: list[BookView]
    pagination: Pagination


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_predicate(query: CatalogQuery) -> list[ColumnElement[bool]]:
    """Translate the filter part of ``query`` into SQL conditions."""
    predicate: list[ColumnElement[bool]] = []

    if query.search:
        pattern = f"%{escape_like(query.search)}%"
        predicate.append(
            or_(
                col(BookTable.title).ilike(pattern, escape="\\"),
                col(BookTable.author).ilike(pattern, escape="\\"),
            )
        )

    if query.status is not None:
        predicate.append(col(BookTable.status) == query.status.value)

    if query.year_from is not None:
        predicate.append(col(BookTable.year) >= query.year_from)
    if query.year_to is not None:
        predicate.append(col(BookTable.year) <= query.year_to)

    return predicate


def build_order(query: CatalogQuery) -> ColumnElement:
    column = col(_SORT_COLUMNS[query.sort_by])
    return column.asc() if query.order == SortOrder.ASC else column.desc()


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if total else 0


class CatalogService:
    """Runs catalog queries against the book repository."""

    def __init__(self, db_session: Session) -> None:
        self._books = BookRepository(db_session)
        self._users = UserRepository(db_session)

    def list_books(self, query: CatalogQuery) -> CatalogPage:
        predicate: Predicate = build_predicate(query)
        books = self._books.find(
            predicate, order_by=build_order(query), skip=query.skip, limit=query.limit
        )
        total = self._books.count(predicate)

        logger.bind(
            page=query.page,
            limit=query.limit,
            total=total,
            search=query.search,
            status=query.status.value if query.status else None,
        ).info("catalog.listed")

        return CatalogPage(
            items=self.resolve(books),
            pagination=Pagination(
                page=query.page,
                limit=query.limit,
                total=total,
                pages=page_count(total, query.limit),
            ),
        )

    def resolve(self, books: list[Book]) -> list[BookView]:
        """Attach user summaries for creator, borrower and reserver."""
        user_ids: set[str] = set()
        for book in books:
            user_ids.add(book.created_by)
            if book.loan:
                user_ids.add(book.loan.borrowed_by)
            if book.reservation:
                user_ids.add(book.reservation.reserved_by)
        users = self._users.get_many(user_ids)

        def summary(user_id: str | None) -> UserSummary | None:
            user = users.get(user_id) if user_id else None
            return UserSummary(id=user.id, username=user.username) if user else None

        return [
            BookView(
                id=book.id,
                title=book.title,
                author=book.author,
                year=book.year,
                status=book.status,
                isbn=book.isbn,
                description=book.description,
                image=book.image,
                created_by=summary(book.created_by),
                borrowed_by=summary(book.loan.borrowed_by if book.loan else None),
                borrowed_at=book.loan.borrowed_at if book.loan else None,
                due_date=book.loan.due_date if book.loan else None,
                reserved_by=summary(
                    book.reservation.reserved_by if book.reservation else None
                ),
                reserved_at=book.reservation.reserved_at if book.reservation else None,
                created_at=book.created_at,
                updated_at=book.updated_at,
            )
            for book in books
        ]

    def view(self, book: Book) -> BookView:
        return self.resolve([book])[0]
