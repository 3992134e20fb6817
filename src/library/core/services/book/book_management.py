"""Book management: create, read, update and delete, with cover bookkeeping."""

from typing import Any

from loguru import logger
from pydantic import BaseModel, Field, field_validator
from sqlmodel import Session

from src.library.core.exceptions import NotFoundError
from src.library.core.models.actor import Actor
from src.library.core.services.covers.cover_storage import CoverStore
from src.library.entities.service.book.entity import (
    DEFAULT_COVER,
    Book,
    check_year,
    clean_isbn,
)
from src.library.entities.service.book.repository import BookRepository


class BookCreate(BaseModel):
    """Fields a caller may set when adding a book. Status is never one of them."""

    title: str = Field(min_length=1, max_length=200)
    author: str = Field(min_length=1, max_length=100)
    year: int
    isbn: str | None = None
    description: str | None = Field(default=None, max_length=1000)

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
        return clean_isbn(value) if isinstance(value, str) else value


class BookUpdate(BaseModel):
    """Partial edit of catalog fields. Unset or None fields keep their value."""

    title: str | None = Field(default=None, min_length=1, max_length=200)
    author: str | None = Field(default=None, min_length=1, max_length=100)
    year: int | None = None
    isbn: str | None = None
    description: str | None = Field(default=None, max_length=1000)

    @field_validator("title", "author", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("year")
    @classmethod
    def _check_year(cls, value: int | None) -> int | None:
        return check_year(value) if value is not None else value

    @field_validator("isbn", mode="before")
    @classmethod
    def _clean_isbn(cls, value: Any) -> Any:
        return clean_isbn(value) if isinstance(value, str) else value


class BookManagementService:
    """Create, read, edit and delete catalog entries.

    The service owns the unit of work: it commits on success, rolls back on
    any error, and tells the cover store which uploaded or replaced images to
    release.
    """

    def __init__(self, db_session: Session, covers: CoverStore) -> None:
        self._db_session = db_session
        self._repo = BookRepository(db_session)
        self._covers = covers

    def get_book(self, book_id: str) -> Book:
        book = self._repo.get(book_id)
        if book is None:
            logger.bind(book_id=book_id).warning("book.not_found")
            raise NotFoundError("Book not found")
        return book

    def create_book(
        self, data: BookCreate, actor: Actor, cover: str | None = None
    ) -> Book:
        """Add a book created by ``actor``.

        ``cover`` is a reference already saved by the cover store; it is
        released again if the book cannot be stored.

        Raises:
            DuplicateKeyError: the isbn is already used by another book
        """
        book = Book(**data.model_dump(), image=cover or DEFAULT_COVER, created_by=actor.id)
        try:
            created = self._repo.create(book)
            self._db_session.commit()
        except Exception:
            self._db_session.rollback()
            self._release_upload(cover)
            raise

        logger.bind(book_id=created.id, title=created.title, actor=actor.username).info(
            "book.created"
        )
        return created

    def update_book(
        self,
        book_id: str,
        data: BookUpdate,
        actor: Actor,
        cover: str | None = None,
    ) -> Book:
        """Edit catalog fields and optionally swap the cover.

        The previous cover is released only after the change is committed.
        """
        try:
            book = self.get_book(book_id)
            changes = data.model_dump(exclude_none=True)
            if cover:
                changes["image"] = cover
            edited = Book.model_validate(
                {**book.model_dump(exclude={"lending"}), **changes, "lending": book.lending}
            )
            updated = self._repo.update(edited)
            self._db_session.commit()
        except Exception:
            self._db_session.rollback()
            self._release_upload(cover)
            raise

        if cover and book.has_custom_cover and book.image != cover:
            self._covers.release(book.image)

        logger.bind(book_id=updated.id, actor=actor.username).info("book.updated")
        return updated

    def delete_book(self, book_id: str, actor: Actor) -> Book:
        """Delete a book, then release its cover unless it is the default one."""
        try:
            deleted = self._repo.delete(book_id)
            if deleted is None:
                raise NotFoundError("Book not found")
            self._db_session.commit()
        except Exception:
            self._db_session.rollback()
            raise

        if deleted.has_custom_cover:
            self._covers.release(deleted.image)

        logger.bind(book_id=deleted.id, title=deleted.title, actor=actor.username).info(
            "book.deleted"
        )
        return deleted

    def _release_upload(self, cover: str | None) -> None:
        if cover and cover != DEFAULT_COVER:
            self._covers.release(cover)
