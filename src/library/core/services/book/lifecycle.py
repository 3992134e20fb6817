"""Borrow, return, reserve and cancel-reservation workflows."""

from collections.abc import Callable
from datetime import datetime

from loguru import logger
from sqlmodel import Session

from src.library.core.exceptions import AuthorizationError, ConflictError, NotFoundError
from src.library.core.models.actor import Actor
from src.library.entities.core._base import utcnow
from src.library.entities.service.book import lending
from src.library.entities.service.book.entity import Book
from src.library.entities.service.book.lending import LendingState
from src.library.entities.service.book.repository import BookRepository
from src.library.runtime.context import get_config

Transition = Callable[[LendingState], LendingState]


class BookLifecycleService:
    """Applies lending transitions to stored books.

    Each operation loads the book, computes the next state with a pure
    transition from ``lending`` and writes it with a conditional update keyed
    on the state it started from. If another request changed the book in
    between, the transition is re-checked against the fresh row so the caller
    gets the precondition that actually failed.
    """

    def __init__(
        self,
        db_session: Session,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._db_session = db_session
        self._repo = BookRepository(db_session)
        self._clock = clock

    def borrow(self, book_id: str, actor: Actor, days: int | None = None) -> Book:
        if days is None:
            days = get_config().lending.default_loan_days
        now = self._clock()
        book = self._apply(
            book_id, lambda state: lending.borrow(state, actor.id, now, days), now
        )
        logger.bind(
            book_id=book.id, actor=actor.username, due_date=book.loan.due_date.isoformat()
        ).info("book.borrowed")
        return book

    def return_book(self, book_id: str, actor: Actor) -> Book:
        def transition(state: LendingState) -> LendingState:
            new_state = lending.give_back(state)
            if not actor.acts_for(state.active_loan.borrowed_by):
                raise AuthorizationError("You are not allowed to return this book")
            return new_state

        book = self._apply(book_id, transition, self._clock())
        logger.bind(book_id=book.id, actor=actor.username).info("book.returned")
        return book

    def reserve(self, book_id: str, actor: Actor) -> Book:
        now = self._clock()
        book = self._apply(
            book_id, lambda state: lending.reserve(state, actor.id, now), now
        )
        logger.bind(book_id=book.id, actor=actor.username).info("book.reserved")
        return book

    def cancel_reservation(self, book_id: str, actor: Actor) -> Book:
        """Cancel the reservation on a book. A book without one is returned as is."""
        book = self._load(book_id)
        if book.reservation is None:
            logger.bind(book_id=book.id, actor=actor.username).debug(
                "book.reservation_cancel_noop"
            )
            return book

        def transition(state: LendingState) -> LendingState:
            hold = state.reservation
            if hold is None:
                return state
            if not actor.acts_for(hold.reserved_by):
                raise AuthorizationError(
                    "You are not allowed to cancel this reservation"
                )
            return lending.cancel_reservation(state)

        book = self._apply(book_id, transition, self._clock(), loaded=book)
        logger.bind(
            book_id=book.id, actor=actor.username, status=book.status.value
        ).info("book.reservation_cancelled")
        return book

    def _load(self, book_id: str) -> Book:
        book = self._repo.get(book_id)
        if book is None:
            raise NotFoundError("Book not found")
        return book

    def _apply(
        self,
        book_id: str,
        transition: Transition,
        now: datetime,
        loaded: Book | None = None,
    ) -> Book:
        book = loaded or self._load(book_id)
        new_state = transition(book.lending)
        if new_state == book.lending:
            return book

        try:
            updated = self._repo.transition(book_id, book.lending, new_state, now)
            if updated is None:
                self._db_session.rollback()
                current = self._load(book_id)
                # Re-check against the fresh row; raises the precondition that fails now
                if transition(current.lending) == current.lending:
                    return current
                raise ConflictError("Book was modified concurrently, please retry")
            self._db_session.commit()
        except Exception:
            self._db_session.rollback()
            raise
        return updated
