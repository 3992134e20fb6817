"""Unit tests for BookLifecycleService against an in-memory database."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlmodel import Session

from src.library.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from src.library.core.services import BookLifecycleService
from src.library.entities.service.book import Book, BookRepository, BookStatus
from src.library.entities.service.book.lending import Available
from src.library.runtime.config.config_data import ConfigData, LendingConfig
from src.library.runtime.context import with_context

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def lifecycle(session: Session) -> BookLifecycleService:
    return BookLifecycleService(session, clock=lambda: NOW)


class TestBorrow:
    def test_borrow_sets_loan(self, lifecycle, book: Book, alice):
        borrowed = lifecycle.borrow(book.id, alice, 7)

        assert borrowed.status == BookStatus.BORROWED
        assert borrowed.loan.borrowed_by == alice.id
        assert borrowed.loan.borrowed_at == NOW
        assert borrowed.loan.due_date == NOW + timedelta(days=7)
        assert borrowed.reservation is None

    def test_default_loan_length_comes_from_config(self, lifecycle, book: Book, alice):
        with with_context(ConfigData(lending=LendingConfig(default_loan_days=21))):
            borrowed = lifecycle.borrow(book.id, alice)

        assert borrowed.loan.due_date == NOW + timedelta(days=21)

    def test_borrow_is_persisted(self, session, lifecycle, book: Book, alice):
        lifecycle.borrow(book.id, alice, 7)

        assert BookRepository(session).get(book.id).loan.borrowed_by == alice.id

    def test_borrow_borrowed_book(self, lifecycle, book: Book, alice, bob):
        lifecycle.borrow(book.id, alice, 7)

        with pytest.raises(ConflictError, match="not available"):
            lifecycle.borrow(book.id, bob, 7)

    def test_invalid_days(self, session, lifecycle, book: Book, alice):
        with pytest.raises(ValidationError):
            lifecycle.borrow(book.id, alice, 0)

        assert BookRepository(session).get(book.id).status == BookStatus.AVAILABLE

    def test_missing_book(self, lifecycle, alice):
        with pytest.raises(NotFoundError):
            lifecycle.borrow("missing", alice, 7)


class TestReturn:
    def test_borrow_then_return_restores_available(self, lifecycle, book: Book, alice):
        lifecycle.borrow(book.id, alice, 7)

        returned = lifecycle.return_book(book.id, alice)

        assert returned.status == BookStatus.AVAILABLE
        assert returned.lending == Available()
        assert returned.loan is None

    def test_only_borrower_may_return(self, session, lifecycle, book: Book, alice, bob):
        lifecycle.borrow(book.id, alice, 7)

        with pytest.raises(AuthorizationError):
            lifecycle.return_book(book.id, bob)

        assert BookRepository(session).get(book.id).loan.borrowed_by == alice.id

    def test_admin_may_return_for_borrower(self, lifecycle, book: Book, alice, admin):
        lifecycle.borrow(book.id, alice, 7)

        assert lifecycle.return_book(book.id, admin).status == BookStatus.AVAILABLE

    def test_return_available_book(self, lifecycle, book: Book, alice):
        with pytest.raises(ConflictError, match="not currently borrowed"):
            lifecycle.return_book(book.id, alice)

    def test_precondition_checked_before_authorization(
        self, lifecycle, book: Book, bob
    ):
        with pytest.raises(ConflictError):
            lifecycle.return_book(book.id, bob)

    def test_return_reserved_book(self, lifecycle, book: Book, alice, bob):
        lifecycle.borrow(book.id, alice, 7)
        lifecycle.reserve(book.id, bob)

        with pytest.raises(ConflictError, match="not currently borrowed"):
            lifecycle.return_book(book.id, alice)


class TestReserve:
    def test_reserve_borrowed_book(self, lifecycle, book: Book, alice, bob):
        lifecycle.borrow(book.id, alice, 7)

        reserved = lifecycle.reserve(book.id, bob)

        assert reserved.status == BookStatus.RESERVED
        assert reserved.reservation.reserved_by == bob.id
        assert reserved.reservation.reserved_at == NOW
        assert reserved.loan.borrowed_by == alice.id

    def test_reserve_available_book(self, lifecycle, book: Book, bob):
        with pytest.raises(ConflictError, match="no reservation needed"):
            lifecycle.reserve(book.id, bob)

    def test_reserve_reserved_book(self, lifecycle, book: Book, alice, bob, admin):
        lifecycle.borrow(book.id, alice, 7)
        lifecycle.reserve(book.id, bob)

        with pytest.raises(ConflictError, match="already reserved"):
            lifecycle.reserve(book.id, admin)


class TestCancelReservation:
    def test_cancel_restores_loan(self, lifecycle, book: Book, alice, bob):
        lifecycle.borrow(book.id, alice, 7)
        lifecycle.reserve(book.id, bob)

        cancelled = lifecycle.cancel_reservation(book.id, bob)

        assert cancelled.status == BookStatus.BORROWED
        assert cancelled.reservation is None
        assert cancelled.loan.borrowed_by == alice.id

    def test_reserve_again_after_cancel(self, lifecycle, book: Book, alice, bob, admin):
        lifecycle.borrow(book.id, alice, 7)
        lifecycle.reserve(book.id, bob)
        lifecycle.cancel_reservation(book.id, bob)

        assert lifecycle.reserve(book.id, admin).reservation.reserved_by == admin.id

    def test_cancel_without_reservation_is_noop(self, lifecycle, book: Book, alice):
        before = lifecycle.borrow(book.id, alice, 7)

        after = lifecycle.cancel_reservation(book.id, alice)

        assert after == before
        assert after.updated_at == before.updated_at

    def test_only_reserver_may_cancel(self, lifecycle, book: Book, alice, bob):
        lifecycle.borrow(book.id, alice, 7)
        lifecycle.reserve(book.id, bob)

        with pytest.raises(AuthorizationError):
            lifecycle.cancel_reservation(book.id, alice)

    def test_admin_may_cancel(self, lifecycle, book: Book, alice, bob, admin):
        lifecycle.borrow(book.id, alice, 7)
        lifecycle.reserve(book.id, bob)

        assert lifecycle.cancel_reservation(book.id, admin).reservation is None

    def test_missing_book(self, lifecycle, alice):
        with pytest.raises(NotFoundError):
            lifecycle.cancel_reservation("missing", alice)


class TestConcurrentModification:
    """The conditional write detects changes made after the book was loaded."""

    def test_stale_read_surfaces_real_precondition(
        self, session, monkeypatch, book: Book, alice, bob
    ):
        first = BookLifecycleService(session, clock=lambda: NOW)
        second = BookLifecycleService(session, clock=lambda: NOW)
        stale = book.model_copy()
        real_get = second._repo.get
        calls = []

        def get_with_stale_first_read(book_id: str):
            calls.append(book_id)
            return stale if len(calls) == 1 else real_get(book_id)

        monkeypatch.setattr(second._repo, "get", get_with_stale_first_read)
        first.borrow(book.id, alice, 7)

        with pytest.raises(ConflictError, match="not available"):
            second.borrow(book.id, bob, 7)

        assert BookRepository(session).get(book.id).loan.borrowed_by == alice.id

    def test_lost_write_reports_concurrent_modification(
        self, session, monkeypatch, lifecycle, book: Book, alice
    ):
        monkeypatch.setattr(lifecycle._repo, "transition", lambda *args, **kwargs: None)

        with pytest.raises(ConflictError, match="modified concurrently"):
            lifecycle.borrow(book.id, alice, 7)

        assert BookRepository(session).get(book.id).status == BookStatus.AVAILABLE

    def test_cancel_after_concurrent_cancel_is_noop(
        self, session, monkeypatch, lifecycle, book: Book, alice, bob
    ):
        lifecycle.borrow(book.id, alice, 7)
        reserved = lifecycle.reserve(book.id, bob)

        second = BookLifecycleService(session, clock=lambda: NOW)
        real_get = second._repo.get
        calls = []

        def get_with_stale_first_read(book_id: str):
            calls.append(book_id)
            return reserved if len(calls) == 1 else real_get(book_id)

        monkeypatch.setattr(second._repo, "get", get_with_stale_first_read)
        lifecycle.cancel_reservation(book.id, bob)

        result = second.cancel_reservation(book.id, bob)

        assert result.status == BookStatus.BORROWED
        assert result.reservation is None
        assert result.loan.borrowed_by == alice.id
