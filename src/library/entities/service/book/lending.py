"""Lending state of a book and the transitions between states.

A book is ``Available``, ``Borrowed`` or ``Reserved``. A reservation can only
be placed on a borrowed book, so ``Reserved`` keeps the loan it was layered
on as ``prior_loan``. Transitions are plain functions from one state to the
next; they raise ``ConflictError`` when the current state does not allow the
operation and never mutate their input.
"""

from datetime import datetime, timedelta
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from src.library.core.exceptions import ConflictError, ValidationError


class BookStatus(StrEnum):
    AVAILABLE = "available"
    BORROWED = "borrowed"
    RESERVED = "reserved"


class Loan(BaseModel):
    model_config = ConfigDict(frozen=True)

    borrowed_by: str
    borrowed_at: datetime
    due_date: datetime


class Reservation(BaseModel):
    model_config = ConfigDict(frozen=True)

    reserved_by: str
    reserved_at: datetime


class Available(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal[BookStatus.AVAILABLE] = BookStatus.AVAILABLE

    @property
    def active_loan(self) -> Loan | None:
        return None

    @property
    def reservation(self) -> Reservation | None:
        return None


class Borrowed(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal[BookStatus.BORROWED] = BookStatus.BORROWED
    loan: Loan

    @property
    def active_loan(self) -> Loan | None:
        return self.loan

    @property
    def reservation(self) -> Reservation | None:
        return None


class Reserved(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal[BookStatus.RESERVED] = BookStatus.RESERVED
    hold: Reservation
    prior_loan: Loan | None = None

    @property
    def active_loan(self) -> Loan | None:
        return self.prior_loan

    @property
    def reservation(self) -> Reservation | None:
        return self.hold


LendingState = Annotated[Available | Borrowed | Reserved, Field(discriminator="status")]


def borrow(
    state: LendingState, borrower_id: str, now: datetime, days: int
) -> Borrowed:
    if isinstance(days, bool) or not isinstance(days, int) or days < 1:
        raise ValidationError("Loan length must be a positive number of days")
    if not isinstance(state, Available):
        raise ConflictError("Book is not available for loan")
    try:
        due_date = now + timedelta(days=days)
    except OverflowError as e:
        raise ValidationError("Loan length is too long") from e
    return Borrowed(
        loan=Loan(borrowed_by=borrower_id, borrowed_at=now, due_date=due_date)
    )


def give_back(state: LendingState) -> Available:
    if not isinstance(state, Borrowed):
        raise ConflictError("Book is not currently borrowed")
    return Available()


def reserve(state: LendingState, reserver_id: str, now: datetime) -> Reserved:
    if isinstance(state, Reserved):
        raise ConflictError("Book is already reserved")
    if isinstance(state, Available):
        raise ConflictError("Book is available, take it directly; no reservation needed")
    return Reserved(
        hold=Reservation(reserved_by=reserver_id, reserved_at=now),
        prior_loan=state.loan,
    )


def cancel_reservation(state: LendingState) -> LendingState:
    """Drop the reservation, falling back to the loan it was placed on.

    Returns ``state`` itself when there is nothing to cancel.
    """
    if not isinstance(state, Reserved):
        return state
    if state.prior_loan is None:
        return Available()
    return Borrowed(loan=state.prior_loan)


def to_columns(state: LendingState) -> dict[str, object]:
    """Project a state onto the flat book columns, clearing unused fields."""
    loan = state.active_loan
    hold = state.reservation
    return {
        "status": state.status.value,
        "borrowed_by": loan.borrowed_by if loan else None,
        "borrowed_at": loan.borrowed_at if loan else None,
        "due_date": loan.due_date if loan else None,
        "reserved_by": hold.reserved_by if hold else None,
        "reserved_at": hold.reserved_at if hold else None,
    }


def from_columns(
    status: str,
    borrowed_by: str | None = None,
    borrowed_at: datetime | None = None,
    due_date: datetime | None = None,
    reserved_by: str | None = None,
    reserved_at: datetime | None = None,
) -> LendingState:
    """Rebuild a state from stored columns.

    Columns that do not belong to ``status`` are ignored, which is what makes
    a stray loan field on an available book unrepresentable in memory.
    """
    loan = None
    if borrowed_by is not None and borrowed_at is not None and due_date is not None:
        loan = Loan(borrowed_by=borrowed_by, borrowed_at=borrowed_at, due_date=due_date)

    match BookStatus(status):
        case BookStatus.AVAILABLE:
            return Available()
        case BookStatus.BORROWED:
            if loan is None:
                raise ValueError("Borrowed book is missing its loan fields")
            return Borrowed(loan=loan)
        case BookStatus.RESERVED:
            if reserved_by is None or reserved_at is None:
                raise ValueError("Reserved book is missing its reservation fields")
            return Reserved(
                hold=Reservation(reserved_by=reserved_by, reserved_at=reserved_at),
                prior_loan=loan,
            )
