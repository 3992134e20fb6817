"""Domain errors raised by the library services.

Each error carries a human-readable message and the HTTP status the API
surface answers with. None of them is retried; every one of them is raised
before anything is committed.
"""


class LibraryError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(LibraryError):
    """Malformed or out-of-range input."""

    status_code = 400


class AuthenticationError(LibraryError):
    """Missing, invalid or expired credentials."""

    status_code = 401


class AuthorizationError(LibraryError):
    """The actor is not allowed to perform the operation."""

    status_code = 403


class NotFoundError(LibraryError):
    """A referenced book or user does not exist."""

    status_code = 404


class ConflictError(LibraryError):
    """A lifecycle precondition does not hold for the book's current state."""

    status_code = 409


class DuplicateKeyError(LibraryError):
    """A unique key (isbn, username) is already taken."""

    status_code = 409
