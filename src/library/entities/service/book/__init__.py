"""Entity package: Book."""

from .entity import DEFAULT_COVER, Book
from .lending import BookStatus
from .repository import BookRepository
from .table import BookTable

__all__ = ["Book", "BookRepository", "BookStatus", "BookTable", "DEFAULT_COVER"]
