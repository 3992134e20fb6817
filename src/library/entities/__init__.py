"""Entities organized by business concept.

Each entity has its own package containing:
- entity.py: Domain model with business logic
- table.py: Database persistence model
- repository.py: Data access layer
"""

from .core.user import User, UserRepository, UserTable
from .service.book import Book, BookRepository, BookStatus, BookTable

__all__ = [
    "User",
    "UserTable",
    "UserRepository",
    "Book",
    "BookTable",
    "BookRepository",
    "BookStatus",
]
