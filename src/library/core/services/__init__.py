"""Core services exports."""

# Book Services
from .book.book_management import BookCreate, BookManagementService, BookUpdate
from .book.catalog import CatalogPage, CatalogQuery, CatalogService
from .book.lifecycle import BookLifecycleService

# Cover Storage
from .covers.cover_storage import CoverStore, LocalCoverStorage

# Database Service
from .database.db_manage import DbManageService
from .database.db_session import DbSessionService

# JWT Services
from .jwt.jwt_gen import JwtGeneratorService
from .jwt.jwt_verify import JwtVerificationService

# User Services
from .user.user_management import UserManagementService

__all__ = [
    # Book Services
    "BookCreate",
    "BookUpdate",
    "BookManagementService",
    "BookLifecycleService",
    "CatalogPage",
    "CatalogQuery",
    "CatalogService",
    # Cover Storage
    "CoverStore",
    "LocalCoverStorage",
    # Database Services
    "DbManageService",
    "DbSessionService",
    # JWT Services
    "JwtGeneratorService",
    "JwtVerificationService",
    # User Services
    "UserManagementService",
]
