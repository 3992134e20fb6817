"""FastAPI dependency implementations."""

from __future__ import annotations

from collections.abc import Iterator

from fastapi import Depends, Request
from sqlmodel import Session

from src.library.api.http.app_data import ApplicationDependencies
from src.library.core.exceptions import AuthenticationError
from src.library.core.models.actor import Actor
from src.library.core.services import (
    BookLifecycleService,
    BookManagementService,
    CatalogService,
    CoverStore,
    JwtGeneratorService,
    JwtVerificationService,
    UserManagementService,
)
from src.library.runtime.context import get_config


def _app_deps(request: Request) -> ApplicationDependencies:
    return request.app.state.app_dependencies


def get_db_session(request: Request) -> Iterator[Session]:
    """Yield one database session per request."""
    session = _app_deps(request).database_service.get_session()
    try:
        yield session
    finally:
        session.close()


def get_jwt_generation_service(request: Request) -> JwtGeneratorService:
    return _app_deps(request).jwt_generation_service


def get_jwt_verify_service(request: Request) -> JwtVerificationService:
    return _app_deps(request).jwt_verify_service


def get_cover_store(request: Request) -> CoverStore:
    return _app_deps(request).cover_store


def get_user_management_service(
    db_session: Session = Depends(get_db_session),
) -> UserManagementService:
    return UserManagementService(db_session)


def get_catalog_service(
    db_session: Session = Depends(get_db_session),
) -> CatalogService:
    return CatalogService(db_session)


def get_book_management_service(
    db_session: Session = Depends(get_db_session),
    cover_store: CoverStore = Depends(get_cover_store),
) -> BookManagementService:
    return BookManagementService(db_session, cover_store)


def get_lifecycle_service(
    db_session: Session = Depends(get_db_session),
) -> BookLifecycleService:
    return BookLifecycleService(db_session)


def _extract_token(request: Request) -> str | None:
    token = request.cookies.get(get_config().security.cookie_name)
    if token:
        return token
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1]
    return None


def get_current_actor(
    request: Request,
    jwt_verify: JwtVerificationService = Depends(get_jwt_verify_service),
) -> Actor:
    """Authenticate the request from the session cookie or a Bearer token."""
    token = _extract_token(request)
    if not token:
        raise AuthenticationError("Not authenticated")

    actor = jwt_verify.verify_jwt(token)
    request.state.actor = actor
    return actor


def get_optional_actor(
    request: Request,
    jwt_verify: JwtVerificationService = Depends(get_jwt_verify_service),
) -> Actor | None:
    """Like ``get_current_actor`` but anonymous requests yield None."""
    if not _extract_token(request):
        return None
    try:
        return get_current_actor(request, jwt_verify)
    except AuthenticationError:
        return None
