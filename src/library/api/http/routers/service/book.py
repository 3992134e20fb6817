"""Book API router: catalog, CRUD and lending operations."""

from typing import Any, TypeVar

from fastapi import APIRouter, Body, Depends, File, Form, Query, UploadFile, status
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from src.library.api.http.deps import (
    get_book_management_service,
    get_catalog_service,
    get_cover_store,
    get_current_actor,
    get_lifecycle_service,
)
from src.library.core.exceptions import ValidationError
from src.library.core.models.actor import Actor
from src.library.core.services import (
    BookCreate,
    BookLifecycleService,
    BookManagementService,
    BookUpdate,
    CatalogPage,
    CatalogQuery,
    CatalogService,
    CoverStore,
)
from src.library.core.services.book.catalog import BookView

router = APIRouter()

ModelT = TypeVar("ModelT", bound=BaseModel)


class BorrowRequest(BaseModel):
    days: int | None = None


def _build(model: type[ModelT], **fields: Any) -> ModelT:
    try:
        return model(**fields)
    except PydanticValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(details) from e


def _store_cover(cover_store: CoverStore, image: UploadFile | None) -> str | None:
    if image is None or not image.filename:
        return None
    return cover_store.save(image.filename, image.file)


@router.get("", response_model=CatalogPage)
def list_books(
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    search: str = Query(default=""),
    status_filter: str | None = Query(default=None, alias="status"),
    sort_by: str | None = Query(default=None, alias="sortBy"),
    order: str | None = Query(default=None),
    year_from: str | None = Query(default=None, alias="yearFrom"),
    year_to: str | None = Query(default=None, alias="yearTo"),
    catalog: CatalogService = Depends(get_catalog_service),
) -> CatalogPage:
    """List books with search, status and year filters, sorting and paging."""
    query = CatalogQuery.parse(
        page=page,
        limit=limit,
        search=search,
        status=status_filter,
        sort_by=sort_by,
        order=order,
        year_from=year_from,
        year_to=year_to,
    )
    return catalog.list_books(query)


@router.get("/{book_id}", response_model=BookView)
def get_book(
    book_id: str,
    books: BookManagementService = Depends(get_book_management_service),
    catalog: CatalogService = Depends(get_catalog_service),
) -> BookView:
    """Get a book by ID."""
    return catalog.view(books.get_book(book_id))


@router.post("", response_model=BookView, status_code=status.HTTP_201_CREATED)
def create_book(
    title: str = Form(...),
    author: str = Form(...),
    year: int = Form(...),
    isbn: str | None = Form(default=None),
    description: str | None = Form(default=None),
    image: UploadFile | None = File(default=None),
    actor: Actor = Depends(get_current_actor),
    books: BookManagementService = Depends(get_book_management_service),
    catalog: CatalogService = Depends(get_catalog_service),
    cover_store: CoverStore = Depends(get_cover_store),
) -> BookView:
    """Create a new book, optionally with a cover image."""
    data = _build(
        BookCreate,
        title=title,
        author=author,
        year=year,
        isbn=isbn,
        description=description,
    )
    cover = _store_cover(cover_store, image)
    return catalog.view(books.create_book(data, actor, cover))


@router.put("/{book_id}", response_model=BookView)
def update_book(
    book_id: str,
    title: str | None = Form(default=None),
    author: str | None = Form(default=None),
    year: int | None = Form(default=None),
    isbn: str | None = Form(default=None),
    description: str | None = Form(default=None),
    image: UploadFile | None = File(default=None),
    actor: Actor = Depends(get_current_actor),
    books: BookManagementService = Depends(get_book_management_service),
    catalog: CatalogService = Depends(get_catalog_service),
    cover_store: CoverStore = Depends(get_cover_store),
) -> BookView:
    """Update catalog fields and optionally replace the cover image."""
    data = _build(
        BookUpdate,
        title=title,
        author=author,
        year=year,
        isbn=isbn,
        description=description,
    )
    cover = _store_cover(cover_store, image)
    return catalog.view(books.update_book(book_id, data, actor, cover))


@router.delete("/{book_id}")
def delete_book(
    book_id: str,
    actor: Actor = Depends(get_current_actor),
    books: BookManagementService = Depends(get_book_management_service),
) -> dict[str, str]:
    """Delete a book."""
    books.delete_book(book_id, actor)
    return {"message": "Book deleted successfully"}


@router.post("/{book_id}/borrow", response_model=BookView)
def borrow_book(
    book_id: str,
    payload: BorrowRequest | None = Body(default=None),
    actor: Actor = Depends(get_current_actor),
    lifecycle: BookLifecycleService = Depends(get_lifecycle_service),
    catalog: CatalogService = Depends(get_catalog_service),
) -> BookView:
    """Borrow an available book for ``days`` days."""
    days = payload.days if payload else None
    return catalog.view(lifecycle.borrow(book_id, actor, days))


@router.post("/{book_id}/return", response_model=BookView)
def return_book(
    book_id: str,
    actor: Actor = Depends(get_current_actor),
    lifecycle: BookLifecycleService = Depends(get_lifecycle_service),
    catalog: CatalogService = Depends(get_catalog_service),
) -> BookView:
    """Return a borrowed book. Only the borrower or an admin may do this."""
    return catalog.view(lifecycle.return_book(book_id, actor))


@router.post("/{book_id}/reserve", response_model=BookView)
def reserve_book(
    book_id: str,
    actor: Actor = Depends(get_current_actor),
    lifecycle: BookLifecycleService = Depends(get_lifecycle_service),
    catalog: CatalogService = Depends(get_catalog_service),
) -> BookView:
    """Reserve a book that is currently on loan."""
    return catalog.view(lifecycle.reserve(book_id, actor))


@router.delete("/{book_id}/reserve", response_model=BookView)
def cancel_reservation(
    book_id: str,
    actor: Actor = Depends(get_current_actor),
    lifecycle: BookLifecycleService = Depends(get_lifecycle_service),
    catalog: CatalogService = Depends(get_catalog_service),
) -> BookView:
    """Cancel a reservation. Only the reserver or an admin may do this."""
    return catalog.view(lifecycle.cancel_reservation(book_id, actor))
