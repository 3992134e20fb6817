"""Unit tests for the catalog query engine."""

import pytest
from sqlmodel import Session

from src.library.core.exceptions import ValidationError
from src.library.core.services import BookLifecycleService, CatalogQuery, CatalogService
from src.library.core.services.book.catalog import (
    SortField,
    SortOrder,
    escape_like,
    page_count,
)
from src.library.entities.service.book import BookStatus
from src.library.runtime.config.config_data import CatalogConfig, ConfigData
from src.library.runtime.context import with_context


@pytest.fixture
def catalog(session: Session) -> CatalogService:
    return CatalogService(session)


@pytest.fixture
def shelf(make_book):
    """A handful of books with distinct titles, authors and years."""
    return [
        make_book(title="Dune", author="Frank Herbert", year=1965),
        make_book(title="Neuromancer", author="William Gibson", year=1984),
        make_book(title="Hyperion", author="Dan Simmons", year=1989),
        make_book(title="Snow Crash", author="Neal Stephenson", year=1992),
        make_book(title="Anathem", author="Neal Stephenson", year=2008),
    ]


class TestCatalogQuery:
    """Parameter normalization."""

    def test_defaults(self):
        query = CatalogQuery.parse()

        assert query.page == 1
        assert query.limit == 10
        assert query.search == ""
        assert query.status is None
        assert query.sort_by == SortField.CREATED_AT
        assert query.order == SortOrder.DESC
        assert query.skip == 0

    @pytest.mark.parametrize(
        "raw", ["0", "-3", "abc", "", 0, "99999999999999999999"]
    )
    def test_bad_page_and_limit_fall_back_to_defaults(self, raw):
        query = CatalogQuery.parse(page=raw, limit=raw)

        assert query.page == 1
        assert query.limit == 10

    def test_default_limit_comes_from_config(self):
        with with_context(ConfigData(catalog=CatalogConfig(default_page_size=4))):
            assert CatalogQuery.parse().limit == 4

    def test_numeric_strings_are_accepted(self):
        query = CatalogQuery.parse(page="3", limit="5", year_from="1990")

        assert query.page == 3
        assert query.limit == 5
        assert query.skip == 10
        assert query.year_from == 1990

    def test_blank_values_mean_unset(self):
        query = CatalogQuery.parse(
            search="  ", status="", sort_by="", order="", year_from="", year_to=" "
        )

        assert query.search == ""
        assert query.status is None
        assert query.sort_by == SortField.CREATED_AT
        assert query.order == SortOrder.DESC
        assert query.year_from is None
        assert query.year_to is None

    def test_order_is_case_insensitive(self):
        assert CatalogQuery.parse(order="ASC").order == SortOrder.ASC

    @pytest.mark.parametrize(
        "params",
        [
            {"status": "lost"},
            {"sort_by": "isbn"},
            {"order": "sideways"},
            {"year_from": "nineteen"},
            {"year_from": "99999999999999999999"},
            {"year_to": "-99999999999999999999"},
        ],
    )
    def test_unknown_values_rejected(self, params):
        with pytest.raises(ValidationError):
            CatalogQuery.parse(**params)

    def test_page_count(self):
        assert page_count(0, 10) == 0
        assert page_count(10, 10) == 1
        assert page_count(25, 10) == 3

    def test_escape_like(self):
        assert escape_like("100%_\\") == "100\\%\\_\\\\"


class TestCatalogService:
    """Filtering, sorting and pagination against the database."""

    def test_pagination(self, catalog, make_book):
        for i in range(25):
            make_book(title=f"Book {i:02d}", author="Author", year=2000)

        first = catalog.list_books(
            CatalogQuery.parse(limit=10, sort_by="title", order="asc")
        )
        last = catalog.list_books(
            CatalogQuery.parse(page=3, limit=10, sort_by="title", order="asc")
        )

        assert first.pagination.total == 25
        assert first.pagination.pages == 3
        assert len(first.items) == 10
        assert first.items[0].title == "Book 00"
        assert len(last.items) == 5
        assert last.items[-1].title == "Book 24"

    def test_page_past_the_end_is_empty(self, catalog, shelf):
        page = catalog.list_books(CatalogQuery.parse(page=9, limit=10))

        assert page.items == []
        assert page.pagination.total == 5

    def test_empty_catalog(self, catalog):
        page = catalog.list_books(CatalogQuery.parse())

        assert page.items == []
        assert page.pagination.total == 0
        assert page.pagination.pages == 0

    def test_search_matches_title_or_author_case_insensitively(self, catalog, shelf):
        by_author = catalog.list_books(CatalogQuery.parse(search="stephenson"))
        by_title = catalog.list_books(CatalogQuery.parse(search="DUNE"))

        assert {item.title for item in by_author.items} == {"Snow Crash", "Anathem"}
        assert [item.title for item in by_title.items] == ["Dune"]

    def test_search_treats_wildcards_literally(self, catalog, shelf, make_book):
        make_book(title="100% Pure", author="Anon", year=2001)

        page = catalog.list_books(CatalogQuery.parse(search="%"))

        assert [item.title for item in page.items] == ["100% Pure"]

    def test_year_range(self, catalog, shelf):
        page = catalog.list_books(
            CatalogQuery.parse(
                year_from="1984", year_to="1992", sort_by="year", order="asc"
            )
        )

        assert [item.year for item in page.items] == [1984, 1989, 1992]

    def test_inverted_year_range_is_empty(self, catalog, shelf):
        page = catalog.list_books(CatalogQuery.parse(year_from=2000, year_to=1990))

        assert page.items == []
        assert page.pagination.total == 0

    def test_sort_by_author_desc(self, catalog, shelf):
        page = catalog.list_books(CatalogQuery.parse(sort_by="author", order="desc"))

        assert page.items[0].author == "William Gibson"
        assert page.items[-1].author == "Dan Simmons"

    def test_status_filter(self, session, catalog, shelf, alice):
        BookLifecycleService(session).borrow(shelf[0].id, alice, 7)

        borrowed = catalog.list_books(CatalogQuery.parse(status="borrowed"))
        available = catalog.list_books(CatalogQuery.parse(status="available"))

        assert [item.id for item in borrowed.items] == [shelf[0].id]
        assert borrowed.items[0].status == BookStatus.BORROWED
        assert available.pagination.total == 4

    def test_user_references_are_resolved(self, session, catalog, book, admin, alice, bob):
        lifecycle = BookLifecycleService(session)
        lifecycle.borrow(book.id, alice, 7)
        lifecycle.reserve(book.id, bob)

        view = catalog.view(book)
        fresh = catalog.list_books(CatalogQuery.parse()).items[0]

        assert view.created_by.username == "admin"
        assert fresh.borrowed_by.username == "alice"
        assert fresh.reserved_by.username == "bob"
        assert fresh.due_date is not None

    def test_unknown_creator_resolves_to_none(self, catalog, make_book):
        book = make_book(created_by="deleted-user")

        assert catalog.view(book).created_by is None
