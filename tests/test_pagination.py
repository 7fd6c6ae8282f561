"""Tests for pagination of WIQL result IDs."""
import pytest

from devops_core.pagination import PaginationError, paginate, resolve_page_request


class TestPaginate:
    """Test slicing an ID list into pages."""

    def test_last_page_is_short(self):
        """Test page 2 of 95 IDs with page size 50."""
        ids = list(range(1, 96))
        page = paginate(ids, 2, 50)

        assert page.items == list(range(51, 96))
        assert page.metadata() == {
            "page": 2,
            "pageSize": 50,
            "totalItems": 95,
            "totalPages": 2,
            "hasNextPage": False,
            "hasPreviousPage": True,
        }

    def test_first_page(self):
        """Test navigation flags on the first page."""
        page = paginate(list(range(95)), 1, 50)

        assert len(page.items) == 50
        assert page.has_next_page
        assert not page.has_previous_page

    def test_pages_cover_every_id_once(self):
        """Test that concatenating all pages gives back the full list."""
        ids = list(range(1000, 1123))
        page_size = 20
        total_pages = paginate(ids, 1, page_size).total_pages

        collected = []
        for number in range(1, total_pages + 1):
            collected.extend(paginate(ids, number, page_size).items)

        assert total_pages == 7
        assert collected == ids

    def test_page_past_the_end_is_empty(self):
        """Test that a page beyond the last one is empty, not an error."""
        page = paginate(list(range(10)), 5, 5)

        assert page.items == []
        assert page.total_items == 10
        assert not page.has_next_page

    def test_empty_list(self):
        """Test pagination of an empty result."""
        page = paginate([], 1, 50)

        assert page.items == []
        assert page.total_pages == 0
        assert not page.has_next_page

    def test_invalid_page_rejected(self):
        """Test that page numbers below 1 raise."""
        with pytest.raises(PaginationError) as exc_info:
            paginate([1, 2, 3], 0, 10)

        assert exc_info.value.page == 0

    def test_invalid_page_size_rejected(self):
        """Test that page sizes below 1 raise."""
        with pytest.raises(PaginationError) as exc_info:
            paginate([1, 2, 3], 1, 0)

        assert exc_info.value.page_size == 0


class TestResolvePageRequest:
    """Test deciding whether pagination was requested."""

    def test_no_page_arguments(self):
        """Test that pagination is off without page arguments."""
        assert resolve_page_request(None, None) is None

    def test_page_only_uses_default_size(self):
        """Test that a page alone gets the default page size."""
        assert resolve_page_request(3, None) == (3, 50)
        assert resolve_page_request(1, None, default_page_size=25) == (1, 25)

    def test_page_size_only_starts_at_first_page(self):
        """Test that a page size alone starts at page 1."""
        assert resolve_page_request(None, 10) == (1, 10)

    def test_explicit_invalid_values_rejected(self):
        """Test that explicit zero or negative values raise."""
        with pytest.raises(PaginationError):
            resolve_page_request(0, None)
        with pytest.raises(PaginationError):
            resolve_page_request(None, -5)
