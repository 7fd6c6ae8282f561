"""Pagination of WIQL results.

Pages are cut from the ordered ID list returned by the WIQL query, before
the expensive work item fetch, so only the requested page is ever fetched.
"""
import math
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_PAGE_SIZE = 50


class PaginationError(ValueError):
    """Raised for an invalid page number or page size."""

    def __init__(self, message: str, page: Optional[int] = None, page_size: Optional[int] = None):
        super().__init__(message)
        self.page = page
        self.page_size = page_size


class Page(BaseModel):
    """One page of an ordered ID list plus navigation metadata."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    items: list[Any] = Field(default_factory=list)
    page: int
    page_size: int
    total_items: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool

    def metadata(self) -> dict:
        """Navigation metadata without the page items, camelCase keys."""
        return self.model_dump(by_alias=True, exclude={"items"})


def paginate(ids: list, page: int, page_size: int) -> Page:
    """Slice ``ids`` into the 1-based ``page`` of ``page_size`` entries.

    The last page may be short, and a page past the end is empty.
    ``total_items`` always counts the full list, not the slice.

    Raises:
        PaginationError: If page < 1 or page_size < 1
    """
    if page < 1:
        raise PaginationError(f"Invalid page number: {page}. Pages start at 1.", page=page, page_size=page_size)
    if page_size < 1:
        raise PaginationError(f"Invalid page size: {page_size}. Page size must be at least 1.",
                              page=page, page_size=page_size)

    start = (page - 1) * page_size
    end = start + page_size
    total_items = len(ids)

    return Page(
        items=ids[start:end],
        page=page,
        page_size=page_size,
        total_items=total_items,
        total_pages=math.ceil(total_items / page_size),
        has_next_page=end < total_items,
        has_previous_page=page > 1,
    )


def resolve_page_request(
    page: Optional[int],
    page_size: Optional[int],
    default_page_size: int = DEFAULT_PAGE_SIZE,
) -> Optional[tuple[int, int]]:
    """Decide whether a get-work-items call asked for pagination.

    Pagination is opt-in: it applies when a page or a page size is given.
    A page number alone uses the default page size; a page size alone
    starts at page 1.

    Returns:
        (page, page_size) to paginate with, or None to return everything

    Raises:
        PaginationError: If an explicit page or page size is below 1
    """
    if page is not None and page < 1:
        raise PaginationError(f"Invalid page number: {page}. Pages start at 1.", page=page, page_size=page_size)
    if page_size is not None and page_size < 1:
        raise PaginationError(f"Invalid page size: {page_size}. Page size must be at least 1.",
                              page=page, page_size=page_size)

    if page is None and page_size is None:
        return None
    return page or 1, page_size or default_page_size
