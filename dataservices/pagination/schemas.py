"""
Pagination filter and paged response envelope.

Usage:
    from dataservices.pagination import PaginationFilter, get_pagination_filter

    @router.get("/widgets")
    async def list_widgets(page: PaginationFilter = Depends(get_pagination_filter)):
        spec = page.to_specification(order_by=[Widget.id])
        ...
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar

from fastapi import Query
from pydantic import BaseModel, Field

from dataservices.repositories.specifications import Specification
from shared.config.constants import Limits, PageQueryKeys
from shared.config.settings import settings

T = TypeVar("T")


@dataclass
class PaginationFilter:
    """
    Page request with validation.

    Attributes:
        page_number: 1-indexed page (clamped to >= 1)
        page_size: Items per page (clamped to 1..max_page_size)
    """

    page_number: int = Limits.MIN_PAGE_NUMBER
    page_size: int = field(default_factory=lambda: settings.default_page_size)
    max_page_size: int = field(default_factory=lambda: settings.max_page_size, repr=False)

    def __post_init__(self):
        """Validate and normalize values."""
        self.page_number = max(Limits.MIN_PAGE_NUMBER, self.page_number)
        self.page_size = min(max(Limits.MIN_PAGE_SIZE, self.page_size), self.max_page_size)

    @property
    def offset(self) -> int:
        """Rows to skip for this page."""
        return (self.page_number - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size

    def to_specification(self, criteria: Any = None, **shaping: Any) -> Specification:
        """Specification selecting this page of the rows matching ``criteria``."""
        return Specification(criteria, skip=self.offset, take=self.limit, **shaping)


def get_pagination_filter(
    page_number: int = Query(
        default=Limits.MIN_PAGE_NUMBER,
        ge=Limits.MIN_PAGE_NUMBER,
        alias=PageQueryKeys.PAGE_NUMBER,
        description="Page to return (1-indexed)",
    ),
    page_size: Optional[int] = Query(
        default=None,
        ge=Limits.MIN_PAGE_SIZE,
        alias=PageQueryKeys.PAGE_SIZE,
        description="Items per page",
    ),
) -> PaginationFilter:
    """
    FastAPI dependency for page-number pagination.

    Reads the same ``pageNumber``/``pageSize`` keys the page links carry.
    A missing page size falls back to ``settings.default_page_size``; larger
    sizes are clamped to ``settings.max_page_size`` like ``PaginationFilter``.
    """
    if page_size is None:
        page_size = settings.default_page_size
    return PaginationFilter(page_number=page_number, page_size=page_size)


class PagedResponse(BaseModel, Generic[T]):
    """Paged response envelope with navigation links."""

    data: list[T] = Field(default_factory=list)
    page_number: int
    page_size: int
    first_page: Optional[str] = None
    last_page: Optional[str] = None
    next_page: Optional[str] = None
    previous_page: Optional[str] = None
    total_pages: int = 0
    total_records: int = 0

    succeeded: bool = True
    message: Optional[str] = None
    errors: Optional[list[str]] = None
