"""
Paged response construction.

Usage:
    paginator = ResponsePaginator(BaseUriService("https://api.example.com"))

    page = PaginationFilter(page_number=2, page_size=10)
    widgets = (await service.get_by_spec(page.to_specification(), output_type=WidgetOutput)).value
    total = (await service.long_count()).value
    return paginator.create_paged_response(widgets, page, total, "/widgets")
"""

from __future__ import annotations

import math
from dataclasses import replace
from typing import Sequence, TypeVar

from dataservices.pagination.schemas import PagedResponse, PaginationFilter
from dataservices.pagination.uri import UriService

T = TypeVar("T")


class ResponsePaginator:
    """Wraps one page of data in a ``PagedResponse`` with navigation links."""

    def __init__(self, uri_service: UriService):
        self._uri_service = uri_service

    @property
    def uri_service(self) -> UriService:
        return self._uri_service

    def _page_uri(self, filter: PaginationFilter, page_number: int, route: str) -> str:
        return self._uri_service.get_page_uri(replace(filter, page_number=page_number), route)

    def create_paged_response(
        self,
        data: Sequence[T],
        filter: PaginationFilter,
        total_records: int,
        route: str,
    ) -> PagedResponse[T]:
        """
        Build the paged response.

        - total_pages is ceil(total_records / page_size)
        - next_page only when 1 <= page_number < total_pages
        - previous_page only when page_number - 1 >= 1 and page_number <= total_pages
        - first_page links page 1 and last_page links page total_pages, always;
          page numbers in links are clamped like any filter, so an empty
          result set links page 1 as its last page
        """
        page_number = filter.page_number
        page_size = filter.page_size
        total_pages = math.ceil(total_records / page_size)

        next_page = None
        if 1 <= page_number < total_pages:
            next_page = self._page_uri(filter, page_number + 1, route)

        previous_page = None
        if page_number - 1 >= 1 and page_number <= total_pages:
            previous_page = self._page_uri(filter, page_number - 1, route)

        return PagedResponse(
            data=list(data),
            page_number=page_number,
            page_size=page_size,
            first_page=self._page_uri(filter, 1, route),
            last_page=self._page_uri(filter, total_pages, route),
            next_page=next_page,
            previous_page=previous_page,
            total_pages=total_pages,
            total_records=total_records,
        )
