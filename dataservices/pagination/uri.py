"""
Page link construction.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable
from urllib.parse import urlencode

from fastapi import Request

from dataservices.pagination.schemas import PaginationFilter
from shared.config.constants import PageQueryKeys


@runtime_checkable
class UriService(Protocol):
    """Builds the absolute URI of one page of a route."""

    def get_page_uri(self, filter: PaginationFilter, route: str) -> str:
        ...


class BaseUriService:
    """
    ``UriService`` over a fixed base URI.

    Example:
        BaseUriService("https://api.example.com").get_page_uri(PaginationFilter(2, 10), "/widgets")
        # https://api.example.com/widgets?pageNumber=2&pageSize=10
    """

    def __init__(self, base_uri: str):
        self.base_uri = base_uri.rstrip("/")

    def get_page_uri(self, filter: PaginationFilter, route: str) -> str:
        if route and not route.startswith("/"):
            route = "/" + route
        query = urlencode(
            {
                PageQueryKeys.PAGE_NUMBER: filter.page_number,
                PageQueryKeys.PAGE_SIZE: filter.page_size,
            }
        )
        return f"{self.base_uri}{route}?{query}"

    def __repr__(self) -> str:
        return f"BaseUriService({self.base_uri!r})"


def uri_service_from_request(request: Request) -> BaseUriService:
    """URI service rooted at the scheme and host the request came in on."""
    return BaseUriService(str(request.base_url))
