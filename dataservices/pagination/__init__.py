"""
Page-number pagination: filter, response envelope, link building.
"""

from .schemas import PaginationFilter, PagedResponse, get_pagination_filter
from .uri import UriService, BaseUriService, uri_service_from_request
from .paginator import ResponsePaginator

__all__ = [
    "PaginationFilter",
    "PagedResponse",
    "get_pagination_filter",
    "UriService",
    "BaseUriService",
    "uri_service_from_request",
    "ResponsePaginator",
]
