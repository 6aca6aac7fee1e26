"""
Tests for PaginationFilter, BaseUriService and ResponsePaginator.
"""

import math

import pytest
from hypothesis import given, settings, strategies as st

from dataservices.pagination import (
    BaseUriService,
    PagedResponse,
    PaginationFilter,
    ResponsePaginator,
    UriService,
)
from dataservices.repositories import Specification
from tests.models import Widget, WidgetSummary

BASE = "https://api.example.com"


@pytest.fixture
def paginator():
    return ResponsePaginator(BaseUriService(BASE + "/"))


class TestPaginationFilter:
    def test_defaults(self):
        page = PaginationFilter()

        assert (page.page_number, page.page_size) == (1, 10)
        assert page.offset == 0

    def test_values_are_clamped(self):
        assert PaginationFilter(page_number=0, page_size=0).page_number == 1
        assert PaginationFilter(page_number=-3, page_size=0).page_size == 1
        assert PaginationFilter(page_size=5000).page_size == 100
        assert PaginationFilter(page_size=50, max_page_size=20).page_size == 20

    def test_to_specification(self):
        spec = PaginationFilter(page_number=3, page_size=20).to_specification(
            Widget.price > 1, order_by=[Widget.id]
        )

        assert isinstance(spec, Specification)
        assert (spec.skip, spec.take) == (40, 20)
        assert spec.to_expression() is not None

    @given(
        page_number=st.integers(min_value=-1000, max_value=1000),
        page_size=st.integers(min_value=-1000, max_value=1000),
    )
    @settings(max_examples=100)
    def test_clamped_values_always_valid(self, page_number, page_size):
        """Property: any input produces a page >= 1 and a size within 1..max."""
        page = PaginationFilter(page_number=page_number, page_size=page_size)

        assert page.page_number >= 1
        assert 1 <= page.page_size <= page.max_page_size
        assert page.offset >= 0


class TestUriService:
    def test_page_uri(self):
        service = BaseUriService(BASE)

        uri = service.get_page_uri(PaginationFilter(page_number=2, page_size=10), "/widgets")

        assert uri == f"{BASE}/widgets?pageNumber=2&pageSize=10"

    def test_route_without_leading_slash(self):
        uri = BaseUriService(BASE + "/").get_page_uri(PaginationFilter(), "widgets")

        assert uri == f"{BASE}/widgets?pageNumber=1&pageSize=10"

    def test_satisfies_protocol(self):
        assert isinstance(BaseUriService(BASE), UriService)


class TestResponsePaginator:
    def test_middle_page(self, paginator):
        page = PaginationFilter(page_number=5, page_size=10)

        response = paginator.create_paged_response(["x"] * 10, page, 95, "/widgets")

        assert response.total_pages == 10
        assert response.total_records == 95
        assert response.first_page == f"{BASE}/widgets?pageNumber=1&pageSize=10"
        assert response.last_page == f"{BASE}/widgets?pageNumber=10&pageSize=10"
        assert response.next_page == f"{BASE}/widgets?pageNumber=6&pageSize=10"
        assert response.previous_page == f"{BASE}/widgets?pageNumber=4&pageSize=10"
        assert response.succeeded is True

    def test_first_page_has_no_previous(self, paginator):
        response = paginator.create_paged_response([], PaginationFilter(1, 10), 95, "/widgets")

        assert response.previous_page is None
        assert response.next_page.endswith("pageNumber=2&pageSize=10")

    def test_last_page_has_no_next(self, paginator):
        response = paginator.create_paged_response([], PaginationFilter(10, 10), 95, "/widgets")

        assert response.next_page is None
        assert response.previous_page.endswith("pageNumber=9&pageSize=10")

    def test_page_past_the_end(self, paginator):
        response = paginator.create_paged_response([], PaginationFilter(12, 10), 95, "/widgets")

        assert response.next_page is None
        assert response.previous_page is None

    def test_empty_result(self, paginator):
        response = paginator.create_paged_response([], PaginationFilter(1, 10), 0, "/widgets")

        assert response.total_pages == 0
        assert response.data == []
        assert response.next_page is None
        assert response.previous_page is None
        assert response.last_page == f"{BASE}/widgets?pageNumber=1&pageSize=10"

    def test_carries_typed_data(self, paginator):
        rows = [WidgetSummary(id=1, name="bolt")]

        response = paginator.create_paged_response(rows, PaginationFilter(), 1, "/widgets")

        assert isinstance(response, PagedResponse)
        assert response.data == rows
        assert response.model_dump()["data"] == [{"id": 1, "name": "bolt"}]

    @given(
        total=st.integers(min_value=0, max_value=10_000),
        page_number=st.integers(min_value=1, max_value=200),
        page_size=st.integers(min_value=1, max_value=100),
    )
    @settings(max_examples=100)
    def test_link_presence(self, total, page_number, page_size):
        """Property: next/previous links exist exactly when that page is in range."""
        paginator = ResponsePaginator(BaseUriService(BASE))
        page = PaginationFilter(page_number=page_number, page_size=page_size)

        response = paginator.create_paged_response([], page, total, "/w")

        assert response.total_pages == math.ceil(total / page_size)
        assert (response.next_page is not None) == (page_number < response.total_pages)
        assert (response.previous_page is not None) == (
            1 < page_number <= response.total_pages
        )
        assert response.first_page is not None
        assert response.last_page is not None


class TestPagedQuery:
    @pytest.mark.asyncio
    async def test_page_of_service_results(self, paginator, read_only_widgets, seed_widgets):
        page = PaginationFilter(page_number=2, page_size=2)

        rows = await read_only_widgets.get_by_spec(
            page.to_specification(order_by=[Widget.id]), output_type=WidgetSummary
        )
        total = await read_only_widgets.long_count()
        response = paginator.create_paged_response(rows.value, page, total.value, "/widgets")

        assert [r.name for r in response.data] == ["gear"]
        assert response.total_pages == 2
        assert response.next_page is None
        assert response.previous_page.endswith("pageNumber=1&pageSize=2")
