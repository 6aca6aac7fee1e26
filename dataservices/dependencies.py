"""
FastAPI dependencies for data services.

Usage:
    from dataservices.dependencies import data_service_dependency, get_response_paginator

    widget_service = data_service_dependency(Widget)

    @router.get("/widgets")
    async def list_widgets(
        page: PaginationFilter = Depends(get_pagination_filter),
        service: CrudDataService = Depends(widget_service),
        paginator: ResponsePaginator = Depends(get_response_paginator),
    ):
        items = raise_for_result(await service.get_by_spec(page.to_specification()))
        total = raise_for_result(await service.long_count())
        return paginator.create_paged_response(items, page, total, "/widgets")
"""

from collections.abc import AsyncGenerator
from functools import lru_cache
from typing import Any, Callable

from fastapi import Depends, Request

from dataservices.pagination import ResponsePaginator, uri_service_from_request
from dataservices.registration import DataServiceRegistry
from dataservices.unit_of_work import UnitOfWork
from shared.infrastructure.db import SessionLocal


async def get_unit_of_work() -> AsyncGenerator[UnitOfWork, None]:
    """
    FastAPI dependency for a request-scoped Unit of Work.

    Rolled back when the endpoint raises; closed after the request completes.
    """
    async with UnitOfWork(SessionLocal()) as uow:
        yield uow


@lru_cache
def get_data_service_registry() -> DataServiceRegistry:
    """Process-wide registry used when a dependency is not given one."""
    return DataServiceRegistry()


def data_service_dependency(
    model: type | None = None,
    *,
    service_cls: type | None = None,
    read_only: bool = False,
    id_type: type = int,
    registry: DataServiceRegistry | None = None,
) -> Callable[..., Any]:
    """
    Build a dependency returning a data service bound to the request's Unit of Work.

    Args:
        model: Model served by a generic service.
        service_cls: Registered concrete service class (instead of ``model``).
        read_only: Generic read-only service instead of CRUD.
        id_type: Primary key type of ``model``.
        registry: Registry to resolve from; the process-wide one by default.
    """
    if (model is None) == (service_cls is None):
        raise ValueError("Pass exactly one of model or service_cls")

    def dependency(uow: UnitOfWork = Depends(get_unit_of_work)) -> Any:
        services = registry or get_data_service_registry()
        if service_cls is not None:
            return services.resolve(service_cls, uow)
        if read_only:
            return services.get_read_only_service(model, uow, id_type)
        return services.get_crud_service(model, uow, id_type)

    return dependency


def get_response_paginator(request: Request) -> ResponsePaginator:
    """Paginator whose links point at the host the request came in on."""
    return ResponsePaginator(uri_service_from_request(request))
