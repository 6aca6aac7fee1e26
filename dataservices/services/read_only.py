"""
Read-only data service.

Query operations over one entity type. Each operation returns a ``Result``;
lookups that find nothing fail with ``NotFoundError``.

Usage:
    service = ReadOnlyDataService(uow, mapper, Widget)

    result = await service.get(42, output_type=WidgetOutput)
    page = await service.get_by_spec(Specification(Widget.price < 10, skip=20, take=10))
    total = (await service.long_count()).value
"""

from __future__ import annotations

from typing import Any, Generic, Type, TypeVar

from pydantic import BaseModel

from dataservices.repositories.base import ReadOnlyRepository
from dataservices.repositories.specifications import ProjectedSpecification, Specification
from dataservices.results import NotFoundError, Result, wrap_async
from dataservices.services.base import DataServiceBase, IdT, ModelT

OutputT = TypeVar("OutputT", bound=BaseModel)


class ReadOnlyDataService(DataServiceBase[ModelT, IdT], Generic[ModelT, IdT]):
    """Query surface shared by read-only and CRUD data services."""

    @property
    def repository(self) -> ReadOnlyRepository[ModelT]:
        return self._unit_of_work.get_repository(self.model, self.id_type, read_only=True)

    def _found(self, value: Any, output_type: Type[OutputT] | None = None) -> Result[Any]:
        """NotFound for None; otherwise the value, mapped when an output type is given."""
        if value is None:
            return Result.failure(NotFoundError())
        if output_type is not None and not isinstance(value, output_type):
            value = self._mapper.map(value, output_type)
        return Result.success(value)

    def _map_all(self, values: list[Any], output_type: Type[OutputT] | None) -> list[Any]:
        if output_type is None:
            return values
        return [v if isinstance(v, output_type) else self._mapper.map(v, output_type) for v in values]

    # =========================================================================
    # Lookups
    # =========================================================================

    async def get(
        self,
        *key_values: Any,
        output_type: Type[OutputT] | None = None,
        project: bool = False,
    ) -> Result[Any]:
        """
        Get an entity by primary key.

        Args:
            *key_values: One value per primary key column.
            output_type: Map the entity to this schema.
            project: Select only the output's columns instead of loading the
                entity (requires ``output_type``).

        Returns:
            Result with the entity (or output); NotFoundError when absent.
        """
        if not key_values or any(value is None for value in key_values):
            return self._null("key_values")

        async def run() -> Result[Any]:
            if project and output_type is not None:
                return self._found(await self.repository.get_projected(output_type, *key_values))
            return self._found(await self.repository.get(*key_values), output_type)

        return await wrap_async(run)

    async def get_single_by_spec(
        self,
        spec: Specification,
        output_type: Type[OutputT] | None = None,
    ) -> Result[Any]:
        """First entity matching the specification; NotFoundError when none does."""
        if spec is None:
            return self._null("spec")

        async def run() -> Result[Any]:
            return self._found(await self.repository.get_single_by_spec(spec), output_type)

        return await wrap_async(run)

    # =========================================================================
    # Collections
    # =========================================================================

    async def get_by_spec(
        self,
        spec: Specification,
        output_type: Type[OutputT] | None = None,
    ) -> Result[list[Any]]:
        """All entities matching the specification (possibly empty)."""
        if spec is None:
            return self._null("spec")

        async def run() -> list[Any]:
            return self._map_all(await self.repository.get_by_spec(spec), output_type)

        return await wrap_async(run)

    async def get_all(
        self,
        output_type: Type[OutputT] | None = None,
        project: bool = False,
    ) -> Result[list[Any]]:
        """All entities, optionally mapped or projected to ``output_type``."""

        async def run() -> list[Any]:
            if project and output_type is not None:
                return await self.repository.get_all_projected(output_type)
            return self._map_all(await self.repository.get_all(), output_type)

        return await wrap_async(run)

    async def long_count(self, spec: Specification | None = None) -> Result[int]:
        """Number of entities, optionally only those matching ``spec``."""
        return await wrap_async(lambda: self.repository.long_count(spec))

    async def any(self, predicate: Specification | Any) -> Result[bool]:
        """Whether any entity matches a specification or boolean expression."""
        if predicate is None:
            return self._null("predicate")
        return await wrap_async(lambda: self.repository.any(predicate))

    def projected(self, output_type: Type[OutputT], spec: Specification) -> ProjectedSpecification:
        """Wrap ``spec`` so its results are projected to ``output_type`` in the query."""
        return ProjectedSpecification.of(output_type, spec)

