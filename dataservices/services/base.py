"""
Base class for data services.

A data service is scoped to one Unit of Work: it resolves its repository
from it, maps DTOs through the ``Mapper`` and reports every outcome as a
``Result``. Services never close their Unit of Work; its owner does.

Architecture:
    Router (thin) → Data service (Result) → Repository (tracking/queries) → AsyncSession

Usage:
    from dataservices.services import CrudDataService

    class WidgetService(CrudDataService[Widget, int]):
        model = Widget

    service = WidgetService(uow, mapper)
    result = await service.add(WidgetCreate(name="bolt"), should_save=True, user_id="u-1")
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from dataservices.mapping import Mapper
from dataservices.models import Base
from dataservices.repositories.base import ReadOnlyRepository
from dataservices.results import ArgumentNullError, Result, wrap_async
from dataservices.unit_of_work import UnitOfWork
from shared.config.logging import get_logger

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=Base)
IdT = TypeVar("IdT")


class DataServiceBase(ABC, Generic[ModelT, IdT]):
    """
    Abstract base for data services.

    ``model`` and ``id_type`` may be fixed as class attributes by
    subclasses or passed to the constructor.
    """

    model: type[ModelT] | None = None
    id_type: type = int

    def __init__(
        self,
        unit_of_work: UnitOfWork,
        mapper: Mapper,
        model: type[ModelT] | None = None,
        id_type: type | None = None,
    ):
        if model is not None:
            self.model = model
        if id_type is not None:
            self.id_type = id_type
        if self.model is None:
            raise TypeError(f"{type(self).__name__} needs a model")
        self._unit_of_work = unit_of_work
        self._mapper = mapper

    @property
    def unit_of_work(self) -> UnitOfWork:
        """The Unit of Work this service is scoped to."""
        return self._unit_of_work

    @property
    def mapper(self) -> Mapper:
        return self._mapper

    @property
    def context(self) -> AsyncSession:
        """The Unit of Work's database session."""
        return self._unit_of_work.context

    @property
    def entity_name(self) -> str:
        """Model name used in messages and logs."""
        return self.model.__name__  # type: ignore[union-attr]

    @property
    @abstractmethod
    def repository(self) -> ReadOnlyRepository[ModelT]:
        """Repository resolved from the Unit of Work."""

    # =========================================================================
    # Transaction helpers
    # =========================================================================

    async def commit(self, user_id: str | None = None) -> Result[None]:
        """Commit pending changes, stamping audit columns when ``user_id`` is given."""
        return await wrap_async(self._commit, user_id)

    async def commit_with_count(self, user_id: str | None = None) -> Result[int]:
        """Commit and report how many entities were affected."""
        return await wrap_async(self._unit_of_work.commit_with_count, user_id)

    async def rollback(self) -> Result[None]:
        return await wrap_async(self._unit_of_work.rollback)

    async def begin_transaction(self) -> Result[None]:
        """Begin an explicit transaction unless one is already in progress."""

        async def begin() -> None:
            await self._unit_of_work.begin_transaction()

        return await wrap_async(begin)

    async def _commit(self, user_id: str | None = None) -> None:
        if user_id is None:
            await self._unit_of_work.commit()
        else:
            await self._unit_of_work.commit(user_id)

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _to_entity(self, entry: Any) -> ModelT:
        """Use an entity as-is, map anything else to the model."""
        if isinstance(entry, self.model):  # type: ignore[arg-type]
            return entry
        return self._mapper.map(entry, self.model)  # type: ignore[arg-type]

    def _to_entities(self, entries: Any) -> list[ModelT]:
        return [self._to_entity(entry) for entry in entries]

    def _default_id(self) -> IdT | None:
        """
        Id reported for an entity that is not persisted yet.

        The id type called with no arguments (``0``, ``""``), or ``None`` for
        types such as ``uuid.UUID`` that need a value.
        """
        try:
            return self.id_type()
        except TypeError:
            return None

    @staticmethod
    def _null(parameter_name: str) -> Result[Any]:
        return Result.failure(ArgumentNullError(parameter_name=parameter_name))

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(model={self.entity_name})>"
