"""
CRUD data service.

Adds mutations to the read-only query surface. Payloads that are instances
of the service's model are used directly; anything else (pydantic DTOs,
dicts) is mapped to the model first. Range operations dispatch per item.

Mutations only change what the session tracks unless ``should_save`` is
set, in which case the Unit of Work commits (stamping audit columns when a
``user_id`` is given).

Usage:
    service = CrudDataService(uow, mapper, Widget)

    new_id = (await service.add(WidgetCreate(name="bolt"), should_save=True)).value
    service.begin_update(WidgetPatch(id=new_id, name="nut"))
    await service.disable_by_id(new_id, should_save=True, user_id="u-1")
"""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Generic, Iterable

from dataservices.repositories.base import Repository
from dataservices.results import Result, wrap, wrap_async
from dataservices.services.base import IdT, ModelT
from dataservices.services.read_only import ReadOnlyDataService
from shared.config.logging import get_logger

logger = get_logger(__name__)


class CrudDataService(ReadOnlyDataService[ModelT, IdT], Generic[ModelT, IdT]):
    """Read-only queries plus add, update, delete, disable and detach."""

    @property
    def repository(self) -> Repository[ModelT]:
        return self._unit_of_work.get_repository(self.model, self.id_type)  # type: ignore[return-value]

    async def _save_if(self, should_save: bool, user_id: str | None) -> bool:
        if should_save:
            await self._commit(user_id)
        return should_save

    async def _mutate(
        self,
        operation: Callable[[], Awaitable[Any] | Any],
        should_save: bool,
        user_id: str | None,
    ) -> Result[None]:
        """Run a tracking operation, then commit when asked to."""

        async def run() -> None:
            pending = operation()
            if inspect.isawaitable(pending):
                await pending
            await self._save_if(should_save, user_id)

        return await wrap_async(run)

    # =========================================================================
    # Add
    # =========================================================================

    async def add(
        self,
        entry: Any,
        should_save: bool = False,
        user_id: str | None = None,
    ) -> Result[IdT | None]:
        """
        Track a new entity, mapping DTOs to the model.

        Returns:
            Result with the new id when saved; the id type's default value
            (``0`` for ``int``, ``None`` for ``uuid.UUID``) when the entity
            is not yet persisted.
        """
        if entry is None:
            return self._null("entry")

        async def run() -> IdT | None:
            unsaved_id = self._default_id()
            entity = self.repository.add(self._to_entity(entry))
            if not await self._save_if(should_save, user_id):
                return unsaved_id
            logger.info("Entity added", entity=self.entity_name, audited=user_id is not None)
            return self.repository.identity_of(entity)

        return await wrap_async(run)

    async def add_range(
        self,
        entries: Iterable[Any],
        should_save: bool = False,
        user_id: str | None = None,
    ) -> Result[list[IdT]]:
        """
        Track new entities.

        Returns:
            Result with the new ids in input order when saved; ``[]`` otherwise.
        """
        if entries is None:
            return self._null("entries")

        async def run() -> list[IdT]:
            entities = self._to_entities(entries)
            self.repository.add_range(entities)
            if not await self._save_if(should_save, user_id):
                return []
            logger.info("Entities added", entity=self.entity_name, count=len(entities))
            return [self.repository.identity_of(entity) for entity in entities]

        return await wrap_async(run)

    # =========================================================================
    # Update
    # =========================================================================

    def begin_update(self, entry: Any, swap_attached: bool = False) -> Result[None]:
        """
        Attach the entry and mark all of its columns modified for the next commit.

        If another instance with the same key is already tracked it is
        replaced when ``swap_attached`` is set; otherwise the call fails.
        """
        if entry is None:
            return self._null("entry")

        def run() -> None:
            self.repository.begin_update(self._to_entity(entry), swap_attached)

        return wrap(run)

    def begin_update_range(self, entries: Iterable[Any], swap_attached: bool = False) -> Result[None]:
        if entries is None:
            return self._null("entries")
        return wrap(lambda: self.repository.begin_update_range(self._to_entities(entries), swap_attached))

    # =========================================================================
    # Hard delete
    # =========================================================================

    async def delete(self, entry: Any, should_save: bool = False, user_id: str | None = None) -> Result[None]:
        """Delete the entity the entry identifies."""
        if entry is None:
            return self._null("entry")
        return await self._mutate(
            lambda: self.repository.delete(self._to_entity(entry)), should_save, user_id
        )

    async def delete_by_id(self, id: IdT, should_save: bool = False, user_id: str | None = None) -> Result[None]:
        """Delete by primary key; fails when the id does not exist."""
        if id is None:
            return self._null("id")
        return await self._mutate(lambda: self.repository.delete_by_id(id), should_save, user_id)

    async def delete_range(
        self,
        entries: Iterable[Any],
        should_save: bool = False,
        user_id: str | None = None,
    ) -> Result[None]:
        if entries is None:
            return self._null("entries")
        return await self._mutate(
            lambda: self.repository.delete_range(self._to_entities(entries)), should_save, user_id
        )

    async def delete_range_by_ids(
        self,
        ids: Iterable[IdT],
        should_save: bool = False,
        user_id: str | None = None,
    ) -> Result[None]:
        """Delete by primary keys; nothing is deleted when any id is missing."""
        if ids is None:
            return self._null("ids")
        return await self._mutate(
            lambda: self.repository.delete_range_by_ids(list(ids)), should_save, user_id
        )

    # =========================================================================
    # Soft delete
    # =========================================================================

    async def disable(self, entry: Any, should_save: bool = False, user_id: str | None = None) -> Result[None]:
        """Clear the active flag of the entity the entry identifies."""
        if entry is None:
            return self._null("entry")
        return await self._mutate(
            lambda: self.repository.disable(self._to_entity(entry)), should_save, user_id
        )

    async def disable_by_id(self, id: IdT, should_save: bool = False, user_id: str | None = None) -> Result[None]:
        if id is None:
            return self._null("id")
        return await self._mutate(lambda: self.repository.disable_by_id(id), should_save, user_id)

    async def disable_range(
        self,
        entries: Iterable[Any],
        should_save: bool = False,
        user_id: str | None = None,
    ) -> Result[None]:
        if entries is None:
            return self._null("entries")
        return await self._mutate(
            lambda: self.repository.disable_range(self._to_entities(entries)), should_save, user_id
        )

    async def disable_range_by_ids(
        self,
        ids: Iterable[IdT],
        should_save: bool = False,
        user_id: str | None = None,
    ) -> Result[None]:
        """Soft delete by primary keys; nothing changes when any id is missing."""
        if ids is None:
            return self._null("ids")
        return await self._mutate(
            lambda: self.repository.disable_range_by_ids(list(ids)), should_save, user_id
        )

    # =========================================================================
    # Detach
    # =========================================================================

    def detach(self, entry: Any) -> Result[None]:
        """Stop tracking the entity (and its owned children) without persisting."""
        if entry is None:
            return self._null("entry")
        return wrap(lambda: self.repository.detach(self._to_entity(entry)))
