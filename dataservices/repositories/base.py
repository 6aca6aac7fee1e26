"""
Repository Pattern for database access through an AsyncSession.

Repositories are capability objects bound to one Unit of Work's session.
A method is a coroutine exactly when it may touch the database; pure
change tracking operations (add, begin_update, disable, detach) are
synchronous.

Usage:
    from dataservices.repositories import Repository

    repo = Repository(session, Widget)

    widget = await repo.get(42)
    widgets = await repo.get_by_spec(Specification(Widget.price < 10))

    repo.add(Widget(name="bolt"))
    repo.begin_update(detached_widget)
    await repo.delete_by_id(7)
    await session.commit()
"""

from __future__ import annotations

from typing import Any, Generic, Iterable, Sequence, TypeVar

from pydantic import BaseModel
from sqlalchemy import func, inspect as sa_inspect, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import make_transient_to_detached
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.sql import Select

from dataservices.mapping import EntityOutputBuilder
from dataservices.models import Base, supports_soft_delete
from dataservices.repositories.specifications import ProjectedSpecification, Specification
from shared.utils.exceptions import DuplicateTrackingError, EntityNotFoundError

ModelT = TypeVar("ModelT", bound=Base)
OutputT = TypeVar("OutputT", bound=BaseModel)


class ReadOnlyRepository(Generic[ModelT]):
    """
    Repository providing query operations only.

    Lookups by key go through ``AsyncSession.get`` so instances already
    tracked by the session are returned without a round-trip.
    """

    def __init__(self, session: AsyncSession, model: type[ModelT], id_type: type = int):
        self._session = session
        self._model = model
        self._id_type = id_type
        self._mapper = sa_inspect(model)

    @property
    def model(self) -> type[ModelT]:
        """The SQLAlchemy model class."""
        return self._model

    @property
    def session(self) -> AsyncSession:
        """The database session."""
        return self._session

    @property
    def id_type(self) -> type:
        """Python type of the primary key."""
        return self._id_type

    def _base_query(self) -> Select:
        """Create base select query."""
        return select(self._model)

    def _key_criteria(self, key_values: Sequence[Any]) -> list[Any]:
        """WHERE clauses matching the primary key columns to ``key_values``."""
        columns = self._mapper.primary_key
        if len(key_values) != len(columns):
            raise ValueError(
                f"{self._model.__name__} has {len(columns)} key column(s), "
                f"got {len(key_values)} value(s)"
            )
        return [column == value for column, value in zip(columns, key_values)]

    def _projection(self, output_type: type[OutputT]) -> Select:
        """Select only the mapped columns whose names match the output's fields."""
        column_keys = {attr.key for attr in self._mapper.column_attrs}
        keys = [name for name in output_type.model_fields if name in column_keys]
        if not keys:
            raise ValueError(
                f"{output_type.__name__} shares no columns with {self._model.__name__}"
            )
        return select(*[getattr(self._model, key).label(key) for key in keys])

    @staticmethod
    def _project_rows(rows: Iterable[Any], output_type: type[OutputT]) -> list[OutputT]:
        builder = EntityOutputBuilder(output_type)
        return [builder.build(dict(row._mapping)) for row in rows]

    # =========================================================================
    # Queries
    # =========================================================================

    async def get(self, *key_values: Any) -> ModelT | None:
        """
        Find entity by primary key.

        Args:
            *key_values: One value per primary key column.

        Returns:
            Entity or None if not found.
        """
        key = key_values[0] if len(key_values) == 1 else tuple(key_values)
        return await self._session.get(self._model, key)

    async def get_projected(self, output_type: type[OutputT], *key_values: Any) -> OutputT | None:
        """Find by primary key, selecting only the columns ``output_type`` needs."""
        query = self._projection(output_type).where(*self._key_criteria(key_values))
        row = (await self._session.execute(query)).first()
        if row is None:
            return None
        return self._project_rows([row], output_type)[0]

    async def get_single_by_spec(self, spec: Specification) -> Any | None:
        """First entity (or projected output) matching the specification."""
        if isinstance(spec, ProjectedSpecification):
            query = spec.apply(self._projection(spec.output_type), loading=False)
            row = (await self._session.execute(query)).first()
            return None if row is None else self._project_rows([row], spec.output_type)[0]

        query = spec.apply(self._base_query())
        return (await self._session.scalars(query)).first()

    async def get_by_spec(self, spec: Specification) -> list[Any]:
        """All entities (or projected outputs) matching the specification."""
        if isinstance(spec, ProjectedSpecification):
            query = spec.apply(self._projection(spec.output_type), loading=False)
            rows = (await self._session.execute(query)).all()
            return self._project_rows(rows, spec.output_type)

        query = spec.apply(self._base_query())
        return list((await self._session.scalars(query)).all())

    async def get_all(self) -> list[ModelT]:
        """Find all entities."""
        return list((await self._session.scalars(self._base_query())).all())

    async def get_all_projected(self, output_type: type[OutputT]) -> list[OutputT]:
        """All rows projected to ``output_type`` in the query."""
        rows = (await self._session.execute(self._projection(output_type))).all()
        return self._project_rows(rows, output_type)

    async def long_count(self, spec: Specification | None = None) -> int:
        """Count entities, optionally only those matching ``spec``."""
        query = select(func.count()).select_from(self._model)
        if spec is not None:
            query = spec.apply_filter(query)
        return await self._session.scalar(query) or 0

    async def any(self, predicate: Specification | Any) -> bool:
        """Check whether any entity matches a specification or boolean expression."""
        if not isinstance(predicate, Specification):
            predicate = Specification(predicate)
        query = select(predicate.apply_filter(self._base_query()).exists())
        return bool(await self._session.scalar(query))


class Repository(ReadOnlyRepository[ModelT]):
    """
    Repository with change tracking operations.

    Nothing here commits; changes are persisted by the Unit of Work.
    """

    # =========================================================================
    # Tracking helpers
    # =========================================================================

    def _identity_key(self, entity: ModelT) -> tuple:
        key = self._mapper.identity_key_from_instance(entity)
        if any(value is None for value in key[1]):
            raise ValueError(
                f"{self._model.__name__} needs a primary key value to be attached"
            )
        return key

    def _tracked(self, entity: ModelT) -> ModelT | None:
        """The instance the session tracks for the entity's identity, if any."""
        if entity in self._session:
            return entity
        key = self._mapper.identity_key_from_instance(entity)
        if any(value is None for value in key[1]):
            return None
        return self._session.sync_session.identity_map.get(key)

    def _attach(self, entity: ModelT, *, swap_attached: bool) -> ModelT:
        """
        Attach a transient or detached entity that carries its primary key.

        A different instance already tracked under the same key is expunged
        when ``swap_attached`` is set; otherwise DuplicateTrackingError.
        """
        if entity in self._session:
            return entity

        key = self._identity_key(entity)
        existing = self._session.sync_session.identity_map.get(key)
        if existing is not None:
            if not swap_attached:
                raise DuplicateTrackingError(self._model.__name__, key[1])
            self._session.expunge(existing)

        if sa_inspect(entity).transient:
            make_transient_to_detached(entity)
        self._session.add(entity)
        return entity

    def _mark_modified(self, entity: ModelT) -> None:
        """Flag every loaded non-key column so the next flush updates it."""
        state = sa_inspect(entity)
        pk_keys = {self._mapper.get_property_by_column(c).key for c in self._mapper.primary_key}
        for attr in self._mapper.column_attrs:
            if attr.key in state.dict and attr.key not in pk_keys:
                flag_modified(entity, attr.key)

    def _require_soft_delete(self) -> None:
        if not supports_soft_delete(self._model):
            raise TypeError(f"{self._model.__name__} does not support soft delete (no is_active)")

    async def _get_required(self, ids: Sequence[Any]) -> list[ModelT]:
        """
        Load entities by id, in the order given.

        Raises:
            EntityNotFoundError: If any id does not exist; nothing is loaded
                into the caller's hands in that case.
        """
        columns = self._mapper.primary_key
        if len(columns) != 1:
            entities = [await self.get(*value) for value in ids]
            missing = [value for value, entity in zip(ids, entities) if entity is None]
        else:
            key = self._mapper.get_property_by_column(columns[0]).key
            found: dict[Any, ModelT] = {}
            if ids:
                rows = await self._session.scalars(
                    self._base_query().where(columns[0].in_(list(dict.fromkeys(ids))))
                )
                found = {getattr(row, key): row for row in rows}
            missing = [value for value in ids if value not in found]
            entities = [found.get(value) for value in ids]

        if missing:
            raise EntityNotFoundError(
                self._model.__name__, missing[0] if len(missing) == 1 else missing
            )
        return entities  # type: ignore[return-value]

    def identity_of(self, entity: ModelT) -> Any:
        """Primary key value of an entity (a tuple for composite keys)."""
        values = self._mapper.primary_key_from_instance(entity)
        return values[0] if len(values) == 1 else tuple(values)

    # =========================================================================
    # Add / update
    # =========================================================================

    def add(self, entity: ModelT) -> ModelT:
        """Add entity to session (not committed)."""
        self._session.add(entity)
        return entity

    def add_range(self, entities: Sequence[ModelT]) -> Sequence[ModelT]:
        """Add multiple entities to session (not committed)."""
        self._session.add_all(entities)
        return entities

    def begin_update(self, entity: ModelT, swap_attached: bool = False) -> ModelT:
        """Attach the entity and mark all of its loaded columns modified."""
        entity = self._attach(entity, swap_attached=swap_attached)
        self._mark_modified(entity)
        return entity

    def begin_update_range(self, entities: Iterable[ModelT], swap_attached: bool = False) -> None:
        for entity in entities:
            self.begin_update(entity, swap_attached=swap_attached)

    # =========================================================================
    # Hard delete
    # =========================================================================

    async def delete(self, entity: ModelT) -> None:
        """Delete entity from session (not committed)."""
        tracked = self._tracked(entity)
        if tracked is not None and tracked in self._session.new:
            # Never flushed: forgetting it is the whole delete
            self._session.expunge(tracked)
            return
        if tracked is None:
            tracked = self._attach(entity, swap_attached=False)
        await self._session.delete(tracked)

    async def delete_range(self, entities: Iterable[ModelT]) -> None:
        for entity in entities:
            await self.delete(entity)

    async def delete_by_id(self, entity_id: Any) -> None:
        entity = (await self._get_required([entity_id]))[0]
        await self._session.delete(entity)

    async def delete_range_by_ids(self, ids: Sequence[Any]) -> None:
        for entity in await self._get_required(list(ids)):
            await self._session.delete(entity)

    # =========================================================================
    # Soft delete
    # =========================================================================

    def disable(self, entity: ModelT) -> ModelT:
        """Clear the entity's active flag (not committed)."""
        self._require_soft_delete()
        tracked = self._tracked(entity)
        if tracked is None:
            tracked = self._attach(entity, swap_attached=False)
        tracked.disable()
        return tracked

    def disable_range(self, entities: Iterable[ModelT]) -> None:
        for entity in entities:
            self.disable(entity)

    async def disable_by_id(self, entity_id: Any) -> None:
        self._require_soft_delete()
        (await self._get_required([entity_id]))[0].disable()

    async def disable_range_by_ids(self, ids: Sequence[Any]) -> None:
        self._require_soft_delete()
        for entity in await self._get_required(list(ids)):
            entity.disable()

    # =========================================================================
    # Detach
    # =========================================================================

    def detach(self, entity: ModelT) -> None:
        """Stop tracking the entity; cascades to children per relationship settings."""
        tracked = self._tracked(entity)
        if tracked is not None:
            self._session.expunge(tracked)
