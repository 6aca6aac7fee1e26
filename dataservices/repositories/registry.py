"""
Repository resolution per model.

Custom repository classes register against a model; everything else gets
the generic ``ReadOnlyRepository`` / ``Repository``.

Usage:
    registry = RepositoryRegistry()

    @registry.repository(Widget)
    class WidgetRepository(Repository[Widget]):
        async def cheapest(self) -> Widget | None:
            ...

    async with UnitOfWork(registry=registry) as uow:
        repo = uow.get_repository(Widget)   # WidgetRepository
"""

from __future__ import annotations

from typing import Callable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from dataservices.repositories.base import ReadOnlyRepository, Repository
from shared.config.constants import RepositoryKind
from shared.config.logging import get_logger

logger = get_logger(__name__)

RepositoryFactory = Callable[[AsyncSession, type, type], ReadOnlyRepository]
R = TypeVar("R", bound=type)


class RepositoryRegistry:
    """Typed map from (kind, model) to a repository factory."""

    def __init__(self) -> None:
        self._factories: dict[tuple[RepositoryKind, type], RepositoryFactory] = {}

    def register(
        self,
        model: type,
        factory: RepositoryFactory,
        *,
        kind: RepositoryKind | None = None,
    ) -> None:
        """
        Register a repository class (or factory) for a model.

        When ``kind`` is omitted it is inferred from the class: a
        ``Repository`` subclass serves both kinds, a read-only class serves
        read-only lookups only.
        """
        if kind is None:
            if isinstance(factory, type) and not issubclass(factory, Repository):
                kinds = [RepositoryKind.READ_ONLY]
            else:
                kinds = [RepositoryKind.READ_ONLY, RepositoryKind.CRUD]
        else:
            kinds = [kind]

        for k in kinds:
            self._factories[(k, model)] = factory
        logger.debug(
            "Repository registered",
            model=model.__name__,
            repository=getattr(factory, "__name__", repr(factory)),
            kinds=[k.value for k in kinds],
        )

    def repository(self, model: type, *, kind: RepositoryKind | None = None) -> Callable[[R], R]:
        """Class decorator form of ``register``."""

        def decorator(cls: R) -> R:
            self.register(model, cls, kind=kind)
            return cls

        return decorator

    def is_registered(self, model: type, kind: RepositoryKind = RepositoryKind.CRUD) -> bool:
        return (kind, model) in self._factories

    def create(
        self,
        session: AsyncSession,
        model: type,
        *,
        id_type: type = int,
        kind: RepositoryKind = RepositoryKind.CRUD,
    ) -> ReadOnlyRepository:
        """Build the repository registered for (kind, model), or the generic one."""
        factory = self._factories.get((kind, model))
        if factory is None:
            return get_repository(model, session, id_type=id_type, read_only=kind is RepositoryKind.READ_ONLY)
        return factory(session, model, id_type)


# Default factory used when no registry entry exists
def get_repository(
    model: type,
    session: AsyncSession,
    *,
    id_type: type = int,
    read_only: bool = False,
) -> ReadOnlyRepository:
    """
    Factory function for creating repositories.

    Args:
        model: The SQLAlchemy model class.
        session: Database session.
        id_type: Python type of the primary key.
        read_only: Use ReadOnlyRepository if True.

    Returns:
        Appropriate repository instance.
    """
    if read_only:
        return ReadOnlyRepository(session, model, id_type)
    return Repository(session, model, id_type)
