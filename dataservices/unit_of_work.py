"""
Unit of Work over one AsyncSession.

The Unit of Work owns its session for its whole lifetime, caches the
repositories resolved from it and is the only place that commits.

Usage:
    from dataservices.unit_of_work import UnitOfWork

    async with UnitOfWork() as uow:
        repo = uow.get_repository(Widget)
        repo.add(Widget(name="bolt"))
        await uow.commit(audit_user_id="user-7")

Exiting the ``async with`` block with an exception rolls back before the
session is closed. Closing is idempotent.
"""

from __future__ import annotations

from types import TracebackType
from typing import Any

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction

from dataservices.models import AuditMixin
from dataservices.repositories.base import ReadOnlyRepository, Repository
from dataservices.repositories.registry import RepositoryRegistry
from shared.config.constants import Limits, RepositoryKind
from shared.config.logging import get_logger, mask_user_id
from shared.infrastructure.db import SessionLocal, safe_commit
from shared.utils.exceptions import UnitOfWorkDisposedError

logger = get_logger(__name__)


class UnitOfWork:
    """
    Transactional scope owning exactly one ``AsyncSession``.

    Args:
        session: Session to own; a new one from ``SessionLocal`` when omitted.
        registry: Custom repository classes per model; generic repositories
            are used for models it does not know.
    """

    def __init__(
        self,
        session: AsyncSession | None = None,
        *,
        registry: RepositoryRegistry | None = None,
    ):
        self._session = session if session is not None else SessionLocal()
        self._registry = registry or RepositoryRegistry()
        self._repositories: dict[tuple[RepositoryKind, type, type], ReadOnlyRepository] = {}
        self._scoped_services: dict[Any, dict[Any, Any]] = {}
        self._disposed = False

    # =========================================================================
    # Access
    # =========================================================================

    def _ensure_open(self, operation: str) -> None:
        if self._disposed:
            raise UnitOfWorkDisposedError(operation)

    @property
    def context(self) -> AsyncSession:
        """The owned database session."""
        self._ensure_open("access the session")
        return self._session

    session = context

    @property
    def closed(self) -> bool:
        return self._disposed

    @property
    def registry(self) -> RepositoryRegistry:
        return self._registry

    @property
    def scoped_services(self) -> dict[Any, dict[Any, Any]]:
        """
        Data services scoped to this Unit of Work, keyed by the registry
        that built them. Cleared on close.
        """
        return self._scoped_services

    def get_repository(
        self,
        model: type,
        id_type: type = int,
        *,
        read_only: bool = False,
    ) -> ReadOnlyRepository:
        """
        Resolve the repository for a model.

        Repeated calls with the same (kind, model, id_type) return the same
        instance for the lifetime of this Unit of Work.
        """
        self._ensure_open("resolve a repository")
        kind = RepositoryKind.READ_ONLY if read_only else RepositoryKind.CRUD
        cache_key = (kind, model, id_type)
        repository = self._repositories.get(cache_key)
        if repository is None:
            repository = self._registry.create(self._session, model, id_type=id_type, kind=kind)
            self._repositories[cache_key] = repository
        return repository

    def get_read_only_repository(self, model: type, id_type: type = int) -> ReadOnlyRepository:
        return self.get_repository(model, id_type, read_only=True)

    def get_crud_repository(self, model: type, id_type: type = int) -> Repository:
        return self.get_repository(model, id_type)  # type: ignore[return-value]

    # =========================================================================
    # Transactions
    # =========================================================================

    def _stamp_audit(self, user_id: str) -> None:
        """Stamp audit user columns on tracked AuditMixin rows before flush."""
        if len(user_id) > Limits.MAX_AUDIT_USER_ID_LENGTH:
            raise ValueError(
                f"audit user id longer than {Limits.MAX_AUDIT_USER_ID_LENGTH} characters"
            )

        for entity in self._session.new:
            if isinstance(entity, AuditMixin):
                entity.stamp_created(user_id)

        for entity in self._session.dirty:
            if not isinstance(entity, AuditMixin):
                continue
            entity.stamp_updated(user_id)
            # Read from the instance dict: is_active may be unloaded on attached stubs
            if sa_inspect(entity).dict.get("is_active") is False:
                entity.stamp_deleted(user_id)

    def _pending_counts(self) -> dict[str, Any]:
        return {
            "new": len(self._session.new),
            "dirty": len(self._session.dirty),
            "deleted": len(self._session.deleted),
        }

    async def commit(self, audit_user_id: str | None = None) -> None:
        """
        Persist all pending changes in one transaction.

        With ``audit_user_id`` the audit columns of new, modified and
        disabled AuditMixin rows are stamped first. On failure the session
        is rolled back and the original exception re-raised.
        """
        self._ensure_open("commit")
        if audit_user_id is not None:
            self._stamp_audit(audit_user_id)
        pending = self._pending_counts()
        await safe_commit(self._session)
        logger.debug("Unit of work committed", audit_user=mask_user_id(audit_user_id), **pending)

    async def commit_with_count(self, audit_user_id: str | None = None) -> int:
        """Commit and return the number of entities added, modified or deleted."""
        self._ensure_open("commit")
        session = self._session
        count = (
            len(session.new)
            + len([entity for entity in session.dirty if session.is_modified(entity)])
            + len(session.deleted)
        )
        await self.commit(audit_user_id)
        return count

    async def rollback(self) -> None:
        """Discard pending changes."""
        self._ensure_open("rollback")
        await self._session.rollback()
        logger.debug("Unit of work rolled back")

    async def begin_transaction(self) -> AsyncSessionTransaction | None:
        """
        Begin an explicit transaction.

        Returns the new transaction, or the current one when the session
        already has a transaction in progress.
        """
        self._ensure_open("begin a transaction")
        if self._session.in_transaction():
            return self._session.get_transaction()
        return await self._session.begin()

    # =========================================================================
    # Disposal
    # =========================================================================

    async def close(self) -> None:
        """Close the session; calling again is a no-op."""
        if self._disposed:
            return
        self._disposed = True
        self._repositories.clear()
        self._scoped_services.clear()
        await self._session.close()

    async def __aenter__(self) -> "UnitOfWork":
        self._ensure_open("enter")
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            if exc_type is not None and not self._disposed:
                await self._session.rollback()
        finally:
            await self.close()

    def __repr__(self) -> str:
        state = "closed" if self._disposed else "open"
        return f"<UnitOfWork({state}, repositories={len(self._repositories)})>"

