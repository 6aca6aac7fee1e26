"""
Base class and AuditMixin for mapped entities served by data services.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all models."""

    pass


class AuditMixin:
    """
    Mixin providing the soft delete flag and audit trail fields.

    Fields added:
    - is_active: Soft delete flag (False = disabled, True = active)
    - created_at, updated_at, deleted_at: Audit timestamps
    - created_by, updated_by, deleted_by: Audit user ids

    The *_by columns are stamped by ``UnitOfWork.commit(audit_user_id)``;
    a plain commit leaves them untouched.
    """

    # Soft delete flag (False = disabled, True = active)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    # Audit timestamps
    # Python-side defaults keep the values on the instance after flush, so
    # reading them never needs a refresh round-trip.
    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=True
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=_utcnow, nullable=True
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # User tracking
    created_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    deleted_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    def disable(self) -> None:
        """Soft delete: clear the active flag without removing the row."""
        self.is_active = False
        self.deleted_at = datetime.now(timezone.utc)

    def restore(self) -> None:
        """Reactivate a disabled row."""
        self.is_active = True
        self.deleted_at = None
        self.deleted_by = None

    def stamp_created(self, user_id: str) -> None:
        """Set created_by on a new entity."""
        self.created_by = user_id

    def stamp_updated(self, user_id: str) -> None:
        """Set updated_by fields on a modified entity."""
        self.updated_by = user_id
        self.updated_at = datetime.now(timezone.utc)

    def stamp_deleted(self, user_id: str) -> None:
        """Set deleted_by on a disabled entity."""
        self.deleted_by = user_id

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        id_val = getattr(self, "id", None)
        active = "active" if self.is_active is not False else "disabled"
        return f"<{class_name}(id={id_val}, {active})>"


def supports_soft_delete(model: type) -> bool:
    """True when the model carries the ``is_active`` flag."""
    return hasattr(model, "is_active")
