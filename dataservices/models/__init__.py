"""
Declarative base and mixins for entities served by data services.
"""

from .base import Base, AuditMixin, supports_soft_delete

__all__ = [
    "Base",
    "AuditMixin",
    "supports_soft_delete",
]
