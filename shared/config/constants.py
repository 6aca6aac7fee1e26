"""
Centralized constants for the data services layer.

Usage:
    from shared.config.constants import Limits, ServiceLifetime

    if len(user_id) > Limits.MAX_AUDIT_USER_ID_LENGTH:
        raise ValueError(...)

    if lifetime == ServiceLifetime.SCOPED:
        ...
"""

from enum import Enum
from typing import Final


# =============================================================================
# Registration
# =============================================================================


class ServiceLifetime(str, Enum):
    """How long a resolved data service instance lives."""

    SINGLETON = "singleton"  # One instance for the whole registry
    SCOPED = "scoped"  # One instance per Unit of Work
    TRANSIENT = "transient"  # New instance on every resolution


class InterceptorTarget(str, Enum):
    """Which generic data services an interceptor applies to."""

    CRUD_AND_READ_ONLY = "crud_and_read_only"
    CRUD = "crud"
    READ_ONLY = "read_only"


# =============================================================================
# Repository kinds
# =============================================================================


class RepositoryKind(str, Enum):
    """Repository capability resolved from a Unit of Work."""

    READ_ONLY = "read_only"
    CRUD = "crud"


# =============================================================================
# Limits
# =============================================================================


class Limits:
    """Validation limits."""

    # Pagination
    MIN_PAGE_NUMBER: Final[int] = 1
    MIN_PAGE_SIZE: Final[int] = 1

    # Audit
    MAX_AUDIT_USER_ID_LENGTH: Final[int] = 255


# =============================================================================
# Query string keys used in page links
# =============================================================================


class PageQueryKeys:
    """Query parameter names used when building page URIs."""

    PAGE_NUMBER: Final[str] = "pageNumber"
    PAGE_SIZE: Final[str] = "pageSize"
