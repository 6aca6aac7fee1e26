"""
Repositories and specifications over an AsyncSession.
"""

from .specifications import (
    Specification,
    AndSpecification,
    OrSpecification,
    NotSpecification,
    ActiveSpecification,
    ProjectedSpecification,
)
from .base import ReadOnlyRepository, Repository
from .registry import RepositoryRegistry, get_repository

__all__ = [
    # Specifications
    "Specification",
    "AndSpecification",
    "OrSpecification",
    "NotSpecification",
    "ActiveSpecification",
    "ProjectedSpecification",
    # Repositories
    "ReadOnlyRepository",
    "Repository",
    "RepositoryRegistry",
    "get_repository",
]
