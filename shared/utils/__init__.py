"""
Utilities module: exceptions.
"""

from shared.utils.exceptions import (
    DataServiceException,
    EntityNotFoundError,
    DuplicateTrackingError,
    UnitOfWorkDisposedError,
    ResultAccessError,
    AppException,
    ResourceNotFoundError,
    BadRequestError,
    DatabaseError,
    raise_for_result,
)

__all__ = [
    # library exceptions
    "DataServiceException",
    "EntityNotFoundError",
    "DuplicateTrackingError",
    "UnitOfWorkDisposedError",
    "ResultAccessError",
    # HTTP exceptions
    "AppException",
    "ResourceNotFoundError",
    "BadRequestError",
    "DatabaseError",
    "raise_for_result",
]
