"""
Centralized exceptions for consistent error handling.

Two families live here:

- Library exceptions (``DataServiceException``) raised inside repositories and
  the Unit of Work. Data services never let them escape; they are converted to
  ``ExceptionError`` results.
- HTTP exceptions (``AppException``) for API layers that consume data
  services. ``raise_for_result`` turns a failed result into one of them.

Usage:
    from shared.utils.exceptions import EntityNotFoundError, raise_for_result

    raise EntityNotFoundError("Widget", 42)

    @app.get("/widgets/{widget_id}")
    async def get_widget(widget_id: int, service=Depends(widget_service)):
        return raise_for_result(await service.get(widget_id), entity="Widget")
"""

from typing import Any

from fastapi import HTTPException, status

from shared.config.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# Library exceptions
# =============================================================================


class DataServiceException(Exception):
    """Base exception for repository and Unit of Work failures."""

    def __init__(
        self,
        message: str,
        entity: str | None = None,
        operation: str | None = None,
    ) -> None:
        self.entity = entity
        self.operation = operation
        super().__init__(message)


class EntityNotFoundError(DataServiceException):
    """An entity addressed by id does not exist in the store."""

    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(
            f"{entity} with ID {entity_id} not found",
            entity=entity,
            operation="find",
        )
        self.entity_id = entity_id


class DuplicateTrackingError(DataServiceException):
    """Another instance with the same identity is already tracked by the session."""

    def __init__(self, entity: str, identity: Any) -> None:
        super().__init__(
            f"Another {entity} instance with key {identity} is already tracked; "
            "pass swap_attached=True to replace it",
            entity=entity,
            operation="update",
        )
        self.identity = identity


class UnitOfWorkDisposedError(DataServiceException):
    """The Unit of Work was used after it was closed."""

    def __init__(self, operation: str) -> None:
        super().__init__(
            f"Cannot {operation}: the unit of work has been closed",
            operation=operation,
        )


class ResultAccessError(RuntimeError):
    """The value of a failed result was accessed."""

    def __init__(self, error: Any) -> None:
        super().__init__(f"Cannot access the value of a failed result: {error}")
        self.error = error


# =============================================================================
# HTTP exceptions
# =============================================================================


class AppException(HTTPException):
    """
    Base HTTP exception with automatic logging.

    All HTTP exceptions should inherit from this class
    to ensure consistent logging and response format.
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        log_level: str = "warning",
        headers: dict[str, str] | None = None,
        **log_context: Any,
    ):
        # Log the error with context
        log_fn = getattr(logger, log_level, logger.warning)
        log_fn(detail, status_code=status_code, **log_context)

        super().__init__(status_code=status_code, detail=detail, headers=headers)


class ResourceNotFoundError(AppException):
    """
    Entity not found error (404).

    Usage:
        raise ResourceNotFoundError("Widget", 123)
    """

    def __init__(self, entity: str, entity_id: int | str | None = None, **log_context: Any):
        if entity_id is not None:
            detail = f"{entity} with ID {entity_id} not found"
        else:
            detail = f"{entity} not found"

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            log_level="warning",
            entity=entity,
            entity_id=entity_id,
            **log_context,
        )


class BadRequestError(AppException):
    """
    Input validation error (400).

    Usage:
        raise BadRequestError("Value for entry was null", field="entry")
    """

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            log_level="warning",
            **log_context,
        )


class DatabaseError(AppException):
    """
    Unexpected persistence failure (500).

    The original cause is logged, never returned to the client.
    """

    def __init__(self, operation: str | None = None, **log_context: Any):
        detail = f"Failed to {operation}" if operation else "Internal database error"
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            log_level="error",
            operation=operation,
            **log_context,
        )


def raise_for_result(result: Any, entity: str = "Entity", entity_id: Any = None) -> Any:
    """
    Return the value of a successful result or raise the matching HTTP exception.

    NotFoundError -> 404, ArgumentNullError -> 400, anything else -> 500.
    """
    # Import here to avoid circular imports
    from dataservices.results import ArgumentNullError, NotFoundError

    if result.is_success:
        return result.value

    error = result.error
    if isinstance(error, NotFoundError):
        raise ResourceNotFoundError(entity, entity_id)
    if isinstance(error, ArgumentNullError):
        raise BadRequestError(error.message, field=error.parameter_name)
    raise DatabaseError(f"process {entity.lower()}", error=error.message)
