"""
Result type returned by every public data service operation.

A ``Result`` holds either a success value or exactly one ``ResultError``.
Faults never cross the data service boundary as exceptions; ``wrap`` and
``wrap_async`` are the single place where they are converted.

Usage:
    result = await service.get(42)
    if result.is_error(NotFoundError):
        ...
    elif result.is_success:
        widget = result.value
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar

from shared.config.logging import get_logger
from shared.utils.exceptions import ResultAccessError

logger = get_logger(__name__)

T = TypeVar("T")


# =============================================================================
# Errors
# =============================================================================


@dataclass(frozen=True)
class ResultError:
    """Base class for errors carried by a failed result."""

    message: str = "An error occurred."

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class NotFoundError(ResultError):
    """The requested entity does not exist."""

    message: str = "Searched-for entity was not found."


@dataclass(frozen=True)
class ArgumentNullError(ResultError):
    """A required argument was None."""

    message: str = ""
    parameter_name: str = ""

    def __post_init__(self) -> None:
        if not self.message:
            object.__setattr__(
                self, "message", f"Value for {self.parameter_name or 'argument'} was null."
            )


@dataclass(frozen=True)
class ExceptionError(ResultError):
    """An unexpected fault, with the original exception preserved."""

    message: str = ""
    exception: BaseException | None = None

    def __post_init__(self) -> None:
        if not self.message:
            text = f"{type(self.exception).__name__}: {self.exception}" if self.exception else "Unknown error."
            object.__setattr__(self, "message", text)

    @classmethod
    def from_exception(cls, exception: BaseException) -> "ExceptionError":
        return cls(exception=exception)


# =============================================================================
# Result
# =============================================================================


class Result(Generic[T]):
    """
    Success/failure wrapper.

    ``Result[None]`` is used for operations that only report success.
    Build instances with ``Result.success`` and ``Result.failure``.
    """

    __slots__ = ("_value", "_error")

    def __init__(self, value: T | None = None, error: ResultError | None = None) -> None:
        if error is not None and value is not None:
            raise ValueError("A result cannot hold both a value and an error")
        self._value = value
        self._error = error

    @classmethod
    def success(cls, value: T | None = None) -> "Result[T]":
        """Create a successful result."""
        return cls(value=value)

    @classmethod
    def failure(cls, error: ResultError) -> "Result[T]":
        """Create a failed result."""
        if error is None:
            raise ValueError("A failed result requires an error")
        return cls(error=error)

    @property
    def is_success(self) -> bool:
        return self._error is None

    @property
    def is_failure(self) -> bool:
        return self._error is not None

    @property
    def error(self) -> ResultError | None:
        return self._error

    @property
    def value(self) -> T:
        """
        The success value.

        Raises:
            ResultAccessError: If the result failed.
        """
        if self._error is not None:
            raise ResultAccessError(self._error)
        return self._value  # type: ignore[return-value]

    def is_defined(self) -> bool:
        """True when the result succeeded and carries a value."""
        return self._error is None and self._value is not None

    def is_error(self, kind: type[ResultError]) -> bool:
        """True when the result failed with an error of the given kind."""
        return isinstance(self._error, kind)

    def value_or(self, default: Any) -> Any:
        """The success value, or ``default`` when the result failed."""
        return default if self._error is not None else self._value

    def __bool__(self) -> bool:
        return self.is_success

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Result):
            return NotImplemented
        return self._value == other._value and self._error == other._error

    def __repr__(self) -> str:
        if self._error is not None:
            return f"Result.failure({self._error!r})"
        return f"Result.success({self._value!r})"


# =============================================================================
# Wrapping combinators
# =============================================================================


def _name_of(func: Callable[..., Any]) -> str:
    return getattr(func, "__qualname__", None) or repr(func)


def wrap(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Result[Any]:
    """
    Call ``func`` and convert its outcome into a result.

    A returned ``Result`` is passed through unchanged; any other return value
    becomes a success; an ``Exception`` becomes an ``ExceptionError``.
    """
    try:
        value = func(*args, **kwargs)
    except Exception as exc:
        logger.error("Operation failed", operation=_name_of(func), exc_info=True)
        return Result.failure(ExceptionError.from_exception(exc))

    if isinstance(value, Result):
        return value
    return Result.success(value)


async def wrap_async(
    func: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any
) -> Result[Any]:
    """
    Await ``func`` and convert its outcome into a result.

    Same rules as ``wrap``. Cancellation is not an error: it is logged and
    ``asyncio.CancelledError`` propagates to the caller.
    """
    try:
        value = func(*args, **kwargs)
        if inspect.isawaitable(value):
            value = await value
    except asyncio.CancelledError:
        logger.warning("Operation cancelled", operation=_name_of(func))
        raise
    except Exception as exc:
        logger.error("Operation failed", operation=_name_of(func), exc_info=True)
        return Result.failure(ExceptionError.from_exception(exc))

    if isinstance(value, Result):
        return value
    return Result.success(value)
