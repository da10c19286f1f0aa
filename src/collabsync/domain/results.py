"""
Result types (railway-oriented programming).

Sync operations return ``Success`` or ``Failure`` instead of raising, so a
dropped event never unwinds the caller:

    result = await engine.local_modify(annotation)
    if result.is_failure():
        logger.warning("Modify dropped: %s", result.error)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass
class Success(Generic[T]):
    """Success case with a value."""
    value: T

    def is_success(self) -> bool:
        return True

    def is_failure(self) -> bool:
        return False


@dataclass
class Failure(Generic[E]):
    """Failure case with an error."""
    error: E

    def is_success(self) -> bool:
        return False

    def is_failure(self) -> bool:
        return True


Result = Union[Success[T], Failure[E]]


def success(value: T) -> Success[T]:
    """Create a success result."""
    return Success(value)


def failure(error: E) -> Failure[E]:
    """Create a failure result."""
    return Failure(error)
