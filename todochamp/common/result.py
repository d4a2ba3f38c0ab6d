from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Success(Generic[T]):
    """Outcome of a store operation that completed."""

    data: T


@dataclass(frozen=True, slots=True)
class Failure:
    """Outcome of a store operation that raised or timed out.

    The error is carried as a value so callers never need a try/except around
    repository calls.
    """

    error: Exception


Result = Success[T] | Failure


__all__ = ["Failure", "Result", "Success"]
