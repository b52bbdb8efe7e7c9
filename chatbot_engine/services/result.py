"""Outcome of a step that may fail without it being exceptional (AI calls, status changes)."""

from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Result(Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str, code: str = "unknown") -> "Result[T]":
        return cls(ok=False, error=error, error_code=code)

    def unwrap_or(self, default: T) -> T:
        return self.value if self.ok else default

    def map(self, func: Callable[[T], U]) -> "Result[U]":
        """Apply ``func`` to a success value; failures pass through with their code."""
        if not self.ok:
            return Result(ok=False, error=self.error, error_code=self.error_code)
        return Result.success(func(self.value))
