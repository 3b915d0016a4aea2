"""
Result type for calls that report failure instead of raising.

Text generation returns a Result so the inbound pipeline and the copilot can
fall back (rule-based reply, no AI suggestion) without try/except at every
call site.
"""

from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")
U = TypeVar("U")

AI_UNAVAILABLE = "ai_unavailable"
AI_TIMEOUT = "ai_timeout"
AI_ERROR = "ai_error"
AI_EMPTY = "ai_empty"


@dataclass
class Result(Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @staticmethod
    def success(value: T) -> "Result[T]":
        return Result(ok=True, value=value)

    @staticmethod
    def failure(error: str, code: str = "unknown") -> "Result[T]":
        return Result(ok=False, error=error, error_code=code)

    def map(self, fn: Callable[[T], U]) -> "Result[U]":
        if not self.ok:
            return Result(ok=False, error=self.error, error_code=self.error_code)
        return Result.success(fn(self.value))

    def ensure(self, predicate: Callable[[T], bool], error: str, code: str) -> "Result[T]":
        """Turn a success whose value fails `predicate` into a failure."""
        if self.ok and not predicate(self.value):
            return Result.failure(error, code)
        return self

    def unwrap_or(self, default: T) -> T:
        return self.value if self.ok else default
