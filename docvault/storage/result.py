"""
Typed outcome of a single backend call.
"""
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")

DURABLE = "durable"
VOLATILE = "volatile"


@dataclass(frozen=True)
class BackendResult(Generic[T]):
    """
    Success or failure of one backend call, plus which backend answered.

    Example:
        >>> result = BackendResult.failure("connection refused")
        >>> result.ok
        False
    """
    ok: bool
    source: str
    value: Optional[T] = None
    reason: Optional[str] = None

    @classmethod
    def success(cls, value: T, source: str = DURABLE) -> "BackendResult[T]":
        return cls(ok=True, source=source, value=value)

    @classmethod
    def failure(cls, reason: str, source: str = DURABLE) -> "BackendResult[T]":
        return cls(ok=False, source=source, reason=reason)

    @property
    def from_volatile(self) -> bool:
        return self.source == VOLATILE
