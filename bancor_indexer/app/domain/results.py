from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class CallResult(Generic[T]):
    """
    Outcome of a contract call that may revert.

    Adapters never substitute a fallback value themselves; they report
    `reverted=True` and let the caller decide what a failed lookup means.
    """

    value: T | None = None
    reverted: bool = False

    @classmethod
    def ok(cls, value: T) -> "CallResult[T]":
        return cls(value=value, reverted=False)

    @classmethod
    def failed(cls) -> "CallResult[T]":
        return cls(value=None, reverted=True)

    def unwrap_or(self, default: T) -> T:
        if self.reverted or self.value is None:
            return default
        return self.value
