"""Typed results for expected, non-exceptional states.

Lookups that legitimately miss (unknown code, answer not posted yet, cooldown
in effect) return an `Outcome` instead of raising. Callers poll on these, so
they are not errors from the caller's point of view.
"""

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class OutcomeKind(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    NOT_READY = "not_ready"
    RATE_LIMITED = "rate_limited"

    def __str__(self) -> str:
        return self.value


class Outcome(BaseModel, Generic[T]):
    kind: OutcomeKind
    value: T | None = None
    message: str | None = None
    # Only set for RATE_LIMITED
    wait_remaining_ms: int | None = None

    @property
    def ok(self) -> bool:
        return self.kind == OutcomeKind.OK

    @classmethod
    def success(cls, value: T | None = None) -> "Outcome[T]":
        return cls(kind=OutcomeKind.OK, value=value)

    @classmethod
    def not_found(cls, message: str) -> "Outcome[T]":
        return cls(kind=OutcomeKind.NOT_FOUND, message=message)

    @classmethod
    def not_ready(cls, message: str) -> "Outcome[T]":
        return cls(kind=OutcomeKind.NOT_READY, message=message)

    @classmethod
    def rate_limited(cls, message: str, wait_remaining_ms: int) -> "Outcome[T]":
        return cls(
            kind=OutcomeKind.RATE_LIMITED,
            message=message,
            wait_remaining_ms=wait_remaining_ms,
        )
