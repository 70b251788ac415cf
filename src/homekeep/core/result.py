# src/homekeep/core/result.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, TypeVar

T = TypeVar("T")


class EmptyReason(StrEnum):
    """Why a lookup produced no value."""

    NO_USER = "no_user"
    MISSING = "missing"
    EXPIRED = "expired"
    CORRUPT = "corrupt"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class Ok(Generic[T]):
    value: T

    def __bool__(self) -> bool:
        return True


@dataclass(slots=True, frozen=True)
class Empty:
    """
    Absent result.

    Best-effort operations never raise; they return Empty with a reason so callers
    that care can tell "nothing cached" from "cache unreadable".
    """

    reason: EmptyReason = EmptyReason.MISSING

    def __bool__(self) -> bool:
        return False


Result = Ok[T] | Empty
