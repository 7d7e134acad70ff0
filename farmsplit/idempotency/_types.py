"""
Checkout-attempt records, keyed by the client's checkout token.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum, auto
from typing import Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E")


# ═══════════════════════════════════════════════════════════════════════════════
# Attempt State
# ═══════════════════════════════════════════════════════════════════════════════


class RecordState(Enum):
    """
    PENDING    a submission holds the token and is placing orders
    COMPLETED  orders were placed; the outcome is replayed to resubmissions

    A failed attempt deletes its record so the buyer can try again. A pending
    record whose owner crashed is reclaimed once it expires.
    """

    PENDING = auto()
    COMPLETED = auto()


def expiry(ttl: timedelta | None, now: datetime | None = None) -> datetime | None:
    if ttl is None:
        return None
    return (now or datetime.now()) + ttl


# ═══════════════════════════════════════════════════════════════════════════════
# Stored Attempt
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class IdempotencyRecord(Generic[T]):
    """
    One checkout attempt as the store sees it.

    input_hash fingerprints the cart, address and parameters that claimed
    the token, so the same token sent with a different cart is refused
    rather than answered with another cart's orders.
    """

    key: str
    state: RecordState
    value: T | None
    created_at: datetime
    expires_at: datetime | None
    input_hash: str | None = None

    @property
    def is_expired(self) -> bool:
        return self.expires_at is not None and self.expires_at < datetime.now()

    @property
    def is_pending(self) -> bool:
        return self.state is RecordState.PENDING

    @property
    def is_completed(self) -> bool:
        return self.state is RecordState.COMPLETED


# ═══════════════════════════════════════════════════════════════════════════════
# Guard Results
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class IdempotencyResult(Generic[T]):
    value: T
    from_cache: bool  # replayed from an earlier submission
    key: str


class IdempotencyErrorKind(Enum):
    CONFLICT = auto()  # token held by an in-flight submission
    TIMEOUT = auto()  # in-flight submission did not finish in time
    STORE_ERROR = auto()
    EXECUTION = auto()  # checkout itself failed; see original_error
    INPUT_MISMATCH = auto()  # token reused for a different cart


@dataclass(frozen=True, slots=True)
class IdempotencyError(Generic[E]):
    kind: IdempotencyErrorKind
    message: str
    original_error: E | None = None


__all__ = (
    "RecordState",
    "IdempotencyRecord",
    "IdempotencyResult",
    "IdempotencyError",
    "IdempotencyErrorKind",
    "expiry",
)
