"""
Idempotency — one checkout per token, however many times it is submitted.

    from farmsplit import idempotency as I

    result = await I.run_once(token, lambda: checkout(request), store=I.MemoryStore())
"""

from __future__ import annotations

from farmsplit.idempotency._types import (
    RecordState,
    IdempotencyRecord,
    IdempotencyResult,
    IdempotencyError,
    IdempotencyErrorKind,
)
from farmsplit.idempotency._store import StoreError, Store, StoreAny, MemoryStore
from farmsplit.idempotency._policy import OnPending, WAIT, FAIL, Policy
from farmsplit.idempotency._guard import run_once
from farmsplit.idempotency._sqlalchemy import (
    IdempotencyMixin,
    IdempotencyStatus,
    SQLAlchemyStore,
)

__all__ = (
    "RecordState",
    "IdempotencyRecord",
    "IdempotencyResult",
    "IdempotencyError",
    "IdempotencyErrorKind",
    "StoreError",
    "Store",
    "StoreAny",
    "MemoryStore",
    "OnPending",
    "WAIT",
    "FAIL",
    "Policy",
    "run_once",
    "IdempotencyMixin",
    "IdempotencyStatus",
    "SQLAlchemyStore",
)
