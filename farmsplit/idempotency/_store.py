"""
Where checkout attempts are kept between submissions.

Every method answers with a Result; backends turn their own exceptions
into StoreError so the guard can decide what a storage fault means.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any, Generic, Protocol, TypeVar

from kungfu import Error, Ok, Result

from farmsplit.idempotency._types import IdempotencyRecord, RecordState, expiry

T = TypeVar("T")


@dataclass(frozen=True)
class StoreError:
    message: str
    cause: Exception | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Protocol
# ═══════════════════════════════════════════════════════════════════════════════


class Store(Protocol[T]):
    """
    Attempt storage.

    set_pending is the claim: it has to be atomic, because two submissions
    of the same token racing through it must not both win.
    """

    async def get(self, key: str) -> Result[IdempotencyRecord[T] | None, StoreError]:
        """Ok(None) when the token is unknown or its record has expired."""
        ...

    async def set_pending(
        self,
        key: str,
        ttl: timedelta | None,
        input_hash: str | None = None,
    ) -> Result[bool, StoreError]:
        """Ok(False) when a live record already holds the token."""
        ...

    async def set_completed(
        self,
        key: str,
        value: T,
        ttl: timedelta | None,
    ) -> Result[None, StoreError]: ...

    async def delete(self, key: str) -> Result[bool, StoreError]: ...


type StoreAny = Store[Any]


# ═══════════════════════════════════════════════════════════════════════════════
# In-process Store
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryStore(Generic[T]):
    """
    Attempts held in a dict behind one lock.

    Scoped to a single process; a second worker would not see these claims.
    """

    def __init__(self) -> None:
        self._attempts: dict[str, IdempotencyRecord[T]] = {}
        self._lock = asyncio.Lock()

    def _live(self, key: str) -> IdempotencyRecord[T] | None:
        record = self._attempts.get(key)
        if record is not None and record.is_expired:
            del self._attempts[key]
            return None
        return record

    async def get(self, key: str) -> Result[IdempotencyRecord[T] | None, StoreError]:
        async with self._lock:
            return Ok(self._live(key))

    async def set_pending(
        self,
        key: str,
        ttl: timedelta | None,
        input_hash: str | None = None,
    ) -> Result[bool, StoreError]:
        async with self._lock:
            if self._live(key) is not None:
                return Ok(False)
            now = datetime.now()
            self._attempts[key] = IdempotencyRecord(
                key=key,
                state=RecordState.PENDING,
                value=None,
                created_at=now,
                expires_at=expiry(ttl, now),
                input_hash=input_hash,
            )
            return Ok(True)

    async def set_completed(
        self,
        key: str,
        value: T,
        ttl: timedelta | None,
    ) -> Result[None, StoreError]:
        async with self._lock:
            claimed = self._attempts.get(key)
            if claimed is None:
                return Error(StoreError(f"Token {key!r} was never claimed"))
            self._attempts[key] = replace(
                claimed,
                state=RecordState.COMPLETED,
                value=value,
                expires_at=expiry(ttl),
            )
            return Ok(None)

    async def delete(self, key: str) -> Result[bool, StoreError]:
        async with self._lock:
            return Ok(self._attempts.pop(key, None) is not None)


__all__ = (
    "StoreError",
    "Store",
    "StoreAny",
    "MemoryStore",
)
