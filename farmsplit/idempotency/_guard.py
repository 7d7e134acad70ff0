"""
Idempotent execution — claim a key, run once, replay the outcome.

    from farmsplit import idempotency as I

    result = await I.run_once(
        token,
        lambda: place_orders(request),
        store=I.MemoryStore(),
        policy=I.Policy().with_ttl(hours=24),
    )

    match result:
        case Ok(r) if r.from_cache: ...   # replayed, nothing written
        case Ok(r): ...                   # fresh
        case Error(e): ...                # e.kind tells why
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import structlog
from kungfu import Error, LazyCoroResult, Ok, Result

from farmsplit.idempotency._policy import OnPending, Policy
from farmsplit.idempotency._store import StoreAny, StoreError
from farmsplit.idempotency._types import (
    IdempotencyError,
    IdempotencyErrorKind,
    IdempotencyRecord,
    IdempotencyResult,
)

logger = structlog.get_logger(__name__)


def _store_failure[E](err: StoreError) -> Result[Any, IdempotencyError[E]]:
    return Error(IdempotencyError(IdempotencyErrorKind.STORE_ERROR, err.message))


def _replay[T, E](
    key: str,
    record: IdempotencyRecord[T],
    input_hash: str | None,
) -> Result[IdempotencyResult[T], IdempotencyError[E]]:
    if input_hash and record.input_hash and record.input_hash != input_hash:
        return Error(IdempotencyError(
            IdempotencyErrorKind.INPUT_MISMATCH,
            f"key {key} was already used for a different request",
        ))
    logger.info("Replaying completed attempt", key=key)
    return Ok(IdempotencyResult(value=record.value, from_cache=True, key=key))  # type: ignore[arg-type]


async def _execute[T, E](
    key: str,
    operation: Callable[[], LazyCoroResult[T, E]],
    store: StoreAny,
    policy: Policy,
    cache_if: Callable[[T], bool],
) -> Result[IdempotencyResult[T], IdempotencyError[E]]:
    try:
        result = await operation()
    except Exception:
        await store.delete(key)
        raise

    match result:
        case Ok(value):
            if not cache_if(value):
                await store.delete(key)
                return Ok(IdempotencyResult(value=value, from_cache=False, key=key))

            match await store.set_completed(key, value, policy.result_ttl):
                case Error(err):
                    # The work is done; only the replay is lost.
                    logger.warning("Could not record completed attempt", key=key, reason=err.message)
                case Ok(_):
                    pass
            return Ok(IdempotencyResult(value=value, from_cache=False, key=key))

        case Error(e):
            await store.delete(key)
            return Error(IdempotencyError(
                IdempotencyErrorKind.EXECUTION,
                "operation failed",
                original_error=e,
            ))


async def run_once[T, E](
    key: str,
    operation: Callable[[], LazyCoroResult[T, E]],
    *,
    store: StoreAny,
    policy: Policy = Policy(),
    input_hash: str | None = None,
    cache_if: Callable[[T], bool] = lambda _: True,
) -> Result[IdempotencyResult[T], IdempotencyError[E]]:
    """
    Run `operation` at most once per live `key`.

    - completed record → replay its value (INPUT_MISMATCH if the fingerprint differs)
    - pending record   → wait for it (WAIT) or bounce (FAIL → CONFLICT)
    - no record        → claim, run, then cache the value

    A failed run, or a value rejected by cache_if, releases the key so the
    same request can be retried.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + policy.pending_wait_timeout.total_seconds()

    while True:
        match await store.get(key):
            case Error(err):
                return _store_failure(err)

            case Ok(None):
                match await store.set_pending(key, policy.pending_ttl, input_hash):
                    case Error(err):
                        return _store_failure(err)
                    case Ok(True):
                        return await _execute(key, operation, store, policy, cache_if)
                    case Ok(False):
                        continue  # lost the race, look again

            case Ok(record) if record.is_completed:
                return _replay(key, record, input_hash)

            case Ok(_):
                if policy.conflict_strategy is OnPending.FAIL:
                    return Error(IdempotencyError(
                        IdempotencyErrorKind.CONFLICT,
                        f"key {key} is already being processed",
                    ))
                if loop.time() >= deadline:
                    return Error(IdempotencyError(
                        IdempotencyErrorKind.TIMEOUT,
                        f"gave up waiting for key {key}",
                    ))
                await asyncio.sleep(policy.poll_interval.total_seconds())


__all__ = ("run_once",)
