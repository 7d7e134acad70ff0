from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest
from combinators import lift as L
from kungfu import Error, LazyCoroResult, Ok

from farmsplit import idempotency as I
from farmsplit.db import CheckoutAttemptTable, create_database


class Counter:
    """An operation that counts how often it really ran."""

    def __init__(self, value: str = "ord-1", *, delay: float = 0.0, error: str | None = None) -> None:
        self.runs = 0
        self._value = value
        self._delay = delay
        self._error = error

    def __call__(self) -> LazyCoroResult[str, str]:
        async def run():
            self.runs += 1
            if self._delay:
                await asyncio.sleep(self._delay)
            if self._error is not None:
                return Error(self._error)
            return Ok(self._value)

        return LazyCoroResult(run)


FAST_POLL = I.Policy().with_poll_interval(seconds=0.01)


class TestRunOnce:
    async def test_second_run_replays(self):
        store: I.MemoryStore[str] = I.MemoryStore()
        op = Counter()

        first = await I.run_once("tok", op, store=store)
        second = await I.run_once("tok", op, store=store)

        assert isinstance(first, Ok) and isinstance(second, Ok)
        assert not first.value.from_cache
        assert second.value.from_cache
        assert second.value.value == "ord-1"
        assert op.runs == 1

    async def test_concurrent_submit_waits_for_first(self):
        store: I.MemoryStore[str] = I.MemoryStore()
        op = Counter(delay=0.05)

        a, b = await asyncio.gather(
            I.run_once("tok", op, store=store, policy=FAST_POLL),
            I.run_once("tok", op, store=store, policy=FAST_POLL),
        )

        assert isinstance(a, Ok) and isinstance(b, Ok)
        assert a.value.value == b.value.value == "ord-1"
        assert {a.value.from_cache, b.value.from_cache} == {True, False}
        assert op.runs == 1

    async def test_pending_key_conflicts_under_fail(self):
        store: I.MemoryStore[str] = I.MemoryStore()
        await store.set_pending("tok", timedelta(minutes=5))

        result = await I.run_once(
            "tok", Counter(), store=store, policy=I.Policy().with_on_pending(I.FAIL)
        )

        assert isinstance(result, Error)
        assert result.error.kind is I.IdempotencyErrorKind.CONFLICT

    async def test_pending_key_times_out_under_wait(self):
        store: I.MemoryStore[str] = I.MemoryStore()
        await store.set_pending("tok", timedelta(minutes=5))
        op = Counter()

        result = await I.run_once(
            "tok", op, store=store,
            policy=FAST_POLL.with_wait_timeout(seconds=0.05),
        )

        assert isinstance(result, Error)
        assert result.error.kind is I.IdempotencyErrorKind.TIMEOUT
        assert op.runs == 0

    async def test_failed_run_releases_key(self):
        store: I.MemoryStore[str] = I.MemoryStore()

        failed = await I.run_once("tok", Counter(error="S1 down"), store=store)
        retried = await I.run_once("tok", Counter("ord-2"), store=store)

        match failed:
            case Error(err):
                assert err.kind is I.IdempotencyErrorKind.EXECUTION
                assert err.original_error == "S1 down"
            case Ok(_):
                raise AssertionError("expected failure")
        assert retried == Ok(I.IdempotencyResult(value="ord-2", from_cache=False, key="tok"))

    async def test_rejected_value_is_not_cached(self):
        store: I.MemoryStore[str] = I.MemoryStore()
        op = Counter("nothing")

        await I.run_once("tok", op, store=store, cache_if=lambda v: v != "nothing")
        await I.run_once("tok", op, store=store, cache_if=lambda v: v != "nothing")

        assert op.runs == 2

    async def test_reused_key_for_other_input(self):
        store: I.MemoryStore[str] = I.MemoryStore()

        await I.run_once("tok", Counter(), store=store, input_hash="a")
        result = await I.run_once("tok", Counter(), store=store, input_hash="b")

        assert isinstance(result, Error)
        assert result.error.kind is I.IdempotencyErrorKind.INPUT_MISMATCH

    async def test_expired_result_runs_again(self):
        store: I.MemoryStore[str] = I.MemoryStore()
        op = Counter()
        policy = I.Policy().with_ttl(seconds=0.01)

        await I.run_once("tok", op, store=store, policy=policy)
        await asyncio.sleep(0.03)
        await I.run_once("tok", op, store=store, policy=policy)

        assert op.runs == 2

    async def test_exception_releases_key(self):
        store: I.MemoryStore[str] = I.MemoryStore()

        async def explode():
            raise RuntimeError("bug")

        with pytest.raises(RuntimeError):
            await I.run_once("tok", lambda: LazyCoroResult(explode), store=store)

        assert await store.get("tok") == Ok(None)


class TestSQLAlchemyStore:
    @pytest.fixture
    async def store(self):
        session_factory, engine = await create_database()
        yield I.SQLAlchemyStore(
            session_factory,
            model=CheckoutAttemptTable,
            dump=str,
            load=str,
        )
        await engine.dispose()

    async def test_second_claim_loses(self, store):
        assert await store.set_pending("tok", timedelta(minutes=5)) == Ok(True)
        assert await store.set_pending("tok", timedelta(minutes=5)) == Ok(False)

    async def test_replay_through_database(self, store):
        op = Counter("ord-42")

        await I.run_once("tok", op, store=store)
        again = await I.run_once("tok", op, store=store)

        assert isinstance(again, Ok)
        assert again.value.from_cache
        assert again.value.value == "ord-42"
        assert op.runs == 1

    async def test_failure_deletes_claim(self, store):
        await I.run_once("tok", lambda: L.fail("down"), store=store)

        assert await store.get("tok") == Ok(None)
