"""
Lifting store calls into results.

Store adapters raise; checkout code wants LazyCoroResult. remote() is the
bridge every component uses, with an optional deadline.

    from farmsplit import lift as L

    saved = await L.remote(
        lambda: store.create_address(record),
        on_error=lambda e: AddressError(str(e)),
        seconds=config.store_timeout,
    )
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from combinators import TimeoutError, timeout
from combinators.lift import catching_async, fail, pure
from kungfu import Error, LazyCoroResult, Ok, Result


def remote[T, E](
    fn: Callable[[], Awaitable[T]],
    *,
    on_error: Callable[[Exception], E],
    seconds: float | None = None,
) -> LazyCoroResult[T, E]:
    """
    Run fn, mapping a raised exception through on_error.

    With seconds set, overrunning the deadline is mapped the same way; the
    exception handed to on_error is then a combinators.TimeoutError.
    """
    op = catching_async(fn, on_error=on_error)
    if seconds is None:
        return op

    bounded = timeout(op, seconds=seconds)

    async def _run() -> Result[T, E]:
        match await bounded:
            case Ok(value):
                return Ok(value)
            case Error(TimeoutError() as exc):
                return Error(on_error(exc))
            case Error(err):
                return Error(err)

    return LazyCoroResult(_run)


__all__ = ("pure", "fail", "catching_async", "remote")
