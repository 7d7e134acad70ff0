"""
Building saga steps.
"""

from __future__ import annotations

from kungfu import LazyCoroResult

from farmsplit.saga._types import CompensatorWithValue, SagaStep


def step[T, E](
    key: str,
    action: LazyCoroResult[T, E],
    compensate: CompensatorWithValue[T] | None = None,
) -> SagaStep[T, E]:
    """
    A step whose action is already a lazy result. Checkout builds one per
    seller, keyed by seller id:

        S.step(seller_id, orders.create(...), compensate=orders.cancel)

    compensate receives the step's Ok value, the created order id here.
    """
    return SagaStep(key=key, action=action, compensate=compensate)


__all__ = ("step",)
