"""
Saga — independent compensable steps, run in order.

    from farmsplit import saga as S

    report = await S.run_each(
        [S.step(seller_id, create_order(seller_id), compensate=cancel) for seller_id in sellers],
        on_failure=S.policy.on_failure.continue_(),
        compensate=S.policy.compensate.skip(),
    )
"""

from __future__ import annotations

from farmsplit.saga._types import (
    CompensatorWithValue,
    SagaStep,
    StepOutcome,
    SagaReport,
)
from farmsplit.saga._step import step
from farmsplit.saga._run import run_each, run_compensators
from farmsplit.saga import policy

__all__ = (
    "CompensatorWithValue",
    "SagaStep",
    "StepOutcome",
    "SagaReport",
    "step",
    "run_each",
    "run_compensators",
    "policy",
)
