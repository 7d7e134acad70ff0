"""
Saga execution — steps one after another, rollback by policy.

Steps run strictly in the order given; nothing runs concurrently, so "the
first success" and the failure list are reproducible for a given input.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import structlog
from kungfu import Error, Ok

from farmsplit.saga._types import (
    CompensatorWithValue,
    SagaReport,
    SagaStep,
    StepOutcome,
)
from farmsplit.saga.policy import (
    AbortPolicy,
    CompensatePolicy,
    ContinuePolicy,
    OnFailurePolicy,
    RetryPolicy,
    SkipPolicy,
)

logger = structlog.get_logger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Recorded Compensator
# ═══════════════════════════════════════════════════════════════════════════════

type RecordedCompensator[T] = tuple[str, T, CompensatorWithValue[T]]

# ═══════════════════════════════════════════════════════════════════════════════
# run_compensators() — Rollback
# ═══════════════════════════════════════════════════════════════════════════════


async def run_compensators[T](
    compensators: Sequence[RecordedCompensator[T]],
    policy: CompensatePolicy,
) -> tuple[frozenset[str], int]:
    """Run compensators newest first. Returns (keys undone, failures)."""
    if isinstance(policy, SkipPolicy):
        return frozenset(), 0

    attempts = policy.times + 1 if isinstance(policy, RetryPolicy) else 1
    undone: set[str] = set()
    failed = 0

    for key, value, comp in reversed(compensators):
        for attempt in range(1, attempts + 1):
            try:
                await comp(value)
            except Exception as exc:
                logger.warning(
                    "Compensation failed",
                    step=key,
                    attempt=attempt,
                    reason=str(exc),
                )
                if attempt < attempts and isinstance(policy, RetryPolicy):
                    await asyncio.sleep(policy.delay.total_seconds())
            else:
                undone.add(key)
                break
        else:
            failed += 1

    return frozenset(undone), failed


# ═══════════════════════════════════════════════════════════════════════════════
# run_each() — Execute steps in order
# ═══════════════════════════════════════════════════════════════════════════════


async def run_each[T, E](
    steps: Sequence[SagaStep[T, E]],
    *,
    on_failure: OnFailurePolicy = ContinuePolicy(),
    compensate: CompensatePolicy = SkipPolicy(),
) -> SagaReport[T, E]:
    """
    Run independent steps sequentially and report every outcome.

    Example:
        from farmsplit import saga as S

        report = await S.run_each([
            S.step("S1", create_order_s1, compensate=cancel_order),
            S.step("S2", create_order_s2, compensate=cancel_order),
        ])

        report.first_value()   # first order id, in step order
        report.failed          # failures, in step order
    """
    if len({s.key for s in steps}) != len(steps):
        raise ValueError("saga step keys must be unique")

    results: dict[str, StepOutcome[T, E]] = {}
    compensators: list[RecordedCompensator[T]] = []
    aborted = False

    for s in steps:
        if aborted:
            results[s.key] = StepOutcome(key=s.key, result=None)
            continue

        result = await s.action
        results[s.key] = StepOutcome(key=s.key, result=result)

        match result:
            case Ok(value):
                if s.compensate is not None:
                    compensators.append((s.key, value, s.compensate))
            case Error(_):
                if isinstance(on_failure, AbortPolicy):
                    logger.info("Aborting remaining steps", failed_step=s.key)
                    aborted = True

    undone: frozenset[str] = frozenset()
    comp_failed = 0
    if any(o.failed for o in results.values()):
        undone, comp_failed = await run_compensators(compensators, compensate)

    outcomes = tuple(
        StepOutcome(key=o.key, result=o.result, compensated=o.key in undone)
        for o in results.values()
    )

    return SagaReport(
        outcomes=outcomes,
        aborted=aborted,
        compensators_run=len(undone),
        compensators_failed=comp_failed,
    )


__all__ = ("run_each", "run_compensators")
