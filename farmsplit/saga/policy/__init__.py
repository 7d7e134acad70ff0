"""
Policies for S.run_each, reachable as S.policy.*.

    # default: every seller attempted, written orders stand
    await S.run_each(steps)

    # all-or-nothing checkout
    await S.run_each(
        steps,
        on_failure=S.policy.on_failure.abort(),
        compensate=S.policy.compensate.all_on_failure(),
    )
"""

from __future__ import annotations

from farmsplit.saga.policy._compensate import (
    SkipPolicy,
    AllOnFailurePolicy,
    RetryPolicy,
    CompensatePolicy,
    all_on_failure,
    retry,
    skip,
)
from farmsplit.saga.policy._on_failure import (
    ContinuePolicy,
    AbortPolicy,
    OnFailurePolicy,
    continue_,
    abort,
)


class compensate:
    all_on_failure = staticmethod(all_on_failure)
    retry = staticmethod(retry)
    skip = staticmethod(skip)


class on_failure:
    continue_ = staticmethod(continue_)
    abort = staticmethod(abort)


__all__ = (
    "compensate",
    "on_failure",
    "SkipPolicy",
    "AllOnFailurePolicy",
    "RetryPolicy",
    "CompensatePolicy",
    "ContinuePolicy",
    "AbortPolicy",
    "OnFailurePolicy",
)
