"""
Rollback policies — what happens to sellers' orders that were already
written when another seller's order fails.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True, slots=True)
class SkipPolicy:
    """Written orders stand. Partial checkout is the default."""


@dataclass(frozen=True, slots=True)
class AllOnFailurePolicy:
    """Cancel every written order, newest first, once any seller failed."""


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """
    All-on-failure, but a cancel that raises is tried again.

    times counts retries, so each cancel runs at most times + 1 times.
    """

    times: int
    delay: timedelta

    def __post_init__(self) -> None:
        if self.times < 0:
            raise ValueError("retry times must be >= 0")


type CompensatePolicy = SkipPolicy | AllOnFailurePolicy | RetryPolicy


def skip() -> SkipPolicy:
    return SkipPolicy()


def all_on_failure() -> AllOnFailurePolicy:
    return AllOnFailurePolicy()


def retry(times: int = 3, delay: timedelta = timedelta(seconds=1)) -> RetryPolicy:
    return RetryPolicy(times=times, delay=delay)


__all__ = (
    "SkipPolicy",
    "AllOnFailurePolicy",
    "RetryPolicy",
    "CompensatePolicy",
    "skip",
    "all_on_failure",
    "retry",
)
