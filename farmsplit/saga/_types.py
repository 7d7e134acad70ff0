"""
Saga types — core data structures.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from kungfu import Error, LazyCoroResult, Ok, Result

# ═══════════════════════════════════════════════════════════════════════════════
# Compensator — Undo Action
# ═══════════════════════════════════════════════════════════════════════════════

type CompensatorWithValue[T] = Callable[[T], Awaitable[None]]
"""Receives the step's value and undoes it. Raises if it cannot."""

# ═══════════════════════════════════════════════════════════════════════════════
# SagaStep — Single Step with Compensation
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SagaStep[T, E]:
    """
    A keyed step: action + compensator.

    When the action succeeds its compensator is recorded; the compensation
    policy decides whether recorded compensators ever run.
    """

    key: str
    action: LazyCoroResult[T, E]
    compensate: CompensatorWithValue[T] | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Result Types
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class StepOutcome[T, E]:
    """
    What happened to one step.

    result is None when the step never ran (an earlier failure aborted).
    compensated is True when the step succeeded and was later undone.
    """

    key: str
    result: Result[T, E] | None
    compensated: bool = False

    @property
    def attempted(self) -> bool:
        return self.result is not None

    @property
    def succeeded(self) -> bool:
        return isinstance(self.result, Ok) and not self.compensated

    @property
    def failed(self) -> bool:
        return isinstance(self.result, Error)


@dataclass(frozen=True, slots=True)
class SagaReport[T, E]:
    """Outcomes in step order plus rollback bookkeeping."""

    outcomes: tuple[StepOutcome[T, E], ...]
    aborted: bool
    compensators_run: int
    compensators_failed: int

    @property
    def succeeded(self) -> tuple[StepOutcome[T, E], ...]:
        return tuple(o for o in self.outcomes if o.succeeded)

    @property
    def failed(self) -> tuple[StepOutcome[T, E], ...]:
        return tuple(o for o in self.outcomes if o.failed)

    @property
    def rollback_complete(self) -> bool:
        return self.compensators_failed == 0

    def first_value(self) -> T | None:
        """Value of the first step (in step order) that succeeded and stands."""
        for outcome in self.outcomes:
            if outcome.succeeded and isinstance(outcome.result, Ok):
                return outcome.result.value
        return None


__all__ = (
    "CompensatorWithValue",
    "SagaStep",
    "StepOutcome",
    "SagaReport",
)
