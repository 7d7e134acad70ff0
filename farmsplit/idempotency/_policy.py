"""
Token guard settings. Every with_* returns a new Policy.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import timedelta
from enum import Enum, auto


# ═══════════════════════════════════════════════════════════════════════════════
# On Pending — Conflict Resolution Strategy
# ═══════════════════════════════════════════════════════════════════════════════


class OnPending(Enum):
    """
    What to do when a checkout arrives while the same token is in flight.

    WAIT: Poll until the first attempt finishes, return its outcome.
          Use when: the client retries after a network timeout.

    FAIL: Return CONFLICT immediately.
          Use when: a double click should be bounced, not queued.
    """

    WAIT = auto()
    FAIL = auto()


WAIT = OnPending.WAIT
FAIL = OnPending.FAIL


# ═══════════════════════════════════════════════════════════════════════════════
# Policy — Full Configuration
# ═══════════════════════════════════════════════════════════════════════════════


def _span(
    seconds: float | None,
    minutes: float | None,
    hours: float | None,
    delta: timedelta | None,
) -> timedelta | None:
    if delta is not None:
        return delta
    total = (seconds or 0) + (minutes or 0) * 60 + (hours or 0) * 3600
    return timedelta(seconds=total) if total > 0 else None


@dataclass(frozen=True, slots=True)
class Policy:
    """
    How a token guard treats replays and in-flight duplicates.

    A completed checkout is replayed for a day; a submission that finds the
    token in flight waits up to thirty seconds for it.

        Policy().with_on_pending(FAIL).with_ttl(hours=1)
    """

    result_ttl: timedelta | None = timedelta(hours=24)
    # Note: a pending record outlives a crashed attempt only this long.
    pending_ttl: timedelta | None = timedelta(minutes=5)
    conflict_strategy: OnPending = OnPending.WAIT
    pending_wait_timeout: timedelta = timedelta(seconds=30)
    poll_interval: timedelta = timedelta(milliseconds=50)

    def with_ttl(
        self,
        *,
        seconds: float | None = None,
        minutes: float | None = None,
        hours: float | None = None,
        delta: timedelta | None = None,
    ) -> Policy:
        """
        How long a completed outcome is replayed. No arguments: forever.

        Example:
            .with_ttl(hours=24)
            .with_ttl(delta=timedelta(days=7))
        """
        return replace(self, result_ttl=_span(seconds, minutes, hours, delta))

    def with_pending_ttl(
        self,
        *,
        seconds: float | None = None,
        minutes: float | None = None,
        delta: timedelta | None = None,
    ) -> Policy:
        return replace(self, pending_ttl=_span(seconds, minutes, None, delta))

    def with_on_pending(self, strategy: OnPending) -> Policy:
        """
        Example:
            .with_on_pending(I.WAIT)
            .with_on_pending(I.FAIL)
        """
        return replace(self, conflict_strategy=strategy)

    def with_wait_timeout(
        self,
        *,
        seconds: float | None = None,
        delta: timedelta | None = None,
    ) -> Policy:
        """Only applies when on_pending=WAIT."""
        timeout = delta if delta else timedelta(seconds=seconds or 30)
        return replace(self, pending_wait_timeout=timeout)

    def with_poll_interval(
        self,
        *,
        seconds: float | None = None,
        delta: timedelta | None = None,
    ) -> Policy:
        interval = delta if delta else timedelta(seconds=seconds or 0.05)
        return replace(self, poll_interval=interval)


__all__ = (
    "OnPending",
    "WAIT",
    "FAIL",
    "Policy",
)
