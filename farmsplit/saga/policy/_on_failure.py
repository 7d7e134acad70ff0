"""
Failure policies — whether the sellers after a failed one still get their
orders written.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ContinuePolicy:
    """Every seller is attempted; failures are independent."""


@dataclass(frozen=True, slots=True)
class AbortPolicy:
    """Stop at the first failed seller. Later sellers report NOT_ATTEMPTED."""


type OnFailurePolicy = ContinuePolicy | AbortPolicy


def continue_() -> ContinuePolicy:
    return ContinuePolicy()


def abort() -> AbortPolicy:
    return AbortPolicy()


__all__ = ("ContinuePolicy", "AbortPolicy", "OnFailurePolicy", "continue_", "abort")
