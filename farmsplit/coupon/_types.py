"""
Coupon types.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

# Note: one message for unknown, inactive and unreachable alike, so a caller
# cannot probe which codes exist.
REJECTION_MESSAGE = "Invalid or expired coupon code"


@dataclass(frozen=True, slots=True)
class CouponRecord:
    """Read-only snapshot of a discount record, fetched once per checkout."""

    code: str
    discount_percentage: Decimal
    is_active: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.discount_percentage, Decimal):
            object.__setattr__(
                self, "discount_percentage", Decimal(str(self.discount_percentage))
            )
        if not (0 <= self.discount_percentage <= 100):
            raise ValueError(
                f"discount_percentage must be within 0..100, got {self.discount_percentage}"
            )

    @property
    def notice(self) -> str:
        return f"Coupon applied! {self.discount_percentage.normalize():f}% off"


@dataclass(frozen=True, slots=True)
class CouponRejected:
    code: str
    message: str = REJECTION_MESSAGE


__all__ = ("REJECTION_MESSAGE", "CouponRecord", "CouponRejected")
