"""
Coupon — case-insensitive lookup of active discount codes.

    from farmsplit import coupon

    result = await coupon.CouponValidator(store).validate("fresh10")
"""

from __future__ import annotations

from farmsplit.coupon._types import REJECTION_MESSAGE, CouponRecord, CouponRejected
from farmsplit.coupon._validate import CouponValidator, normalize_code

__all__ = (
    "REJECTION_MESSAGE",
    "CouponRecord",
    "CouponRejected",
    "CouponValidator",
    "normalize_code",
)
