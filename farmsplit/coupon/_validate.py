"""
Coupon validation against the coupon store.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from kungfu import Error, LazyCoroResult, Ok, Result

from farmsplit import lift as L
from farmsplit.coupon._types import CouponRecord, CouponRejected

if TYPE_CHECKING:
    from farmsplit.store import CouponStore

logger = structlog.get_logger(__name__)


def normalize_code(code: str) -> str:
    """Codes are stored uppercase; lookups ignore case and surrounding blanks."""
    return code.strip().upper()


class CouponValidator:
    """
    Turns a buyer-entered code into an applied coupon or a rejection.

    Rejection never aborts checkout: the caller proceeds with no discount and
    shows the rejection message.

    Example:
        validator = CouponValidator(store, timeout=10)
        match await validator.validate("fresh10"):
            case Ok(coupon):
                notice = coupon.notice
            case Error(rejected):
                notice = rejected.message
    """

    def __init__(self, store: CouponStore, *, timeout: float | None = None) -> None:
        self._store = store
        self._timeout = timeout

    def validate(self, code: str) -> LazyCoroResult[CouponRecord, CouponRejected]:
        normalized = normalize_code(code)

        async def run() -> Result[CouponRecord, CouponRejected]:
            if not normalized:
                return Error(CouponRejected(code=normalized))

            lookup = L.remote(
                lambda: self._store.find_active(normalized),
                on_error=lambda exc: exc,
                seconds=self._timeout,
            )

            match await lookup:
                case Ok(CouponRecord(is_active=True) as record):
                    logger.info(
                        "Coupon applied",
                        code=record.code,
                        discount_percentage=str(record.discount_percentage),
                    )
                    return Ok(record)
                case Ok(_):
                    logger.info("Coupon rejected", code=normalized)
                    return Error(CouponRejected(code=normalized))
                case Error(exc):
                    logger.warning("Coupon lookup failed", code=normalized, reason=str(exc))
                    return Error(CouponRejected(code=normalized))

        return LazyCoroResult(run)


__all__ = ("CouponValidator", "normalize_code")
