"""
Checkout — from a cart snapshot to one order per seller.

    from farmsplit import checkout as C

    checkout = C.Checkout(store)
    result = await checkout.run(C.CheckoutRequest(buyer_id, items, address, params))
"""

from __future__ import annotations

from farmsplit.checkout._types import (
    CheckoutParameters,
    CheckoutRequest,
    CheckoutState,
    SellerStatus,
    SellerOutcome,
    CheckoutOutcome,
    CheckoutErrorCode,
    CheckoutError,
    CheckoutErrors,
)
from farmsplit.checkout._validate import check_preconditions
from farmsplit.checkout._run import (
    NOTHING_PLACED,
    Checkout,
    CheckoutResult,
    fingerprint,
    summarize,
)

__all__ = (
    "CheckoutParameters",
    "CheckoutRequest",
    "CheckoutState",
    "SellerStatus",
    "SellerOutcome",
    "CheckoutOutcome",
    "CheckoutErrorCode",
    "CheckoutError",
    "CheckoutErrors",
    "check_preconditions",
    "NOTHING_PLACED",
    "Checkout",
    "CheckoutResult",
    "fingerprint",
    "summarize",
)
