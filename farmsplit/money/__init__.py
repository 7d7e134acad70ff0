"""
Money — cart grouping and cost allocation.

    from farmsplit import money as M

    grouped = M.group_by_seller(cart)
    partition = M.allocate(grouped, transport_fee=fee, platform_fee_rate=rate)
"""

from __future__ import annotations

from farmsplit.money._types import (
    PRICE_PLACES,
    CartItem,
    CartBySeller,
    SellerAllocation,
    Partition,
)
from farmsplit.money._group import group_by_seller, cart_subtotal
from farmsplit.money._allocate import (
    round_half_up,
    seller_subtotal,
    platform_fee,
    discount_share,
    transport_share,
    allocate_seller,
    allocate,
)

__all__ = (
    "PRICE_PLACES",
    "CartItem",
    "CartBySeller",
    "SellerAllocation",
    "Partition",
    "group_by_seller",
    "cart_subtotal",
    "round_half_up",
    "seller_subtotal",
    "platform_fee",
    "discount_share",
    "transport_share",
    "allocate_seller",
    "allocate",
)
