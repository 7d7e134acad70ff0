"""
Cart grouping — one bucket per seller, first-seen seller order.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from farmsplit._types import SellerId
from farmsplit.money._types import CartBySeller, CartItem


def group_by_seller(items: Iterable[CartItem]) -> CartBySeller:
    """
    Group cart items by seller.

    Sellers keep the order of their first appearance in the cart and items
    keep their cart order within a seller. Every item lands in exactly one
    group, so grouping the same cart twice gives equal results.

    Example:
        grouped = group_by_seller(cart)
        list(grouped)  # ["S1", "S2"]
    """
    buckets: dict[SellerId, list[CartItem]] = {}
    for item in items:
        buckets.setdefault(item.seller_id, []).append(item)
    return {seller_id: tuple(bucket) for seller_id, bucket in buckets.items()}


def cart_subtotal(items: Iterable[CartItem]) -> Decimal:
    """Exact sum of line totals, no rounding."""
    return sum((item.line_total for item in items), Decimal(0))


__all__ = ("group_by_seller", "cart_subtotal")
