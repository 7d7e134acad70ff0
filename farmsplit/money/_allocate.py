"""
Allocation — split checkout-wide costs across sellers.

Pure functions, no I/O:

    from farmsplit import money as M

    partition = M.allocate(
        M.group_by_seller(cart),
        transport_fee=Decimal(80),
        platform_fee_rate=Decimal("0.02"),
        discount_percentage=Decimal(10),
    )

Per seller s:
    subtotal(s)        = Σ quantity × price_per_unit          (exact)
    platform_fee(s)    = round(subtotal(s) × platform_fee_rate)
    discount(s)        = round(subtotal(s) × discount_rate)   (capped at subtotal)
    transport_share(s) = round(transport_fee / seller_count)  (even split)
    total(s)           = subtotal + transport_share + platform_fee − discount

round() is half-up to whole currency units.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from farmsplit._types import SellerId
from farmsplit.money._group import cart_subtotal
from farmsplit.money._types import CartBySeller, CartItem, Partition, SellerAllocation

_UNIT = Decimal("1")
_HUNDRED = Decimal(100)


# ═══════════════════════════════════════════════════════════════════════════════
# Rounding
# ═══════════════════════════════════════════════════════════════════════════════


def round_half_up(amount: Decimal) -> Decimal:
    """Round to a whole currency unit, halves away from zero."""
    return amount.quantize(_UNIT, rounding=ROUND_HALF_UP)


# ═══════════════════════════════════════════════════════════════════════════════
# Per-seller components
# ═══════════════════════════════════════════════════════════════════════════════


def seller_subtotal(items: Iterable[CartItem]) -> Decimal:
    return cart_subtotal(items)


def platform_fee(subtotal: Decimal, rate: Decimal) -> Decimal:
    return round_half_up(subtotal * rate)


def discount_share(subtotal: Decimal, percentage: Decimal) -> Decimal:
    """Rounded discount, never more than the goods it applies to."""
    return min(round_half_up(subtotal * percentage / _HUNDRED), subtotal)


def transport_share(transport_fee: Decimal, seller_count: int) -> Decimal:
    """
    Even split of the flat fee.

    Each share is rounded half-up on its own, so the shares can sum to a
    little over or under the fee: by at most floor(seller_count / 2) units
    either way. The drift is left uncorrected.
    """
    if seller_count < 1:
        raise ValueError("seller_count must be >= 1")
    if seller_count == 1:
        return transport_fee
    return round_half_up(transport_fee / seller_count)


def allocate_seller(
    seller_id: SellerId,
    items: Iterable[CartItem],
    *,
    transport: Decimal,
    platform_fee_rate: Decimal,
    discount_percentage: Decimal,
) -> SellerAllocation:
    subtotal = seller_subtotal(items)
    return SellerAllocation.of(
        seller_id,
        subtotal=subtotal,
        transport_share=transport,
        platform_fee=platform_fee(subtotal, platform_fee_rate),
        discount=discount_share(subtotal, discount_percentage),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# allocate() — the whole cart
# ═══════════════════════════════════════════════════════════════════════════════


def allocate(
    grouped: CartBySeller,
    *,
    transport_fee: Decimal,
    platform_fee_rate: Decimal,
    discount_percentage: Decimal = Decimal(0),
) -> Partition:
    """
    Allocate costs across every seller in `grouped`, in its iteration order.

    Raises ValueError for an empty grouping or out-of-range inputs; callers
    reject empty carts before getting here.
    """
    if not grouped:
        raise ValueError("cannot allocate an empty cart")
    if transport_fee < 0:
        raise ValueError(f"transport_fee must be >= 0, got {transport_fee}")
    if platform_fee_rate < 0:
        raise ValueError(f"platform_fee_rate must be >= 0, got {platform_fee_rate}")
    if not (0 <= discount_percentage <= _HUNDRED):
        raise ValueError(
            f"discount_percentage must be within 0..100, got {discount_percentage}"
        )

    share = transport_share(transport_fee, len(grouped))

    allocations = tuple(
        allocate_seller(
            seller_id,
            items,
            transport=share,
            platform_fee_rate=platform_fee_rate,
            discount_percentage=discount_percentage,
        )
        for seller_id, items in grouped.items()
    )

    return Partition(
        allocations=allocations,
        transport_fee=transport_fee,
        discount_percentage=discount_percentage,
    )


__all__ = (
    "round_half_up",
    "seller_subtotal",
    "platform_fee",
    "discount_share",
    "transport_share",
    "allocate_seller",
    "allocate",
)
