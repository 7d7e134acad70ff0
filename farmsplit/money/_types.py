"""
Money types — cart lines, seller allocations and the full partition.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from farmsplit._types import ProductId, SellerId

PRICE_PLACES = 4
_PRICE_STEP = Decimal(1).scaleb(-PRICE_PLACES)

# ═══════════════════════════════════════════════════════════════════════════════
# CartItem — one cart line, frozen at checkout
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CartItem:
    """
    A cart line as submitted to checkout.

    title/unit/image are a snapshot of the listing; they are copied into the
    order item so later catalog edits do not rewrite history.
    """

    product_id: ProductId
    seller_id: SellerId
    title: str
    unit: str
    price_per_unit: Decimal
    quantity: int
    image: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.price_per_unit, Decimal):
            object.__setattr__(self, "price_per_unit", Decimal(str(self.price_per_unit)))
        if self.price_per_unit < 0:
            raise ValueError(f"price_per_unit must be >= 0, got {self.price_per_unit}")
        if self.price_per_unit.quantize(_PRICE_STEP) != self.price_per_unit:
            raise ValueError(
                f"price_per_unit has more than {PRICE_PLACES} decimal places: {self.price_per_unit}"
            )
        if self.quantity < 1:
            raise ValueError(f"quantity must be >= 1, got {self.quantity}")

    @property
    def line_total(self) -> Decimal:
        return self.price_per_unit * self.quantity


type CartBySeller = Mapping[SellerId, tuple[CartItem, ...]]
"""Seller id → that seller's items, sellers in first-seen order."""

# ═══════════════════════════════════════════════════════════════════════════════
# SellerAllocation — one seller's share of the checkout
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SellerAllocation:
    """
    Invariant: total == subtotal + transport_share + platform_fee - discount >= 0.
    """

    seller_id: SellerId
    subtotal: Decimal
    transport_share: Decimal
    platform_fee: Decimal
    discount: Decimal
    total: Decimal

    def __post_init__(self) -> None:
        expected = self.subtotal + self.transport_share + self.platform_fee - self.discount
        if self.total != expected:
            raise ValueError(
                f"allocation total {self.total} != {expected} for seller {self.seller_id}"
            )
        if self.total < 0:
            raise ValueError(f"allocation total is negative for seller {self.seller_id}")

    @classmethod
    def of(
        cls,
        seller_id: SellerId,
        *,
        subtotal: Decimal,
        transport_share: Decimal,
        platform_fee: Decimal,
        discount: Decimal,
    ) -> SellerAllocation:
        return cls(
            seller_id=seller_id,
            subtotal=subtotal,
            transport_share=transport_share,
            platform_fee=platform_fee,
            discount=discount,
            total=subtotal + transport_share + platform_fee - discount,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Partition — the whole cart, split
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Partition:
    """
    Allocations in seller order plus the checkout-wide figures they came from.

    transport_fee is the nominal fee; sum of shares may fall short of it by up
    to len(allocations) - 1 units.
    """

    allocations: tuple[SellerAllocation, ...]
    transport_fee: Decimal
    discount_percentage: Decimal

    @property
    def seller_ids(self) -> tuple[SellerId, ...]:
        return tuple(a.seller_id for a in self.allocations)

    @property
    def subtotal(self) -> Decimal:
        return sum((a.subtotal for a in self.allocations), Decimal(0))

    @property
    def transport_total(self) -> Decimal:
        return sum((a.transport_share for a in self.allocations), Decimal(0))

    @property
    def platform_fee(self) -> Decimal:
        return sum((a.platform_fee for a in self.allocations), Decimal(0))

    @property
    def discount(self) -> Decimal:
        return sum((a.discount for a in self.allocations), Decimal(0))

    @property
    def grand_total(self) -> Decimal:
        return sum((a.total for a in self.allocations), Decimal(0))

    def for_seller(self, seller_id: SellerId) -> SellerAllocation:
        for allocation in self.allocations:
            if allocation.seller_id == seller_id:
                return allocation
        raise KeyError(seller_id)


__all__ = (
    "PRICE_PLACES",
    "CartItem",
    "CartBySeller",
    "SellerAllocation",
    "Partition",
)
