"""
Marketplace-wide id aliases and enums.
"""

from __future__ import annotations

from enum import Enum


# ═══════════════════════════════════════════════════════════════════════════════
# Identities
# ═══════════════════════════════════════════════════════════════════════════════

type BuyerId = str
type SellerId = str
type ProductId = str
type AddressId = str
type OrderId = str

# ═══════════════════════════════════════════════════════════════════════════════
# Marketplace Enums
# ═══════════════════════════════════════════════════════════════════════════════


class DeliveryMode(Enum):
    """How the goods reach the buyer. Each mode carries a flat fee (see config)."""

    SELLER_DELIVERS = "seller_delivers"
    BUYER_PICKUP = "buyer_pickup"


class PaymentMethod(Enum):
    UPI = "upi"
    CARD = "card"
    COD = "cod"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"

    @classmethod
    def for_method(cls, method: PaymentMethod) -> PaymentStatus:
        """Cash on delivery stays pending until the seller collects it."""
        if method is PaymentMethod.COD:
            return cls.PENDING
        return cls.PAID


class OrderStatus(Enum):
    """
    Order lifecycle as seen by downstream order tracking.

        PENDING → CONFIRMED → IN_TRANSIT → DELIVERED
              ↘ CANCELLED
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    # Identities
    "BuyerId",
    "SellerId",
    "ProductId",
    "AddressId",
    "OrderId",
    # Enums
    "DeliveryMode",
    "PaymentMethod",
    "PaymentStatus",
    "OrderStatus",
)
