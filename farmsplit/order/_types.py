"""
Order types — rows written per seller and the stored view read back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from farmsplit._types import (
    AddressId,
    BuyerId,
    DeliveryMode,
    OrderId,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ProductId,
    SellerId,
)

# ═══════════════════════════════════════════════════════════════════════════════
# Records — written once per seller per checkout
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ProductSnapshot:
    """Listing as it looked when ordered."""

    title: str
    image: str | None = None


@dataclass(frozen=True, slots=True)
class OrderRecord:
    order_number: str
    buyer_id: BuyerId
    seller_id: SellerId
    status: OrderStatus
    subtotal: Decimal
    transport_fee: Decimal
    platform_fee: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    delivery_address_id: AddressId
    delivery_mode: DeliveryMode
    delivery_date: date
    delivery_slot: str
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    notes: str = ""
    checkout_token: str | None = None


@dataclass(frozen=True, slots=True)
class OrderItemRecord:
    order_id: OrderId
    product_id: ProductId
    quantity: int
    unit: str
    price_per_unit: Decimal
    line_total: Decimal
    snapshot: ProductSnapshot


# ═══════════════════════════════════════════════════════════════════════════════
# PersistedOrder — read model for downstream tracking
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PersistedOrder:
    id: OrderId
    record: OrderRecord
    items: tuple[OrderItemRecord, ...] = ()
    created_at: datetime = field(default_factory=datetime.now)
    cancelled_at: datetime | None = None

    @property
    def status(self) -> OrderStatus:
        return self.record.status

    @property
    def is_complete(self) -> bool:
        """An order without line items is a leftover of a failed write."""
        return len(self.items) > 0


# ═══════════════════════════════════════════════════════════════════════════════
# Failures
# ═══════════════════════════════════════════════════════════════════════════════


class FailureStage(Enum):
    ORDER_RECORD = "order_record"
    LINE_ITEMS = "line_items"


@dataclass(frozen=True, slots=True)
class PersistFailure:
    """
    One seller's order could not be fully written.

    order_id is set when the order row exists but its items do not
    (stage LINE_ITEMS); such a row has zero items and is not a valid order.
    """

    seller_id: SellerId
    stage: FailureStage
    reason: str
    order_id: OrderId | None = None
    voided: bool = False

    @property
    def is_partial(self) -> bool:
        return self.order_id is not None


__all__ = (
    "ProductSnapshot",
    "OrderRecord",
    "OrderItemRecord",
    "PersistedOrder",
    "FailureStage",
    "PersistFailure",
)
