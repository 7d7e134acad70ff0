"""
Order — per-seller order rows, numbering and persistence.

    from farmsplit import order as O

    persister = O.OrderPersister(store)
    result = await persister.create(seller_id, allocation, items, params, buyer_id=buyer)
"""

from __future__ import annotations

from farmsplit.order._types import (
    ProductSnapshot,
    OrderRecord,
    OrderItemRecord,
    PersistedOrder,
    FailureStage,
    PersistFailure,
)
from farmsplit.order._number import (
    ORDER_NUMBER_PATTERN,
    generate_order_number,
    is_order_number,
)
from farmsplit.order._persist import (
    OrderPersister,
    build_order_record,
    build_item_records,
)

__all__ = (
    "ProductSnapshot",
    "OrderRecord",
    "OrderItemRecord",
    "PersistedOrder",
    "FailureStage",
    "PersistFailure",
    "ORDER_NUMBER_PATTERN",
    "generate_order_number",
    "is_order_number",
    "OrderPersister",
    "build_order_record",
    "build_item_records",
)
