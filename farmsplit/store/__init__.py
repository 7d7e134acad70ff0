"""
Store — ports checkout depends on, plus memory and SQLAlchemy adapters.

    from farmsplit import store

    market = store.MemoryMarketStore()
    market.fail(store.Operation.CREATE_ORDER, seller_id="S2")
"""

from __future__ import annotations

from farmsplit.store._errors import StoreError, OrderNumberTaken
from farmsplit.store._ports import (
    AddressStore,
    CouponStore,
    OrderStore,
    CartStore,
    MarketStore,
)
from farmsplit.store._memory import Operation, Call, MemoryMarketStore
from farmsplit.store._sqlalchemy import SQLAlchemyMarketStore

__all__ = (
    "StoreError",
    "OrderNumberTaken",
    "AddressStore",
    "CouponStore",
    "OrderStore",
    "CartStore",
    "MarketStore",
    "Operation",
    "Call",
    "MemoryMarketStore",
    "SQLAlchemyMarketStore",
)
