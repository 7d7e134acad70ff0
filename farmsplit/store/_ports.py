"""
Store ports — what checkout needs from the marketplace data store.

Adapters raise StoreError on failure; checkout code lifts calls with
farmsplit.lift.remote so failures and timeouts arrive as Error values.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol

from farmsplit._types import AddressId, BuyerId, OrderId

if TYPE_CHECKING:
    from farmsplit.address._types import AddressRecord
    from farmsplit.coupon._types import CouponRecord
    from farmsplit.order._types import OrderItemRecord, OrderRecord, PersistedOrder


class AddressStore(Protocol):
    async def create_address(self, record: AddressRecord) -> AddressId:
        """Insert the address; a default address demotes the buyer's others."""
        ...

    async def get_address(self, address_id: AddressId) -> AddressRecord | None: ...


class CouponStore(Protocol):
    async def find_active(self, code: str) -> CouponRecord | None:
        """Active coupon stored under exactly `code` (already uppercased)."""
        ...


class OrderStore(Protocol):
    async def create_order(self, record: OrderRecord) -> OrderId:
        """Insert one order row. Raises OrderNumberTaken on a duplicate number."""
        ...

    async def create_order_items(
        self,
        order_id: OrderId,
        items: Sequence[OrderItemRecord],
    ) -> None:
        """Insert all items of one order as a single batch."""
        ...

    async def cancel_order(self, order_id: OrderId) -> None: ...

    async def get_order(self, order_id: OrderId) -> PersistedOrder | None: ...

    async def list_orders(self, buyer_id: BuyerId) -> tuple[PersistedOrder, ...]: ...


class CartStore(Protocol):
    async def clear_cart(self, buyer_id: BuyerId) -> None: ...


class MarketStore(AddressStore, CouponStore, OrderStore, CartStore, Protocol):
    """Everything checkout talks to, behind one object."""


__all__ = (
    "AddressStore",
    "CouponStore",
    "OrderStore",
    "CartStore",
    "MarketStore",
)
