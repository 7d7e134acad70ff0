"""
In-memory marketplace store — for tests and local runs.

Failure injection mirrors a flaky remote store:

    store = MemoryMarketStore()
    store.fail(Operation.CREATE_ORDER, seller_id="S1")          # every time
    store.fail(Operation.CREATE_ORDER_ITEMS, times=1)           # once
    store.slow(Operation.CREATE_ADDRESS, seconds=0.5)           # trip timeouts
"""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

from farmsplit._types import AddressId, BuyerId, OrderId, OrderStatus, SellerId
from farmsplit.address._types import AddressRecord
from farmsplit.coupon._types import CouponRecord
from farmsplit.money._types import CartItem
from farmsplit.order._types import OrderItemRecord, OrderRecord, PersistedOrder
from farmsplit.store._errors import OrderNumberTaken, StoreError

# ═══════════════════════════════════════════════════════════════════════════════
# Failure Injection
# ═══════════════════════════════════════════════════════════════════════════════


class Operation(Enum):
    CREATE_ADDRESS = "create_address"
    FIND_COUPON = "find_active"
    CREATE_ORDER = "create_order"
    CREATE_ORDER_ITEMS = "create_order_items"
    CANCEL_ORDER = "cancel_order"
    CLEAR_CART = "clear_cart"


@dataclass
class _FailureRule:
    operation: Operation
    seller_id: SellerId | None
    remaining: int | None
    message: str

    def matches(self, operation: Operation, seller_id: SellerId | None) -> bool:
        if operation is not self.operation:
            return False
        if self.seller_id is not None and self.seller_id != seller_id:
            return False
        return self.remaining is None or self.remaining > 0

    def consume(self) -> None:
        if self.remaining is not None:
            self.remaining -= 1


@dataclass(frozen=True, slots=True)
class Call:
    operation: Operation
    seller_id: SellerId | None = None
    key: str | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# MemoryMarketStore
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryMarketStore:
    """
    Single-process store implementing every checkout port.

    Nothing survives a restart and one lock guards all state, so it suits
    tests and local runs. fail() and count() script backend faults.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._ids = itertools.count(1)

        self._addresses: dict[AddressId, AddressRecord] = {}
        self._coupons: dict[str, CouponRecord] = {}
        self._orders: dict[OrderId, PersistedOrder] = {}
        self._order_numbers: set[str] = set()
        self._carts: dict[BuyerId, list[CartItem]] = {}

        self._rules: list[_FailureRule] = []
        self._delays: dict[Operation, float] = {}
        self.calls: list[Call] = []

    # ── test controls ────────────────────────────────────────────────────────

    def fail(
        self,
        operation: Operation,
        *,
        seller_id: SellerId | None = None,
        times: int | None = None,
        message: str = "store unavailable",
    ) -> None:
        """Make `operation` raise StoreError, optionally only for one seller / N times."""
        self._rules.append(_FailureRule(operation, seller_id, times, message))

    def slow(self, operation: Operation, *, seconds: float) -> None:
        self._delays[operation] = seconds

    def reset_failures(self) -> None:
        self._rules.clear()
        self._delays.clear()

    def add_coupon(self, coupon: CouponRecord) -> None:
        self._coupons[coupon.code.upper()] = coupon

    def put_cart(self, buyer_id: BuyerId, items: Iterable[CartItem]) -> None:
        self._carts[buyer_id] = list(items)

    def reserve_order_number(self, order_number: str) -> None:
        """Pretend an order with this number already exists."""
        self._order_numbers.add(order_number)

    def cart(self, buyer_id: BuyerId) -> tuple[CartItem, ...]:
        return tuple(self._carts.get(buyer_id, ()))

    def orders(self) -> tuple[PersistedOrder, ...]:
        return tuple(self._orders.values())

    def addresses(self) -> tuple[AddressRecord, ...]:
        return tuple(self._addresses.values())

    def count(self, operation: Operation) -> int:
        return sum(1 for call in self.calls if call.operation is operation)

    # ── AddressStore ─────────────────────────────────────────────────────────

    async def create_address(self, record: AddressRecord) -> AddressId:
        await self._enter(Operation.CREATE_ADDRESS)
        async with self._lock:
            address_id = f"addr-{next(self._ids)}"
            if record.is_default:
                for other_id, other in self._addresses.items():
                    if other.buyer_id == record.buyer_id and other.is_default:
                        self._addresses[other_id] = replace(other, is_default=False)
            self._addresses[address_id] = replace(record, id=address_id)
            return address_id

    async def get_address(self, address_id: AddressId) -> AddressRecord | None:
        async with self._lock:
            return self._addresses.get(address_id)

    # ── CouponStore ──────────────────────────────────────────────────────────

    async def find_active(self, code: str) -> CouponRecord | None:
        await self._enter(Operation.FIND_COUPON, key=code)
        async with self._lock:
            coupon = self._coupons.get(code)
            if coupon is None or not coupon.is_active:
                return None
            return coupon

    # ── OrderStore ───────────────────────────────────────────────────────────

    async def create_order(self, record: OrderRecord) -> OrderId:
        await self._enter(Operation.CREATE_ORDER, seller_id=record.seller_id)
        async with self._lock:
            if record.order_number in self._order_numbers:
                raise OrderNumberTaken(record.order_number)
            order_id = f"ord-{next(self._ids)}"
            self._order_numbers.add(record.order_number)
            self._orders[order_id] = PersistedOrder(id=order_id, record=record)
            return order_id

    async def create_order_items(
        self,
        order_id: OrderId,
        items: Sequence[OrderItemRecord],
    ) -> None:
        order = self._orders.get(order_id)
        await self._enter(
            Operation.CREATE_ORDER_ITEMS,
            seller_id=order.record.seller_id if order else None,
            key=order_id,
        )
        async with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                raise StoreError(f"order not found: {order_id}")
            self._orders[order_id] = replace(order, items=order.items + tuple(items))

    async def cancel_order(self, order_id: OrderId) -> None:
        order = self._orders.get(order_id)
        await self._enter(
            Operation.CANCEL_ORDER,
            seller_id=order.record.seller_id if order else None,
            key=order_id,
        )
        async with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                raise StoreError(f"order not found: {order_id}")
            if order.status is OrderStatus.CANCELLED:
                return
            if order.status is OrderStatus.DELIVERED:
                raise StoreError(f"order already delivered: {order_id}")
            self._orders[order_id] = replace(
                order,
                record=replace(order.record, status=OrderStatus.CANCELLED),
                cancelled_at=datetime.now(),
            )

    async def get_order(self, order_id: OrderId) -> PersistedOrder | None:
        async with self._lock:
            return self._orders.get(order_id)

    async def list_orders(self, buyer_id: BuyerId) -> tuple[PersistedOrder, ...]:
        async with self._lock:
            return tuple(o for o in self._orders.values() if o.record.buyer_id == buyer_id)

    # ── CartStore ────────────────────────────────────────────────────────────

    async def clear_cart(self, buyer_id: BuyerId) -> None:
        await self._enter(Operation.CLEAR_CART, key=buyer_id)
        async with self._lock:
            self._carts.pop(buyer_id, None)

    # ── internals ────────────────────────────────────────────────────────────

    async def _enter(
        self,
        operation: Operation,
        *,
        seller_id: SellerId | None = None,
        key: str | None = None,
    ) -> None:
        self.calls.append(Call(operation, seller_id, key))

        if (delay := self._delays.get(operation)) is not None:
            await asyncio.sleep(delay)

        for rule in self._rules:
            if rule.matches(operation, seller_id):
                rule.consume()
                raise StoreError(rule.message)


__all__ = ("Operation", "Call", "MemoryMarketStore")
