"""
Order persistence — one order row plus its line items, per seller.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING

import structlog
from combinators import TimeoutError
from kungfu import Error, LazyCoroResult, Ok, Result

from farmsplit import lift as L
from farmsplit._types import BuyerId, OrderId, OrderStatus, PaymentStatus, SellerId
from farmsplit.money._types import CartItem, SellerAllocation
from farmsplit.order._number import generate_order_number
from farmsplit.order._types import (
    FailureStage,
    OrderItemRecord,
    OrderRecord,
    PersistFailure,
    ProductSnapshot,
)
from farmsplit.store._errors import OrderNumberTaken, StoreError

if TYPE_CHECKING:
    from farmsplit.checkout._types import CheckoutParameters
    from farmsplit.store import OrderStore

logger = structlog.get_logger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Row builders
# ═══════════════════════════════════════════════════════════════════════════════


def build_order_record(
    seller_id: SellerId,
    allocation: SellerAllocation,
    params: CheckoutParameters,
    *,
    buyer_id: BuyerId,
    order_number: str,
    checkout_token: str | None = None,
) -> OrderRecord:
    if params.address_id is None:
        raise ValueError("checkout parameters carry no resolved address id")

    return OrderRecord(
        order_number=order_number,
        buyer_id=buyer_id,
        seller_id=seller_id,
        status=OrderStatus.PENDING,
        subtotal=allocation.subtotal,
        transport_fee=allocation.transport_share,
        platform_fee=allocation.platform_fee,
        discount_amount=allocation.discount,
        total_amount=allocation.total,
        delivery_address_id=params.address_id,
        delivery_mode=params.delivery_mode,
        delivery_date=params.delivery_date,
        delivery_slot=params.delivery_slot,
        payment_method=params.payment_method,
        payment_status=PaymentStatus.for_method(params.payment_method),
        checkout_token=checkout_token,
    )


def build_item_records(
    order_id: OrderId,
    items: Sequence[CartItem],
) -> tuple[OrderItemRecord, ...]:
    return tuple(
        OrderItemRecord(
            order_id=order_id,
            product_id=item.product_id,
            quantity=item.quantity,
            unit=item.unit,
            price_per_unit=item.price_per_unit,
            line_total=item.line_total,
            snapshot=ProductSnapshot(title=item.title, image=item.image),
        )
        for item in items
    )


def describe(exc: Exception) -> str:
    if isinstance(exc, TimeoutError):
        return f"store call timed out after {exc.seconds}s"
    return str(exc) or type(exc).__name__


# ═══════════════════════════════════════════════════════════════════════════════
# OrderPersister
# ═══════════════════════════════════════════════════════════════════════════════


class OrderPersister:
    """
    Writes one seller's order: the order row first, then its items as a batch.

    A failed row write stops there. A failed item write leaves the row behind
    with zero items; that is still reported as this seller's failure, with the
    orphan's id attached (and, when void_incomplete is set, the orphan
    cancelled first).

    Example:
        persister = OrderPersister(store, timeout=10)
        match await persister.create("S1", allocation, items, params, buyer_id="b1"):
            case Ok(order_id): ...
            case Error(failure): ...   # this seller only
    """

    def __init__(
        self,
        store: OrderStore,
        *,
        timeout: float | None = None,
        number_attempts: int = 3,
        void_incomplete: bool = False,
        new_order_number: Callable[[], str] = generate_order_number,
    ) -> None:
        self._store = store
        self._timeout = timeout
        self._number_attempts = number_attempts
        self._void_incomplete = void_incomplete
        self._new_order_number = new_order_number

    def create(
        self,
        seller_id: SellerId,
        allocation: SellerAllocation,
        items: Sequence[CartItem],
        params: CheckoutParameters,
        *,
        buyer_id: BuyerId,
        checkout_token: str | None = None,
    ) -> LazyCoroResult[OrderId, PersistFailure]:
        async def run() -> Result[OrderId, PersistFailure]:
            written = await self._write_order(
                seller_id, allocation, params,
                buyer_id=buyer_id,
                checkout_token=checkout_token,
            )
            match written:
                case Error(failure):
                    return Error(failure)
                case Ok((order_id, order_number)):
                    return await self._write_items(
                        seller_id, order_id, order_number, allocation, items
                    )

        return LazyCoroResult(run)

    async def cancel(self, order_id: OrderId) -> None:
        """
        Mark an order cancelled.

        Raises StoreError when the store refuses or times out, so it can be
        used directly as a saga compensator.
        """
        match await self._remote(lambda: self._store.cancel_order(order_id)):
            case Ok(_):
                logger.info("Order cancelled", order_id=order_id)
            case Error(exc):
                logger.error("Order cancel failed", order_id=order_id, reason=describe(exc))
                raise StoreError(f"could not cancel order {order_id}: {describe(exc)}") from exc

    # ── internals ────────────────────────────────────────────────────────────

    def _remote[T](self, fn: Callable[[], Awaitable[T]]) -> LazyCoroResult[T, Exception]:
        return L.remote(fn, on_error=lambda exc: exc, seconds=self._timeout)

    async def _write_order(
        self,
        seller_id: SellerId,
        allocation: SellerAllocation,
        params: CheckoutParameters,
        *,
        buyer_id: BuyerId,
        checkout_token: str | None,
    ) -> Result[tuple[OrderId, str], PersistFailure]:
        for attempt in range(1, self._number_attempts + 1):
            record = build_order_record(
                seller_id, allocation, params,
                buyer_id=buyer_id,
                order_number=self._new_order_number(),
                checkout_token=checkout_token,
            )
            match await self._remote(lambda: self._store.create_order(record)):
                case Ok(order_id):
                    return Ok((order_id, record.order_number))
                case Error(OrderNumberTaken()):
                    logger.warning(
                        "Order number taken, drawing another",
                        seller_id=seller_id,
                        order_number=record.order_number,
                        attempt=attempt,
                    )
                case Error(exc):
                    reason = describe(exc)
                    logger.error("Order write failed", seller_id=seller_id, reason=reason)
                    return Error(PersistFailure(
                        seller_id=seller_id,
                        stage=FailureStage.ORDER_RECORD,
                        reason=reason,
                    ))

        return Error(PersistFailure(
            seller_id=seller_id,
            stage=FailureStage.ORDER_RECORD,
            reason=f"no unique order number after {self._number_attempts} attempts",
        ))

    async def _write_items(
        self,
        seller_id: SellerId,
        order_id: OrderId,
        order_number: str,
        allocation: SellerAllocation,
        items: Sequence[CartItem],
    ) -> Result[OrderId, PersistFailure]:
        rows = build_item_records(order_id, items)
        match await self._remote(lambda: self._store.create_order_items(order_id, rows)):
            case Ok(_):
                logger.info(
                    "Order created",
                    seller_id=seller_id,
                    order_id=order_id,
                    order_number=order_number,
                    items=len(rows),
                    total=str(allocation.total),
                )
                return Ok(order_id)
            case Error(exc):
                reason = describe(exc)
                logger.error(
                    "Order items write failed; order left without items",
                    seller_id=seller_id,
                    order_id=order_id,
                    reason=reason,
                )
                voided = self._void_incomplete and await self._try_void(order_id)
                return Error(PersistFailure(
                    seller_id=seller_id,
                    stage=FailureStage.LINE_ITEMS,
                    reason=reason,
                    order_id=order_id,
                    voided=voided,
                ))

    async def _try_void(self, order_id: OrderId) -> bool:
        try:
            await self.cancel(order_id)
        except StoreError:
            return False
        return True


__all__ = (
    "OrderPersister",
    "build_order_record",
    "build_item_records",
    "describe",
)
