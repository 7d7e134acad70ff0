"""
SQLAlchemy marketplace store — every checkout port over one async engine.

    session_factory, _ = await create_database(url)
    store = SQLAlchemyMarketStore(session_factory)
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncIterator, Iterable, Sequence
from contextlib import asynccontextmanager
from datetime import datetime

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from farmsplit._types import (
    AddressId,
    BuyerId,
    DeliveryMode,
    OrderId,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from farmsplit.address._types import AddressRecord
from farmsplit.coupon._types import CouponRecord
from farmsplit.db import (
    AddressTable,
    CartItemTable,
    CouponTable,
    OrderItemTable,
    OrderTable,
)
from farmsplit.money._types import CartItem
from farmsplit.order._types import (
    OrderItemRecord,
    OrderRecord,
    PersistedOrder,
    ProductSnapshot,
)
from farmsplit.store._errors import OrderNumberTaken, StoreError

logger = structlog.get_logger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Row ↔ record mapping
# ═══════════════════════════════════════════════════════════════════════════════


def _address_from_row(row: AddressTable) -> AddressRecord:
    return AddressRecord(
        id=row.id,
        buyer_id=row.buyer_id,
        full_name=row.full_name,
        phone=row.phone,
        street=row.street,
        city=row.city,
        district=row.district,
        pincode=row.pincode,
        latitude=row.latitude,
        longitude=row.longitude,
        label=row.label,
        is_default=row.is_default,
    )


def _violates_order_number(exc: IntegrityError) -> bool:
    # SQLite names the column, Postgres the constraint (orders_order_number_key).
    return "order_number" in str(exc.orig)


def _order_to_row(order_id: OrderId, record: OrderRecord) -> OrderTable:
    return OrderTable(
        id=order_id,
        order_number=record.order_number,
        buyer_id=record.buyer_id,
        seller_id=record.seller_id,
        status=record.status.value,
        subtotal=record.subtotal,
        transport_fee=record.transport_fee,
        platform_fee=record.platform_fee,
        discount_amount=record.discount_amount,
        total_amount=record.total_amount,
        delivery_address_id=record.delivery_address_id,
        delivery_mode=record.delivery_mode.value,
        delivery_date=record.delivery_date,
        delivery_slot=record.delivery_slot,
        payment_method=record.payment_method.value,
        payment_status=record.payment_status.value,
        notes=record.notes,
        checkout_token=record.checkout_token,
        created_at=datetime.now(),
    )


def _item_to_row(item: OrderItemRecord) -> OrderItemTable:
    return OrderItemTable(
        order_id=item.order_id,
        product_id=item.product_id,
        quantity=item.quantity,
        unit=item.unit,
        price_per_unit=item.price_per_unit,
        line_total=item.line_total,
        snapshot_title=item.snapshot.title,
        snapshot_image=item.snapshot.image,
    )


def _order_from_row(row: OrderTable) -> PersistedOrder:
    record = OrderRecord(
        order_number=row.order_number,
        buyer_id=row.buyer_id,
        seller_id=row.seller_id,
        status=OrderStatus(row.status),
        subtotal=row.subtotal,
        transport_fee=row.transport_fee,
        platform_fee=row.platform_fee,
        discount_amount=row.discount_amount,
        total_amount=row.total_amount,
        delivery_address_id=row.delivery_address_id,
        delivery_mode=DeliveryMode(row.delivery_mode),
        delivery_date=row.delivery_date,
        delivery_slot=row.delivery_slot,
        payment_method=PaymentMethod(row.payment_method),
        payment_status=PaymentStatus(row.payment_status),
        notes=row.notes,
        checkout_token=row.checkout_token,
    )
    items = tuple(
        OrderItemRecord(
            order_id=item.order_id,
            product_id=item.product_id,
            quantity=item.quantity,
            unit=item.unit,
            price_per_unit=item.price_per_unit,
            line_total=item.line_total,
            snapshot=ProductSnapshot(title=item.snapshot_title, image=item.snapshot_image),
        )
        for item in row.items
    )
    return PersistedOrder(
        id=row.id,
        record=record,
        items=items,
        created_at=row.created_at,
        cancelled_at=row.cancelled_at,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# SQLAlchemyMarketStore
# ═══════════════════════════════════════════════════════════════════════════════


class SQLAlchemyMarketStore:
    """
    Each call runs in its own session and commits on its own: writes for
    different sellers are independent, exactly as checkout expects.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except StoreError:
            raise
        except SQLAlchemyError as e:
            raise StoreError(f"database error: {e}") from e

    # ── seeding ──────────────────────────────────────────────────────────────

    async def add_coupon(self, coupon: CouponRecord) -> None:
        async with self._session() as session:
            session.add(CouponTable(
                code=coupon.code.upper(),
                discount_percentage=coupon.discount_percentage,
                is_active=coupon.is_active,
            ))
            await session.commit()

    async def put_cart(self, buyer_id: BuyerId, items: Iterable[CartItem]) -> None:
        async with self._session() as session:
            await session.execute(delete(CartItemTable).where(CartItemTable.buyer_id == buyer_id))
            session.add_all(
                CartItemTable(
                    buyer_id=buyer_id,
                    product_id=item.product_id,
                    seller_id=item.seller_id,
                    title=item.title,
                    unit=item.unit,
                    price_per_unit=item.price_per_unit,
                    quantity=item.quantity,
                    image=item.image,
                )
                for item in items
            )
            await session.commit()

    async def cart(self, buyer_id: BuyerId) -> tuple[CartItem, ...]:
        async with self._session() as session:
            rows = (
                await session.execute(
                    select(CartItemTable)
                    .where(CartItemTable.buyer_id == buyer_id)
                    .order_by(CartItemTable.id)
                )
            ).scalars()
            return tuple(
                CartItem(
                    product_id=row.product_id,
                    seller_id=row.seller_id,
                    title=row.title,
                    unit=row.unit,
                    price_per_unit=row.price_per_unit,
                    quantity=row.quantity,
                    image=row.image,
                )
                for row in rows
            )

    # ── AddressStore ─────────────────────────────────────────────────────────

    async def create_address(self, record: AddressRecord) -> AddressId:
        address_id = str(uuid.uuid4())
        async with self._session() as session:
            if record.is_default:
                await session.execute(
                    update(AddressTable)
                    .where(AddressTable.buyer_id == record.buyer_id)
                    .values(is_default=False)
                )
            session.add(AddressTable(
                id=address_id,
                buyer_id=record.buyer_id,
                label=record.label,
                full_name=record.full_name,
                phone=record.phone,
                street=record.street,
                city=record.city,
                district=record.district,
                pincode=record.pincode,
                latitude=record.latitude,
                longitude=record.longitude,
                is_default=record.is_default,
            ))
            await session.commit()
        return address_id

    async def get_address(self, address_id: AddressId) -> AddressRecord | None:
        async with self._session() as session:
            row = await session.get(AddressTable, address_id)
            return _address_from_row(row) if row is not None else None

    # ── CouponStore ──────────────────────────────────────────────────────────

    async def find_active(self, code: str) -> CouponRecord | None:
        async with self._session() as session:
            row = (
                await session.execute(
                    select(CouponTable).where(
                        CouponTable.code == code,
                        CouponTable.is_active.is_(True),
                    )
                )
            ).scalar_one_or_none()
            if row is None:
                return None
            return CouponRecord(
                code=row.code,
                discount_percentage=row.discount_percentage,
                is_active=row.is_active,
            )

    # ── OrderStore ───────────────────────────────────────────────────────────

    async def create_order(self, record: OrderRecord) -> OrderId:
        order_id = str(uuid.uuid4())
        async with self._session() as session:
            session.add(_order_to_row(order_id, record))
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                if _violates_order_number(e):
                    raise OrderNumberTaken(record.order_number) from e
                raise StoreError(f"order rejected by database: {e.orig}") from e
        return order_id

    async def create_order_items(
        self,
        order_id: OrderId,
        items: Sequence[OrderItemRecord],
    ) -> None:
        async with self._session() as session:
            if await session.get(OrderTable, order_id) is None:
                raise StoreError(f"order not found: {order_id}")
            session.add_all(_item_to_row(item) for item in items)
            await session.commit()

    async def cancel_order(self, order_id: OrderId) -> None:
        async with self._session() as session:
            row = await session.get(OrderTable, order_id)
            if row is None:
                raise StoreError(f"order not found: {order_id}")
            if row.status == OrderStatus.CANCELLED.value:
                return
            if row.status == OrderStatus.DELIVERED.value:
                raise StoreError(f"order already delivered: {order_id}")
            row.status = OrderStatus.CANCELLED.value
            row.cancelled_at = datetime.now()
            await session.commit()

    async def get_order(self, order_id: OrderId) -> PersistedOrder | None:
        async with self._session() as session:
            row = await session.get(OrderTable, order_id)
            return _order_from_row(row) if row is not None else None

    async def list_orders(self, buyer_id: BuyerId) -> tuple[PersistedOrder, ...]:
        async with self._session() as session:
            rows = (
                await session.execute(
                    select(OrderTable)
                    .where(OrderTable.buyer_id == buyer_id)
                    .order_by(OrderTable.created_at)
                )
            ).scalars()
            return tuple(_order_from_row(row) for row in rows)

    # ── CartStore ────────────────────────────────────────────────────────────

    async def clear_cart(self, buyer_id: BuyerId) -> None:
        async with self._session() as session:
            result = await session.execute(
                delete(CartItemTable).where(CartItemTable.buyer_id == buyer_id)
            )
            await session.commit()
        logger.debug("Cart cleared", buyer_id=buyer_id, rows=result.rowcount)


__all__ = ("SQLAlchemyMarketStore",)
