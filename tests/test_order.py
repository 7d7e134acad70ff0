from __future__ import annotations

import itertools
from decimal import Decimal

import pytest
from kungfu import Error, Ok

from farmsplit._types import OrderStatus, PaymentMethod, PaymentStatus
from farmsplit.money import SellerAllocation
from farmsplit.order import (
    FailureStage,
    OrderPersister,
    build_order_record,
    generate_order_number,
    is_order_number,
)
from farmsplit.store import Operation
from tests.factories import BUYER, item, params

ALLOCATION = SellerAllocation.of(
    "S1",
    subtotal=Decimal(200),
    transport_share=Decimal(40),
    platform_fee=Decimal(4),
    discount=Decimal(20),
)
ITEMS = (item("S1", 100, 2, title="Mangoes"),)


def resolved_params(**overrides: object):
    return params(address_id="addr-1", **overrides)


class TestOrderNumber:
    def test_format(self):
        for _ in range(50):
            assert is_order_number(generate_order_number())

    def test_digits_are_clock_tail(self):
        number = generate_order_number(clock=lambda: 1_700_000_123.5, choice=lambda _: "Z")

        assert number == "ORD-123500-ZZZZ"

    def test_rejects_lowercase_suffix(self):
        assert not is_order_number("ORD-123456-ab12")


class TestBuildOrderRecord:
    @pytest.mark.parametrize(
        ("method", "status"),
        [
            (PaymentMethod.COD, PaymentStatus.PENDING),
            (PaymentMethod.UPI, PaymentStatus.PAID),
            (PaymentMethod.CARD, PaymentStatus.PAID),
        ],
    )
    def test_payment_status_follows_method(self, method, status):
        record = build_order_record(
            "S1", ALLOCATION, resolved_params(payment_method=method),
            buyer_id=BUYER, order_number="ORD-000001-AAAA",
        )

        assert record.payment_status is status
        assert record.status is OrderStatus.PENDING

    def test_money_copied_from_allocation(self):
        record = build_order_record(
            "S1", ALLOCATION, resolved_params(),
            buyer_id=BUYER, order_number="ORD-000001-AAAA",
        )

        assert record.total_amount == Decimal(224)
        assert record.transport_fee == Decimal(40)
        assert record.discount_amount == Decimal(20)

    def test_unresolved_address_is_a_programming_error(self):
        with pytest.raises(ValueError):
            build_order_record(
                "S1", ALLOCATION, params(),
                buyer_id=BUYER, order_number="ORD-000001-AAAA",
            )


class TestOrderPersister:
    async def test_creates_order_with_items(self, store):
        result = await OrderPersister(store).create(
            "S1", ALLOCATION, ITEMS, resolved_params(), buyer_id=BUYER
        )

        assert isinstance(result, Ok)
        order = await store.get_order(result.value)
        assert order is not None
        assert order.is_complete
        assert is_order_number(order.record.order_number)
        assert order.items[0].snapshot.title == "Mangoes"
        assert order.items[0].line_total == Decimal(200)

    async def test_order_row_failure(self, store):
        store.fail(Operation.CREATE_ORDER, seller_id="S1")

        result = await OrderPersister(store).create(
            "S1", ALLOCATION, ITEMS, resolved_params(), buyer_id=BUYER
        )

        assert isinstance(result, Error)
        assert result.error.stage is FailureStage.ORDER_RECORD
        assert not result.error.is_partial
        assert store.orders() == ()

    async def test_item_failure_leaves_visible_orphan(self, store):
        store.fail(Operation.CREATE_ORDER_ITEMS)

        result = await OrderPersister(store).create(
            "S1", ALLOCATION, ITEMS, resolved_params(), buyer_id=BUYER
        )

        match result:
            case Error(failure):
                assert failure.stage is FailureStage.LINE_ITEMS
                assert failure.is_partial
                assert not failure.voided
                orphan = await store.get_order(failure.order_id)
                assert orphan is not None
                assert not orphan.is_complete
                assert orphan.status is OrderStatus.PENDING
            case Ok(order_id):
                raise AssertionError(f"unexpected order {order_id}")

    async def test_item_failure_voids_orphan_when_asked(self, store):
        store.fail(Operation.CREATE_ORDER_ITEMS)

        result = await OrderPersister(store, void_incomplete=True).create(
            "S1", ALLOCATION, ITEMS, resolved_params(), buyer_id=BUYER
        )

        assert isinstance(result, Error)
        assert result.error.voided
        orphan = await store.get_order(result.error.order_id)
        assert orphan is not None
        assert orphan.status is OrderStatus.CANCELLED

    async def test_taken_number_is_redrawn(self, store):
        numbers = iter(["ORD-000001-AAAA", "ORD-000002-BBBB"])
        store.reserve_order_number("ORD-000001-AAAA")

        result = await OrderPersister(store, new_order_number=lambda: next(numbers)).create(
            "S1", ALLOCATION, ITEMS, resolved_params(), buyer_id=BUYER
        )

        assert isinstance(result, Ok)
        order = await store.get_order(result.value)
        assert order is not None
        assert order.record.order_number == "ORD-000002-BBBB"
        assert store.count(Operation.CREATE_ORDER) == 2

    async def test_gives_up_after_configured_attempts(self, store):
        store.reserve_order_number("ORD-000001-AAAA")

        result = await OrderPersister(
            store,
            number_attempts=3,
            new_order_number=lambda: "ORD-000001-AAAA",
        ).create("S1", ALLOCATION, ITEMS, resolved_params(), buyer_id=BUYER)

        assert isinstance(result, Error)
        assert "3 attempts" in result.error.reason
        assert store.count(Operation.CREATE_ORDER) == 3

    async def test_timeout_reported_as_failure(self, store):
        store.slow(Operation.CREATE_ORDER, seconds=0.2)

        result = await OrderPersister(store, timeout=0.05).create(
            "S1", ALLOCATION, ITEMS, resolved_params(), buyer_id=BUYER
        )

        assert isinstance(result, Error)
        assert "timed out" in result.error.reason

    async def test_cancel(self, store):
        persister = OrderPersister(store)
        created = await persister.create("S1", ALLOCATION, ITEMS, resolved_params(), buyer_id=BUYER)
        assert isinstance(created, Ok)

        await persister.cancel(created.value)
        await persister.cancel(created.value)  # already cancelled: no-op

        order = await store.get_order(created.value)
        assert order is not None
        assert order.status is OrderStatus.CANCELLED
        assert order.cancelled_at is not None

    async def test_checkout_token_recorded(self, store):
        counter = itertools.count(1)
        persister = OrderPersister(store, new_order_number=lambda: f"ORD-{next(counter):06d}-TTTT")

        result = await persister.create(
            "S1", ALLOCATION, ITEMS, resolved_params(), buyer_id=BUYER, checkout_token="tok-1"
        )

        assert isinstance(result, Ok)
        order = await store.get_order(result.value)
        assert order is not None
        assert order.record.checkout_token == "tok-1"
