from __future__ import annotations

from decimal import Decimal

import pytest
from kungfu import Error, Ok

from farmsplit import idempotency as I
from farmsplit import saga as S
from farmsplit._types import DeliveryMode, OrderStatus, PaymentMethod, PaymentStatus
from farmsplit.checkout import (
    NOTHING_PLACED,
    Checkout,
    CheckoutErrorCode,
    CheckoutOutcome,
    CheckoutState,
    SellerStatus,
    check_preconditions,
    fingerprint,
)
from farmsplit.config import CheckoutConfig
from farmsplit.order import FailureStage
from farmsplit.store import Operation
from tests.factories import BUYER, draft, item, request


def outcome_of(result) -> CheckoutOutcome:
    match result:
        case Ok(outcome):
            return outcome
        case Error(err):
            raise AssertionError(f"checkout rejected: {err}")


class TestPreconditions:
    def test_empty_cart(self, config):
        result = check_preconditions(request([]), config)

        assert isinstance(result, Error)
        assert result.error.code is CheckoutErrorCode.EMPTY_CART

    def test_missing_address_fields(self, config, two_seller_cart):
        result = check_preconditions(
            request(two_seller_cart, address=draft(full_name="", city="")), config
        )

        assert isinstance(result, Error)
        assert result.error.code is CheckoutErrorCode.INCOMPLETE_ADDRESS
        assert result.error.fields == ("full_name", "city")

    def test_pinned_address_needs_location(self, config, two_seller_cart):
        result = check_preconditions(
            request(two_seller_cart, address=draft(latitude=None, longitude=None)), config
        )

        assert isinstance(result, Error)
        assert result.error.code is CheckoutErrorCode.MISSING_LOCATION

    def test_typed_address_needs_no_location(self, config, two_seller_cart):
        result = check_preconditions(
            request(two_seller_cart, address=draft(latitude=None, longitude=None, from_pin=False)),
            config,
        )

        assert result == Ok(None)

    def test_blank_saved_address(self, config, two_seller_cart):
        result = check_preconditions(request(two_seller_cart, address=" "), config)

        assert isinstance(result, Error)
        assert result.error.code is CheckoutErrorCode.INCOMPLETE_ADDRESS

    def test_unknown_slot(self, config, two_seller_cart):
        result = check_preconditions(
            request(two_seller_cart, delivery_slot="22:00-23:00"), config
        )

        assert isinstance(result, Error)
        assert result.error.code is CheckoutErrorCode.INVALID_DELIVERY

    def test_mode_not_offered(self, config, two_seller_cart):
        config = config.without_delivery_mode(DeliveryMode.BUYER_PICKUP)

        result = check_preconditions(
            request(two_seller_cart, delivery_mode=DeliveryMode.BUYER_PICKUP), config
        )

        assert isinstance(result, Error)
        assert result.error.code is CheckoutErrorCode.INVALID_DELIVERY


class TestCheckoutHappyPath:
    async def test_two_sellers_with_coupon(self, store, config, two_seller_cart):
        checkout = Checkout(store, config=config)

        outcome = outcome_of(
            await checkout.run(request(two_seller_cart, coupon_code="fresh10"))
        )

        assert outcome.state is CheckoutState.COMPLETED
        assert outcome.message == "All 2 orders placed successfully!"
        assert outcome.coupon_code == "FRESH10"
        assert outcome.coupon_notice == "Coupon applied! 10% off"
        assert [s.allocation.total for s in outcome.sellers] == [Decimal(224), Decimal(86)]
        assert outcome.grand_total == Decimal(310)
        assert outcome.cart_cleared
        assert store.cart(BUYER) == ()

        orders = store.orders()
        assert [o.record.seller_id for o in orders] == ["S1", "S2"]
        assert all(o.record.delivery_address_id == outcome.address_id for o in orders)
        assert all(o.is_complete for o in orders)
        assert outcome.first_order_id == orders[0].id

    async def test_single_seller_message(self, store, config):
        outcome = outcome_of(
            await Checkout(store, config=config).run(request([item("S1", 40, 2)]))
        )

        assert outcome.message == "Order placed successfully!"
        assert outcome.sellers[0].allocation.transport_share == Decimal(80)

    async def test_saved_address_is_reused(self, store, config, two_seller_cart):
        outcome = outcome_of(
            await Checkout(store, config=config).run(request(two_seller_cart, address="addr-99"))
        )

        assert outcome.address_id == "addr-99"
        assert store.count(Operation.CREATE_ADDRESS) == 0

    async def test_pickup_has_no_transport(self, store, config, two_seller_cart):
        outcome = outcome_of(
            await Checkout(store, config=config).run(
                request(two_seller_cart, delivery_mode=DeliveryMode.BUYER_PICKUP)
            )
        )

        assert all(s.allocation.transport_share == 0 for s in outcome.sellers)

    async def test_cash_on_delivery_is_unpaid(self, store, config, two_seller_cart):
        await Checkout(store, config=config).run(
            request(two_seller_cart, payment_method=PaymentMethod.COD)
        )

        assert {o.record.payment_status for o in store.orders()} == {PaymentStatus.PENDING}

    async def test_rejected_coupon_does_not_block(self, store, config, two_seller_cart):
        outcome = outcome_of(
            await Checkout(store, config=config).run(request(two_seller_cart, coupon_code="old50"))
        )

        assert outcome.state is CheckoutState.COMPLETED
        assert outcome.coupon_code is None
        assert outcome.coupon_notice == "Invalid or expired coupon code"
        assert outcome.discount_percentage == 0
        assert sum(s.allocation.discount for s in outcome.sellers) == 0


class TestCheckoutFailures:
    async def test_precondition_failure_makes_no_calls(self, store, config):
        result = await Checkout(store, config=config).run(request([]))

        assert isinstance(result, Error)
        assert result.error.code is CheckoutErrorCode.EMPTY_CART
        assert store.calls == []

    async def test_address_failure_creates_no_orders(self, store, config, two_seller_cart):
        store.fail(Operation.CREATE_ADDRESS)

        result = await Checkout(store, config=config).run(request(two_seller_cart))

        assert isinstance(result, Error)
        assert result.error.code is CheckoutErrorCode.ADDRESS_FAILED
        assert result.error.message == "Failed to save delivery address."
        assert store.count(Operation.CREATE_ORDER) == 0
        assert store.cart(BUYER) == two_seller_cart

    async def test_one_seller_fails_other_succeeds(self, store, config, two_seller_cart):
        store.fail(Operation.CREATE_ORDER, seller_id="S1")

        outcome = outcome_of(await Checkout(store, config=config).run(request(two_seller_cart)))

        assert outcome.state is CheckoutState.COMPLETED
        assert [s.status for s in outcome.sellers] == [SellerStatus.FAILED, SellerStatus.CREATED]
        assert outcome.message == "1 of 2 seller orders placed; 1 failed."
        assert outcome.first_order_id == outcome.sellers[1].order_id
        assert outcome.cart_cleared
        assert store.cart(BUYER) == ()

    async def test_all_sellers_fail_keeps_cart(self, store, config, two_seller_cart):
        store.fail(Operation.CREATE_ORDER)

        outcome = outcome_of(await Checkout(store, config=config).run(request(two_seller_cart)))

        assert outcome.state is CheckoutState.FAILED
        assert outcome.message == NOTHING_PLACED
        assert outcome.first_order_id is None
        assert not outcome.cart_cleared
        assert store.count(Operation.CLEAR_CART) == 0
        assert store.cart(BUYER) == two_seller_cart

    async def test_item_failure_counts_as_seller_failure(self, store, config, two_seller_cart):
        store.fail(Operation.CREATE_ORDER_ITEMS, seller_id="S2")

        outcome = outcome_of(await Checkout(store, config=config).run(request(two_seller_cart)))

        s2 = outcome.sellers[1]
        assert s2.status is SellerStatus.FAILED
        assert s2.failure is not None
        assert s2.failure.stage is FailureStage.LINE_ITEMS
        orphan = await store.get_order(s2.failure.order_id)
        assert orphan is not None
        assert not orphan.is_complete

    async def test_cart_clear_failure_keeps_orders(self, store, config, two_seller_cart):
        store.fail(Operation.CLEAR_CART)

        outcome = outcome_of(await Checkout(store, config=config).run(request(two_seller_cart)))

        assert outcome.state is CheckoutState.COMPLETED
        assert not outcome.cart_cleared
        assert len(store.orders()) == 2


class TestAllOrNothing:
    @pytest.fixture
    def checkout(self, store, config) -> Checkout:
        return Checkout(
            store,
            config=config,
            on_failure=S.policy.on_failure.abort(),
            compensate=S.policy.compensate.all_on_failure(),
        )

    async def test_later_failure_cancels_earlier_orders(self, store, checkout):
        cart = (item("S1", 10), item("S2", 20), item("S3", 30))
        store.fail(Operation.CREATE_ORDER, seller_id="S2")

        outcome = outcome_of(await checkout.run(request(cart)))

        assert [s.status for s in outcome.sellers] == [
            SellerStatus.CANCELLED,
            SellerStatus.FAILED,
            SellerStatus.NOT_ATTEMPTED,
        ]
        assert outcome.state is CheckoutState.FAILED
        assert not outcome.cart_cleared
        assert [o.status for o in store.orders()] == [OrderStatus.CANCELLED]

    async def test_success_is_untouched(self, store, checkout, two_seller_cart):
        outcome = outcome_of(await checkout.run(request(two_seller_cart)))

        assert outcome.state is CheckoutState.COMPLETED
        assert store.count(Operation.CANCEL_ORDER) == 0

    async def test_abort_without_rollback_keeps_cart(self, store, config):
        cart = (item("S1", 10), item("S2", 20), item("S3", 30))
        store.put_cart(BUYER, cart)
        store.fail(Operation.CREATE_ORDER, seller_id="S2")
        checkout = Checkout(store, config=config, on_failure=S.policy.on_failure.abort())

        outcome = outcome_of(await checkout.run(request(cart)))

        assert [s.status for s in outcome.sellers] == [
            SellerStatus.CREATED,
            SellerStatus.FAILED,
            SellerStatus.NOT_ATTEMPTED,
        ]
        assert outcome.state is CheckoutState.COMPLETED
        assert outcome.message == (
            "1 of 3 seller orders placed; 1 failed; 1 not attempted. Your cart has been kept."
        )
        assert not outcome.cart_cleared
        assert store.count(Operation.CLEAR_CART) == 0
        assert store.cart(BUYER) == cart


class TestCheckoutToken:
    @pytest.fixture
    def checkout(self, store, config) -> Checkout:
        return Checkout(store, config=config, attempts=I.MemoryStore())

    async def test_resubmission_replays_without_writes(self, store, checkout, two_seller_cart):
        first = outcome_of(await checkout.run(request(two_seller_cart, token="tok-1")))
        writes = store.count(Operation.CREATE_ORDER)

        second = outcome_of(await checkout.run(request(two_seller_cart, token="tok-1")))

        assert second == first
        assert store.count(Operation.CREATE_ORDER) == writes == 2
        assert len(store.orders()) == 2

    async def test_failed_attempt_can_be_retried(self, store, checkout, two_seller_cart):
        store.fail(Operation.CREATE_ORDER, times=2)

        failed = outcome_of(await checkout.run(request(two_seller_cart, token="tok-1")))
        retried = outcome_of(await checkout.run(request(two_seller_cart, token="tok-1")))

        assert failed.state is CheckoutState.FAILED
        assert retried.state is CheckoutState.COMPLETED
        assert len(store.orders()) == 2

    async def test_rejected_attempt_releases_token(self, store, checkout, two_seller_cart):
        store.fail(Operation.CREATE_ADDRESS, times=1)

        first = await checkout.run(request(two_seller_cart, token="tok-1"))
        second = await checkout.run(request(two_seller_cart, token="tok-1"))

        assert isinstance(first, Error)
        assert first.error.code is CheckoutErrorCode.ADDRESS_FAILED
        assert isinstance(second, Ok)

    async def test_token_reused_for_different_cart(self, store, checkout, two_seller_cart):
        await checkout.run(request(two_seller_cart, token="tok-1"))

        result = await checkout.run(request([item("S9", 5)], token="tok-1"))

        assert isinstance(result, Error)
        assert result.error.code is CheckoutErrorCode.DUPLICATE_CHECKOUT

    async def test_in_flight_token_conflicts(self, store, config, two_seller_cart):
        attempts: I.MemoryStore[CheckoutOutcome] = I.MemoryStore()
        await attempts.set_pending("tok-1", None)
        checkout = Checkout(
            store,
            config=config,
            attempts=attempts,
            attempt_policy=I.Policy().with_on_pending(I.FAIL),
        )

        result = await checkout.run(request(two_seller_cart, token="tok-1"))

        assert isinstance(result, Error)
        assert result.error.code is CheckoutErrorCode.DUPLICATE_CHECKOUT
        assert store.count(Operation.CREATE_ORDER) == 0

    def test_fingerprint_ignores_token(self, two_seller_cart):
        assert fingerprint(request(two_seller_cart, token="a")) == fingerprint(
            request(two_seller_cart, token="b")
        )


class TestOutcomeSerialization:
    async def test_json_round_trip(self, store, config, two_seller_cart):
        store.fail(Operation.CREATE_ORDER_ITEMS, seller_id="S2")
        outcome = outcome_of(
            await Checkout(store, config=config).run(
                request(two_seller_cart, coupon_code="FRESH10", token="tok-9")
            )
        )

        assert CheckoutOutcome.from_json(outcome.to_json()) == outcome


class TestCheckoutConfigWiring:
    async def test_void_incomplete_orders(self, store, two_seller_cart):
        store.fail(Operation.CREATE_ORDER_ITEMS, seller_id="S1")
        checkout = Checkout(store, config=CheckoutConfig().with_void_incomplete_orders())

        outcome = outcome_of(await checkout.run(request(two_seller_cart)))

        failure = outcome.sellers[0].failure
        assert failure is not None and failure.voided

    async def test_slow_store_times_out(self, store, two_seller_cart):
        store.slow(Operation.CREATE_ADDRESS, seconds=0.2)
        checkout = Checkout(store, config=CheckoutConfig().with_remote_timeout(seconds=0.05))

        result = await checkout.run(request(two_seller_cart))

        assert isinstance(result, Error)
        assert result.error.code is CheckoutErrorCode.ADDRESS_FAILED
