from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest

from farmsplit._types import DeliveryMode
from farmsplit.config import CheckoutConfig


class TestCheckoutConfig:
    def test_defaults(self):
        config = CheckoutConfig()

        assert config.platform_fee_rate == Decimal("0.02")
        assert config.delivery_fee(DeliveryMode.SELLER_DELIVERS) == Decimal(80)
        assert config.delivery_fee(DeliveryMode.BUYER_PICKUP) == Decimal(0)
        assert config.delivery_slots == ("09:00-13:00", "14:00-18:00")
        assert config.timeout_seconds == 10
        assert config.order_number_attempts == 3
        assert not config.void_incomplete_orders

    def test_builders_return_new_config(self):
        base = CheckoutConfig()

        changed = base.with_platform_fee_rate("0.025").with_delivery_fee(
            DeliveryMode.SELLER_DELIVERS, 60
        )

        assert changed.platform_fee_rate == Decimal("0.025")
        assert changed.delivery_fee(DeliveryMode.SELLER_DELIVERS) == Decimal(60)
        assert base.delivery_fee(DeliveryMode.SELLER_DELIVERS) == Decimal(80)

    def test_removed_mode_is_not_offered(self):
        config = CheckoutConfig().without_delivery_mode(DeliveryMode.BUYER_PICKUP)

        assert not config.offers(DeliveryMode.BUYER_PICKUP)
        with pytest.raises(KeyError):
            config.delivery_fee(DeliveryMode.BUYER_PICKUP)

    def test_timeout_can_be_disabled(self):
        assert CheckoutConfig().with_remote_timeout().timeout_seconds is None
        assert CheckoutConfig().with_remote_timeout(
            delta=timedelta(milliseconds=500)
        ).timeout_seconds == 0.5

    def test_invalid_values_rejected(self):
        with pytest.raises(ValueError):
            CheckoutConfig().with_platform_fee_rate("-0.01")
        with pytest.raises(ValueError):
            CheckoutConfig().with_order_number_attempts(0)
        with pytest.raises(ValueError):
            CheckoutConfig().with_delivery_fee(DeliveryMode.BUYER_PICKUP, -1)


class TestFromEnv:
    def test_reads_prefixed_variables(self):
        config = CheckoutConfig.from_env({
            "FARMSPLIT_PLATFORM_FEE_RATE": "0.03",
            "FARMSPLIT_REMOTE_TIMEOUT_SECONDS": "2.5",
            "FARMSPLIT_ORDER_NUMBER_ATTEMPTS": "5",
            "FARMSPLIT_VOID_INCOMPLETE_ORDERS": "yes",
            "FARMSPLIT_DELIVERY_FEE_SELLER_DELIVERS": "100",
        })

        assert config.platform_fee_rate == Decimal("0.03")
        assert config.timeout_seconds == 2.5
        assert config.order_number_attempts == 5
        assert config.void_incomplete_orders
        assert config.delivery_fee(DeliveryMode.SELLER_DELIVERS) == Decimal(100)

    def test_zero_timeout_disables_bound(self):
        config = CheckoutConfig.from_env({"FARMSPLIT_REMOTE_TIMEOUT_SECONDS": "0"})

        assert config.remote_timeout is None

    def test_empty_environment_gives_defaults(self):
        assert CheckoutConfig.from_env({}) == CheckoutConfig()

    def test_custom_prefix(self):
        config = CheckoutConfig.from_env({"SHOP_PLATFORM_FEE_RATE": "0.01"}, prefix="SHOP_")

        assert config.platform_fee_rate == Decimal("0.01")
