from __future__ import annotations

from decimal import Decimal

import pytest

from farmsplit.config import CheckoutConfig
from farmsplit.coupon import CouponRecord
from farmsplit.money import CartItem
from farmsplit.store import MemoryMarketStore
from tests.factories import BUYER, item


@pytest.fixture
def two_seller_cart() -> tuple[CartItem, ...]:
    """S1: 2 × 100, S2: 1 × 50."""
    return (item("S1", 100, 2), item("S2", 50, 1))


@pytest.fixture
def store(two_seller_cart: tuple[CartItem, ...]) -> MemoryMarketStore:
    market = MemoryMarketStore()
    market.add_coupon(CouponRecord("FRESH10", Decimal(10)))
    market.add_coupon(CouponRecord("OLD50", Decimal(50), is_active=False))
    market.put_cart(BUYER, two_seller_cart)
    return market


@pytest.fixture
def config() -> CheckoutConfig:
    return CheckoutConfig().with_remote_timeout(seconds=0.5)
