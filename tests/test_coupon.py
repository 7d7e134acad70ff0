from __future__ import annotations

from decimal import Decimal

from kungfu import Error, Ok

from farmsplit.coupon import REJECTION_MESSAGE, CouponRecord, CouponValidator, normalize_code
from farmsplit.store import Operation


class TestCouponValidator:
    async def test_lowercase_code_resolves_like_uppercase(self, store):
        validator = CouponValidator(store)

        lower = await validator.validate("fresh10")
        upper = await validator.validate("FRESH10")

        assert isinstance(lower, Ok) and isinstance(upper, Ok)
        assert lower.value == upper.value
        assert lower.value.discount_percentage == Decimal(10)

    async def test_notice_names_the_discount(self, store):
        match await CouponValidator(store).validate(" Fresh10 "):
            case Ok(coupon):
                assert coupon.notice == "Coupon applied! 10% off"
            case Error(rejected):
                raise AssertionError(rejected)

    async def test_inactive_code_rejected(self, store):
        result = await CouponValidator(store).validate("old50")

        assert isinstance(result, Error)
        assert result.error.message == REJECTION_MESSAGE

    async def test_unknown_code_rejected(self, store):
        result = await CouponValidator(store).validate("NOPE")

        assert isinstance(result, Error)
        assert result.error.code == "NOPE"

    async def test_blank_code_skips_lookup(self, store):
        result = await CouponValidator(store).validate("   ")

        assert isinstance(result, Error)
        assert store.count(Operation.FIND_COUPON) == 0

    async def test_store_failure_is_a_rejection(self, store):
        store.fail(Operation.FIND_COUPON)

        result = await CouponValidator(store).validate("FRESH10")

        assert isinstance(result, Error)
        assert result.error.message == REJECTION_MESSAGE

    async def test_slow_store_times_out_as_rejection(self, store):
        store.slow(Operation.FIND_COUPON, seconds=0.2)

        result = await CouponValidator(store, timeout=0.05).validate("FRESH10")

        assert isinstance(result, Error)


class TestCouponRecord:
    def test_fractional_notice(self):
        assert CouponRecord("HALF", Decimal("12.50")).notice == "Coupon applied! 12.5% off"

    def test_normalize_code(self):
        assert normalize_code("  summer5 ") == "SUMMER5"
