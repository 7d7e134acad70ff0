"""
Checkout configuration — fees, slots and remote-call limits.

Fluent builder pattern, same as idempotency.Policy:

    config = (
        CheckoutConfig()
        .with_platform_fee_rate("0.025")
        .with_delivery_fee(DeliveryMode.SELLER_DELIVERS, 60)
        .with_remote_timeout(seconds=5)
    )

Or from the environment:

    config = CheckoutConfig.from_env()   # FARMSPLIT_* variables
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import timedelta
from decimal import Decimal

from farmsplit._types import DeliveryMode

# ═══════════════════════════════════════════════════════════════════════════════
# Defaults
# ═══════════════════════════════════════════════════════════════════════════════

DEFAULT_PLATFORM_FEE_RATE = Decimal("0.02")

DEFAULT_DELIVERY_FEES: Mapping[DeliveryMode, Decimal] = {
    DeliveryMode.SELLER_DELIVERS: Decimal("80"),
    DeliveryMode.BUYER_PICKUP: Decimal("0"),
}

DEFAULT_DELIVERY_SLOTS = ("09:00-13:00", "14:00-18:00")

ENV_PREFIX = "FARMSPLIT_"

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _as_decimal(value: Decimal | int | str) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


# ═══════════════════════════════════════════════════════════════════════════════
# CheckoutConfig
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CheckoutConfig:
    """
    Checkout-wide parameters.

    Note: Immutable — each with_* method returns a new config.
    """

    platform_fee_rate: Decimal = DEFAULT_PLATFORM_FEE_RATE
    delivery_fees: Mapping[DeliveryMode, Decimal] = field(
        default_factory=lambda: dict(DEFAULT_DELIVERY_FEES)
    )
    delivery_slots: tuple[str, ...] = DEFAULT_DELIVERY_SLOTS
    remote_timeout: timedelta | None = timedelta(seconds=10)
    order_number_attempts: int = 3
    void_incomplete_orders: bool = False

    def __post_init__(self) -> None:
        if self.platform_fee_rate < 0:
            raise ValueError("platform_fee_rate must be >= 0")
        if any(fee < 0 for fee in self.delivery_fees.values()):
            raise ValueError("delivery fees must be >= 0")
        if self.order_number_attempts < 1:
            raise ValueError("order_number_attempts must be >= 1")

    # ── derived ──────────────────────────────────────────────────────────────

    def delivery_fee(self, mode: DeliveryMode) -> Decimal:
        """Flat transport fee for a delivery mode. KeyError if not offered."""
        return self.delivery_fees[mode]

    def offers(self, mode: DeliveryMode) -> bool:
        return mode in self.delivery_fees

    @property
    def timeout_seconds(self) -> float | None:
        if self.remote_timeout is None:
            return None
        return self.remote_timeout.total_seconds()

    # ── builders ─────────────────────────────────────────────────────────────

    def with_platform_fee_rate(self, rate: Decimal | int | str) -> CheckoutConfig:
        """
        Example:
            .with_platform_fee_rate("0.02")   # 2%
        """
        return replace(self, platform_fee_rate=_as_decimal(rate))

    def with_delivery_fee(
        self,
        mode: DeliveryMode,
        fee: Decimal | int | str,
    ) -> CheckoutConfig:
        fees = dict(self.delivery_fees)
        fees[mode] = _as_decimal(fee)
        return replace(self, delivery_fees=fees)

    def without_delivery_mode(self, mode: DeliveryMode) -> CheckoutConfig:
        fees = {m: f for m, f in self.delivery_fees.items() if m is not mode}
        return replace(self, delivery_fees=fees)

    def with_delivery_slots(self, *slots: str) -> CheckoutConfig:
        return replace(self, delivery_slots=tuple(slots))

    def with_remote_timeout(
        self,
        *,
        seconds: float | None = None,
        delta: timedelta | None = None,
    ) -> CheckoutConfig:
        """
        Bound every store call. Passing neither argument disables the bound.

        Example:
            .with_remote_timeout(seconds=5)
            .with_remote_timeout(delta=timedelta(milliseconds=500))
        """
        if delta is not None:
            limit: timedelta | None = delta
        elif seconds is not None:
            limit = timedelta(seconds=seconds)
        else:
            limit = None
        return replace(self, remote_timeout=limit)

    def with_order_number_attempts(self, attempts: int) -> CheckoutConfig:
        return replace(self, order_number_attempts=attempts)

    def with_void_incomplete_orders(self, void: bool = True) -> CheckoutConfig:
        """Cancel an order whose line items could not be written."""
        return replace(self, void_incomplete_orders=void)

    # ── environment ──────────────────────────────────────────────────────────

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        prefix: str = ENV_PREFIX,
    ) -> CheckoutConfig:
        """
        Build a config from environment variables.

        Recognised (with the default prefix):
            FARMSPLIT_PLATFORM_FEE_RATE        e.g. 0.02
            FARMSPLIT_REMOTE_TIMEOUT_SECONDS   0 disables the bound
            FARMSPLIT_ORDER_NUMBER_ATTEMPTS
            FARMSPLIT_VOID_INCOMPLETE_ORDERS   1/true/yes/on
            FARMSPLIT_DELIVERY_FEE_SELLER_DELIVERS
            FARMSPLIT_DELIVERY_FEE_BUYER_PICKUP
        """
        env = os.environ if environ is None else environ
        config = cls()

        if (rate := env.get(f"{prefix}PLATFORM_FEE_RATE")) is not None:
            config = config.with_platform_fee_rate(rate)

        if (seconds := env.get(f"{prefix}REMOTE_TIMEOUT_SECONDS")) is not None:
            value = float(seconds)
            config = config.with_remote_timeout(seconds=value if value > 0 else None)

        if (attempts := env.get(f"{prefix}ORDER_NUMBER_ATTEMPTS")) is not None:
            config = config.with_order_number_attempts(int(attempts))

        if (void := env.get(f"{prefix}VOID_INCOMPLETE_ORDERS")) is not None:
            config = config.with_void_incomplete_orders(void.strip().lower() in _TRUTHY)

        for mode in DeliveryMode:
            fee = env.get(f"{prefix}DELIVERY_FEE_{mode.name}")
            if fee is not None:
                config = config.with_delivery_fee(mode, fee)

        return config


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "DEFAULT_PLATFORM_FEE_RATE",
    "DEFAULT_DELIVERY_FEES",
    "DEFAULT_DELIVERY_SLOTS",
    "ENV_PREFIX",
    "CheckoutConfig",
)
