"""
Checkout types — request, per-seller outcome, overall outcome, errors.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from farmsplit._types import (
    AddressId,
    BuyerId,
    DeliveryMode,
    OrderId,
    PaymentMethod,
    SellerId,
)
from farmsplit.address._types import AddressRequest
from farmsplit.money._types import CartItem, SellerAllocation
from farmsplit.order._types import FailureStage, PersistFailure

# ═══════════════════════════════════════════════════════════════════════════════
# Request
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CheckoutParameters:
    """
    Checkout-wide choices shared by every seller's order.

    address_id stays None until the address is resolved; the orchestrator
    fills it in before any order is written.
    """

    delivery_mode: DeliveryMode
    delivery_date: date
    delivery_slot: str
    payment_method: PaymentMethod
    coupon_code: str | None = None
    address_id: AddressId | None = None


@dataclass(frozen=True, slots=True)
class CheckoutRequest:
    """
    One checkout attempt.

    items is a snapshot: the orchestrator never looks at the live cart.
    token, when given, makes resubmissions of this attempt return the first
    outcome instead of writing orders again.
    """

    buyer_id: BuyerId
    items: tuple[CartItem, ...]
    address: AddressRequest
    params: CheckoutParameters
    token: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.items, tuple):
            object.__setattr__(self, "items", tuple(self.items))


# ═══════════════════════════════════════════════════════════════════════════════
# State
# ═══════════════════════════════════════════════════════════════════════════════


class CheckoutState(Enum):
    """
    VALIDATING → RESOLVING_ADDRESS → ALLOCATING → PERSISTING_ORDERS → COMPLETED
         ↘               ↘                                    ↘
                                 FAILED
    """

    VALIDATING = "validating"
    RESOLVING_ADDRESS = "resolving_address"
    ALLOCATING = "allocating"
    PERSISTING_ORDERS = "persisting_orders"
    COMPLETED = "completed"
    FAILED = "failed"


class SellerStatus(Enum):
    CREATED = "created"
    FAILED = "failed"
    NOT_ATTEMPTED = "not_attempted"  # an earlier seller failed under abort
    CANCELLED = "cancelled"  # created, then compensated


# ═══════════════════════════════════════════════════════════════════════════════
# Outcome
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SellerOutcome:
    seller_id: SellerId
    status: SellerStatus
    allocation: SellerAllocation
    order_id: OrderId | None = None
    failure: PersistFailure | None = None

    @property
    def created(self) -> bool:
        return self.status is SellerStatus.CREATED


@dataclass(frozen=True, slots=True)
class CheckoutOutcome:
    """
    Result of an attempt that reached the order-writing stage.

    state is COMPLETED when at least one order stands, FAILED otherwise.
    sellers are in cart order (first appearance of each seller).
    """

    state: CheckoutState
    sellers: tuple[SellerOutcome, ...]
    address_id: AddressId
    cart_cleared: bool
    message: str
    coupon_code: str | None = None
    discount_percentage: Decimal = Decimal(0)
    coupon_notice: str | None = None
    token: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is CheckoutState.COMPLETED

    @property
    def created(self) -> tuple[SellerOutcome, ...]:
        return tuple(s for s in self.sellers if s.created)

    @property
    def failed(self) -> tuple[SellerOutcome, ...]:
        return tuple(s for s in self.sellers if s.status is SellerStatus.FAILED)

    @property
    def order_ids(self) -> tuple[OrderId, ...]:
        return tuple(s.order_id for s in self.created if s.order_id is not None)

    @property
    def first_order_id(self) -> OrderId | None:
        """Where the buyer lands after checkout."""
        ids = self.order_ids
        return ids[0] if ids else None

    @property
    def grand_total(self) -> Decimal:
        return sum((s.allocation.total for s in self.sellers), Decimal(0))

    # ── serialization (idempotency replay) ───────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "address_id": self.address_id,
            "cart_cleared": self.cart_cleared,
            "message": self.message,
            "coupon_code": self.coupon_code,
            "discount_percentage": str(self.discount_percentage),
            "coupon_notice": self.coupon_notice,
            "token": self.token,
            "sellers": [_seller_to_dict(s) for s in self.sellers],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CheckoutOutcome:
        return cls(
            state=CheckoutState(data["state"]),
            sellers=tuple(_seller_from_dict(s) for s in data["sellers"]),
            address_id=data["address_id"],
            cart_cleared=data["cart_cleared"],
            message=data["message"],
            coupon_code=data.get("coupon_code"),
            discount_percentage=Decimal(data.get("discount_percentage", "0")),
            coupon_notice=data.get("coupon_notice"),
            token=data.get("token"),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, raw: str) -> CheckoutOutcome:
        return cls.from_dict(json.loads(raw))


def _seller_to_dict(s: SellerOutcome) -> dict[str, Any]:
    a = s.allocation
    return {
        "seller_id": s.seller_id,
        "status": s.status.value,
        "order_id": s.order_id,
        "allocation": {
            "subtotal": str(a.subtotal),
            "transport_share": str(a.transport_share),
            "platform_fee": str(a.platform_fee),
            "discount": str(a.discount),
        },
        "failure": None if s.failure is None else {
            "stage": s.failure.stage.value,
            "reason": s.failure.reason,
            "order_id": s.failure.order_id,
            "voided": s.failure.voided,
        },
    }


def _seller_from_dict(data: dict[str, Any]) -> SellerOutcome:
    a = data["allocation"]
    failure = data.get("failure")
    return SellerOutcome(
        seller_id=data["seller_id"],
        status=SellerStatus(data["status"]),
        order_id=data.get("order_id"),
        allocation=SellerAllocation.of(
            data["seller_id"],
            subtotal=Decimal(a["subtotal"]),
            transport_share=Decimal(a["transport_share"]),
            platform_fee=Decimal(a["platform_fee"]),
            discount=Decimal(a["discount"]),
        ),
        failure=None if failure is None else PersistFailure(
            seller_id=data["seller_id"],
            stage=FailureStage(failure["stage"]),
            reason=failure["reason"],
            order_id=failure.get("order_id"),
            voided=failure.get("voided", False),
        ),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Errors — terminal failures before any order exists
# ═══════════════════════════════════════════════════════════════════════════════


class CheckoutErrorCode(Enum):
    EMPTY_CART = "empty_cart"
    INCOMPLETE_ADDRESS = "incomplete_address"
    MISSING_LOCATION = "missing_location"
    INVALID_DELIVERY = "invalid_delivery"
    ADDRESS_FAILED = "address_failed"
    DUPLICATE_CHECKOUT = "duplicate_checkout"
    IDEMPOTENCY_STORE = "idempotency_store"


@dataclass(frozen=True, slots=True)
class CheckoutError:
    code: CheckoutErrorCode
    message: str
    fields: tuple[str, ...] = field(default=())


class CheckoutErrors:
    @staticmethod
    def empty_cart() -> CheckoutError:
        return CheckoutError(
            CheckoutErrorCode.EMPTY_CART,
            "You need items in your cart to checkout.",
        )

    @staticmethod
    def incomplete_address(missing: tuple[str, ...]) -> CheckoutError:
        return CheckoutError(
            CheckoutErrorCode.INCOMPLETE_ADDRESS,
            "Please fill in all required address fields.",
            missing,
        )

    @staticmethod
    def missing_location() -> CheckoutError:
        return CheckoutError(
            CheckoutErrorCode.MISSING_LOCATION,
            "Please pin your delivery location on the map.",
        )

    @staticmethod
    def invalid_delivery(msg: str) -> CheckoutError:
        return CheckoutError(CheckoutErrorCode.INVALID_DELIVERY, msg)

    @staticmethod
    def address_failed(msg: str) -> CheckoutError:
        return CheckoutError(CheckoutErrorCode.ADDRESS_FAILED, msg)

    @staticmethod
    def duplicate_checkout(msg: str) -> CheckoutError:
        return CheckoutError(CheckoutErrorCode.DUPLICATE_CHECKOUT, msg)

    @staticmethod
    def idempotency_store(msg: str) -> CheckoutError:
        return CheckoutError(CheckoutErrorCode.IDEMPOTENCY_STORE, msg)


__all__ = (
    "CheckoutParameters",
    "CheckoutRequest",
    "CheckoutState",
    "SellerStatus",
    "SellerOutcome",
    "CheckoutOutcome",
    "CheckoutErrorCode",
    "CheckoutError",
    "CheckoutErrors",
)
