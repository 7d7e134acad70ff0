"""
HTTP surface — FastAPI routes over a Checkout.

Request models translate into domain values with to_domain(); response
models are built from domain values with from_domain().

    # myapp.py, served with: uvicorn myapp:build --factory
    def build() -> fastapi.FastAPI:
        store = SQLAlchemyMarketStore(session_factory)
        return create_app(Checkout(store, config=CheckoutConfig.from_env()), orders=store)
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import fastapi
import structlog
from fastapi.responses import JSONResponse
from kungfu import Error, Ok, Result
from pydantic import BaseModel, Field, model_validator

from farmsplit._types import DeliveryMode, PaymentMethod
from farmsplit.address import AddressDraft, AddressRequest, CreateAddress, ReuseAddress
from farmsplit.checkout import (
    Checkout,
    CheckoutError,
    CheckoutErrorCode,
    CheckoutOutcome,
    CheckoutParameters,
    CheckoutRequest,
    SellerOutcome,
)
from farmsplit.coupon import CouponRecord, CouponRejected
from farmsplit.money import PRICE_PLACES, CartItem
from farmsplit.order import OrderItemRecord, PersistedOrder

if TYPE_CHECKING:
    from farmsplit.store import OrderStore

logger = structlog.get_logger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Requests
# ═══════════════════════════════════════════════════════════════════════════════


class CartItemIn(BaseModel):
    product_id: str
    seller_id: str
    title: str
    unit: str
    price_per_unit: Decimal = Field(ge=0, decimal_places=PRICE_PLACES)
    quantity: int = Field(ge=1)
    image: str | None = None

    def to_domain(self) -> CartItem:
        return CartItem(
            product_id=self.product_id,
            seller_id=self.seller_id,
            title=self.title,
            unit=self.unit,
            price_per_unit=self.price_per_unit,
            quantity=self.quantity,
            image=self.image,
        )


class AddressIn(BaseModel):
    full_name: str = ""
    phone: str = ""
    street: str = ""
    city: str = ""
    pincode: str = ""
    latitude: float | None = None
    longitude: float | None = None
    label: str = "Home"
    from_pin: bool = False

    def to_domain(self) -> AddressDraft:
        return AddressDraft(**self.model_dump())


class CheckoutIn(BaseModel):
    """Either address_id (saved address) or address (new one)."""

    buyer_id: str
    items: list[CartItemIn]
    address_id: str | None = None
    address: AddressIn | None = None
    delivery_mode: DeliveryMode
    delivery_date: date
    delivery_slot: str
    payment_method: PaymentMethod
    coupon_code: str | None = None
    token: str | None = None

    @model_validator(mode="after")
    def one_address(self) -> CheckoutIn:
        if self.address is not None and self.address_id is not None:
            raise ValueError("send either address_id or address, not both")
        return self

    def to_domain(self) -> CheckoutRequest:
        address: AddressRequest
        if self.address is not None:
            address = CreateAddress(self.address.to_domain())
        else:
            # An empty id is rejected by the precondition check.
            address = ReuseAddress(self.address_id or "")

        return CheckoutRequest(
            buyer_id=self.buyer_id,
            items=tuple(item.to_domain() for item in self.items),
            address=address,
            params=CheckoutParameters(
                delivery_mode=self.delivery_mode,
                delivery_date=self.delivery_date,
                delivery_slot=self.delivery_slot,
                payment_method=self.payment_method,
                coupon_code=self.coupon_code,
            ),
            token=self.token,
        )


class CouponIn(BaseModel):
    code: str


# ═══════════════════════════════════════════════════════════════════════════════
# Responses
# ═══════════════════════════════════════════════════════════════════════════════


class SellerOut(BaseModel):
    seller_id: str
    status: str
    order_id: str | None
    subtotal: Decimal
    transport_share: Decimal
    platform_fee: Decimal
    discount: Decimal
    total: Decimal
    failure_stage: str | None = None
    failure_reason: str | None = None
    orphan_order_id: str | None = None

    @classmethod
    def from_domain(cls, seller: SellerOutcome) -> SellerOut:
        a = seller.allocation
        failure = seller.failure
        return cls(
            seller_id=seller.seller_id,
            status=seller.status.value,
            order_id=seller.order_id,
            subtotal=a.subtotal,
            transport_share=a.transport_share,
            platform_fee=a.platform_fee,
            discount=a.discount,
            total=a.total,
            failure_stage=failure.stage.value if failure else None,
            failure_reason=failure.reason if failure else None,
            orphan_order_id=failure.order_id if failure else None,
        )


class CheckoutOut(BaseModel):
    state: str
    message: str
    first_order_id: str | None
    order_ids: list[str]
    address_id: str
    cart_cleared: bool
    grand_total: Decimal
    coupon_code: str | None
    discount_percentage: Decimal
    coupon_notice: str | None
    sellers: list[SellerOut]

    @classmethod
    def from_domain(cls, outcome: CheckoutOutcome) -> CheckoutOut:
        return cls(
            state=outcome.state.value,
            message=outcome.message,
            first_order_id=outcome.first_order_id,
            order_ids=list(outcome.order_ids),
            address_id=outcome.address_id,
            cart_cleared=outcome.cart_cleared,
            grand_total=outcome.grand_total,
            coupon_code=outcome.coupon_code,
            discount_percentage=outcome.discount_percentage,
            coupon_notice=outcome.coupon_notice,
            sellers=[SellerOut.from_domain(s) for s in outcome.sellers],
        )


class ErrorOut(BaseModel):
    code: str
    message: str
    missing: list[str] = []

    @classmethod
    def from_domain(cls, err: CheckoutError) -> ErrorOut:
        return cls(code=err.code.name, message=err.message, missing=list(err.fields))


class CouponOut(BaseModel):
    applied: bool
    code: str
    discount_percentage: Decimal
    message: str

    @classmethod
    def from_domain(cls, result: Result[CouponRecord, CouponRejected]) -> CouponOut:
        match result:
            case Ok(coupon):
                return cls(
                    applied=True,
                    code=coupon.code,
                    discount_percentage=coupon.discount_percentage,
                    message=coupon.notice,
                )
            case Error(rejected):
                return cls(
                    applied=False,
                    code=rejected.code,
                    discount_percentage=Decimal(0),
                    message=rejected.message,
                )


class OrderItemOut(BaseModel):
    product_id: str
    title: str
    image: str | None
    quantity: int
    unit: str
    price_per_unit: Decimal
    line_total: Decimal

    @classmethod
    def from_domain(cls, item: OrderItemRecord) -> OrderItemOut:
        return cls(
            product_id=item.product_id,
            title=item.snapshot.title,
            image=item.snapshot.image,
            quantity=item.quantity,
            unit=item.unit,
            price_per_unit=item.price_per_unit,
            line_total=item.line_total,
        )


class OrderOut(BaseModel):
    id: str
    order_number: str
    buyer_id: str
    seller_id: str
    status: str
    subtotal: Decimal
    transport_fee: Decimal
    platform_fee: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    delivery_address_id: str
    delivery_mode: str
    delivery_date: date
    delivery_slot: str
    payment_method: str
    payment_status: str
    complete: bool
    created_at: datetime
    cancelled_at: datetime | None
    items: list[OrderItemOut]

    @classmethod
    def from_domain(cls, order: PersistedOrder) -> OrderOut:
        r = order.record
        return cls(
            id=order.id,
            order_number=r.order_number,
            buyer_id=r.buyer_id,
            seller_id=r.seller_id,
            status=r.status.value,
            subtotal=r.subtotal,
            transport_fee=r.transport_fee,
            platform_fee=r.platform_fee,
            discount_amount=r.discount_amount,
            total_amount=r.total_amount,
            delivery_address_id=r.delivery_address_id,
            delivery_mode=r.delivery_mode.value,
            delivery_date=r.delivery_date,
            delivery_slot=r.delivery_slot,
            payment_method=r.payment_method.value,
            payment_status=r.payment_status.value,
            complete=order.is_complete,
            created_at=order.created_at,
            cancelled_at=order.cancelled_at,
            items=[OrderItemOut.from_domain(item) for item in order.items],
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Application
# ═══════════════════════════════════════════════════════════════════════════════


def status_for(err: CheckoutError) -> int:
    if err.code is CheckoutErrorCode.DUPLICATE_CHECKOUT:
        return 409
    return 422


def create_app(checkout: Checkout, *, orders: OrderStore) -> fastapi.FastAPI:
    app = fastapi.FastAPI(title="farmsplit")

    @app.post(
        "/checkout",
        response_model=CheckoutOut,
        responses={409: {"model": ErrorOut}, 422: {"model": ErrorOut}},
    )
    async def place_order(req: CheckoutIn) -> Any:
        match await checkout.run(req.to_domain()):
            case Ok(outcome):
                return CheckoutOut.from_domain(outcome)
            case Error(err):
                return JSONResponse(
                    status_code=status_for(err),
                    content=ErrorOut.from_domain(err).model_dump(),
                )

    @app.post("/coupons/validate", response_model=CouponOut)
    async def validate_coupon(req: CouponIn) -> Any:
        return CouponOut.from_domain(await checkout.validate_coupon(req.code))

    @app.get("/orders/{order_id}", response_model=OrderOut)
    async def get_order(order_id: str) -> Any:
        order = await orders.get_order(order_id)
        if order is None:
            raise fastapi.HTTPException(status_code=404, detail="Order not found")
        return OrderOut.from_domain(order)

    logger.debug("API routes mounted", routes=len(app.routes))
    return app


__all__ = (
    "CartItemIn",
    "AddressIn",
    "CheckoutIn",
    "CouponIn",
    "SellerOut",
    "CheckoutOut",
    "ErrorOut",
    "CouponOut",
    "OrderItemOut",
    "OrderOut",
    "status_for",
    "create_app",
)
