"""
Preconditions — everything checkable before the first remote call.
"""

from __future__ import annotations

from kungfu import Error, Ok, Result

from farmsplit.address._types import CreateAddress, ReuseAddress
from farmsplit.checkout._types import CheckoutError, CheckoutErrors, CheckoutRequest
from farmsplit.config import CheckoutConfig


def check_preconditions(
    request: CheckoutRequest,
    config: CheckoutConfig,
) -> Result[None, CheckoutError]:
    """
    First violation wins, checked in this order: cart, address, delivery.
    """
    if not request.items:
        return Error(CheckoutErrors.empty_cart())

    match request.address:
        case CreateAddress(draft):
            if missing := draft.missing_fields():
                return Error(CheckoutErrors.incomplete_address(missing))
            if draft.from_pin and not draft.has_location:
                return Error(CheckoutErrors.missing_location())
        case ReuseAddress(address_id):
            if not address_id.strip():
                return Error(CheckoutErrors.incomplete_address(("address_id",)))

    params = request.params
    if not config.offers(params.delivery_mode):
        return Error(CheckoutErrors.invalid_delivery(
            f"Delivery mode {params.delivery_mode.value} is not available."
        ))
    if params.delivery_slot not in config.delivery_slots:
        return Error(CheckoutErrors.invalid_delivery(
            f"Delivery slot {params.delivery_slot} is not available."
        ))

    return Ok(None)


__all__ = ("check_preconditions",)
