"""
Address — one durable delivery address per checkout.

    from farmsplit import address as A

    address_id = await A.AddressResolver(store).resolve(buyer_id, A.ReuseAddress("addr-1"))
"""

from __future__ import annotations

from farmsplit.address._types import (
    ADDRESS_SAVE_FAILED,
    REQUIRED_FIELDS,
    AddressDraft,
    AddressRecord,
    ReuseAddress,
    CreateAddress,
    AddressRequest,
    AddressError,
)
from farmsplit.address._resolve import AddressResolver

__all__ = (
    "ADDRESS_SAVE_FAILED",
    "REQUIRED_FIELDS",
    "AddressDraft",
    "AddressRecord",
    "ReuseAddress",
    "CreateAddress",
    "AddressRequest",
    "AddressError",
    "AddressResolver",
)
