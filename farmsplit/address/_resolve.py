"""
Address resolution — reuse a saved address or create one.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from kungfu import Error, LazyCoroResult, Ok, Result

from farmsplit import lift as L
from farmsplit._types import AddressId, BuyerId
from farmsplit.address._types import (
    ADDRESS_SAVE_FAILED,
    AddressError,
    AddressRecord,
    AddressRequest,
    CreateAddress,
    ReuseAddress,
)

if TYPE_CHECKING:
    from farmsplit.store import AddressStore

logger = structlog.get_logger(__name__)


class AddressResolver:
    """
    Yields the address id every sub-order of a checkout will reference.

    Field validation happens before this runs; the resolver only performs
    (or skips) the write.

    Example:
        resolver = AddressResolver(store, timeout=10)
        match await resolver.resolve(buyer_id, CreateAddress(draft)):
            case Ok(address_id): ...
            case Error(err): ...   # fatal for the checkout
    """

    def __init__(self, store: AddressStore, *, timeout: float | None = None) -> None:
        self._store = store
        self._timeout = timeout

    def resolve(
        self,
        buyer_id: BuyerId,
        request: AddressRequest,
    ) -> LazyCoroResult[AddressId, AddressError]:
        match request:
            case ReuseAddress(address_id):
                return L.pure(address_id)
            case CreateAddress(draft):
                return self._create(AddressRecord.from_draft(buyer_id, draft))

    def _create(self, record: AddressRecord) -> LazyCoroResult[AddressId, AddressError]:
        write = L.remote(
            lambda: self._store.create_address(record),
            on_error=lambda exc: AddressError(ADDRESS_SAVE_FAILED, exc),
            seconds=self._timeout,
        )

        async def run() -> Result[AddressId, AddressError]:
            match await write:
                case Ok(address_id):
                    logger.info(
                        "Delivery address saved",
                        buyer_id=record.buyer_id,
                        address_id=address_id,
                    )
                    return Ok(address_id)
                case Error(err):
                    logger.error(
                        "Delivery address save failed",
                        buyer_id=record.buyer_id,
                        reason=str(err.cause),
                    )
                    return Error(err)

        return LazyCoroResult(run)


__all__ = ("AddressResolver",)
