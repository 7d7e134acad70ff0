"""
Checkout orchestration — one attempt from cart snapshot to seller orders.

    VALIDATING → RESOLVING_ADDRESS → ALLOCATING → PERSISTING_ORDERS → COMPLETED | FAILED

    checkout = Checkout(store, config=CheckoutConfig.from_env())

    match await checkout.run(request):
        case Ok(outcome) if outcome.succeeded:
            redirect(outcome.first_order_id)
        case Ok(outcome):
            show(outcome.message)          # nothing written, cart kept
        case Error(err):
            show(err.message)              # rejected before any order
"""

from __future__ import annotations

import hashlib
from dataclasses import replace
from decimal import Decimal
from typing import TYPE_CHECKING

import structlog
from kungfu import Error, LazyCoroResult, Ok, Result

from farmsplit import idempotency as I
from farmsplit import lift as L
from farmsplit import money as M
from farmsplit import saga as S
from farmsplit._types import BuyerId, OrderId
from farmsplit.address import AddressResolver
from farmsplit.checkout._types import (
    CheckoutError,
    CheckoutErrors,
    CheckoutOutcome,
    CheckoutParameters,
    CheckoutRequest,
    CheckoutState,
    SellerOutcome,
    SellerStatus,
)
from farmsplit.checkout._validate import check_preconditions
from farmsplit.config import CheckoutConfig
from farmsplit.coupon import CouponRecord, CouponRejected, CouponValidator
from farmsplit.money import CartBySeller, Partition, SellerAllocation
from farmsplit.order import OrderPersister, PersistFailure
from farmsplit.order._persist import describe

if TYPE_CHECKING:
    from farmsplit.store import MarketStore

logger = structlog.get_logger(__name__)

type CheckoutResult = Result[CheckoutOutcome, CheckoutError]


# ═══════════════════════════════════════════════════════════════════════════════
# Messages
# ═══════════════════════════════════════════════════════════════════════════════

NOTHING_PLACED = "Failed to place your order. Your cart has been kept so you can retry."


def summarize(sellers: tuple[SellerOutcome, ...]) -> str:
    """One line for the whole attempt, whatever happened per seller."""
    total = len(sellers)
    created = sum(1 for s in sellers if s.created)
    skipped = sum(1 for s in sellers if s.status is SellerStatus.NOT_ATTEMPTED)

    if created == 0:
        return NOTHING_PLACED
    if created == total:
        return "Order placed successfully!" if total == 1 else f"All {total} orders placed successfully!"
    message = f"{created} of {total} seller orders placed; {total - created - skipped} failed"
    if skipped:
        message += f"; {skipped} not attempted. Your cart has been kept"
    return message + "."


def fingerprint(request: CheckoutRequest) -> str:
    """Stable hash of everything that shapes the orders of a request."""
    payload = repr((request.buyer_id, request.items, request.address, request.params))
    return hashlib.sha256(payload.encode()).hexdigest()


def _seller_outcome(
    outcome: S.StepOutcome[OrderId, PersistFailure],
    allocation: SellerAllocation,
) -> SellerOutcome:
    match outcome:
        case S.StepOutcome(result=None):
            return SellerOutcome(outcome.key, SellerStatus.NOT_ATTEMPTED, allocation)
        case S.StepOutcome(result=Ok(order_id), compensated=True):
            return SellerOutcome(outcome.key, SellerStatus.CANCELLED, allocation, order_id)
        case S.StepOutcome(result=Ok(order_id)):
            return SellerOutcome(outcome.key, SellerStatus.CREATED, allocation, order_id)
        case S.StepOutcome(result=Error(failure)):
            return SellerOutcome(outcome.key, SellerStatus.FAILED, allocation, failure=failure)
    raise AssertionError(f"unreachable step outcome: {outcome!r}")


# ═══════════════════════════════════════════════════════════════════════════════
# Checkout
# ═══════════════════════════════════════════════════════════════════════════════


class Checkout:
    """
    Places one order per seller in the cart.

    Address failure is fatal, a rejected coupon is not, and seller failures
    are independent unless an aborting policy says otherwise. Order writes run
    sequentially in the cart's seller order.

    Example (all-or-nothing instead of partial success):
        checkout = Checkout(
            store,
            on_failure=S.policy.on_failure.abort(),
            compensate=S.policy.compensate.all_on_failure(),
        )

    With an idempotency store, requests carrying a token run at most once:
        checkout = Checkout(store, attempts=I.MemoryStore())
    """

    def __init__(
        self,
        store: MarketStore,
        *,
        config: CheckoutConfig = CheckoutConfig(),
        on_failure: S.policy.OnFailurePolicy = S.policy.ContinuePolicy(),
        compensate: S.policy.CompensatePolicy = S.policy.SkipPolicy(),
        attempts: I.StoreAny | None = None,
        attempt_policy: I.Policy = I.Policy(),
    ) -> None:
        self._store = store
        self._config = config
        self._on_failure = on_failure
        self._compensate = compensate
        self._attempts = attempts
        self._attempt_policy = attempt_policy

        timeout = config.timeout_seconds
        self._addresses = AddressResolver(store, timeout=timeout)
        self._coupons = CouponValidator(store, timeout=timeout)
        self._orders = OrderPersister(
            store,
            timeout=timeout,
            number_attempts=config.order_number_attempts,
            void_incomplete=config.void_incomplete_orders,
        )

    @property
    def config(self) -> CheckoutConfig:
        return self._config

    def validate_coupon(self, code: str) -> LazyCoroResult[CouponRecord, CouponRejected]:
        """The "apply coupon" action; checkout itself re-validates on run."""
        return self._coupons.validate(code)

    async def run(self, request: CheckoutRequest) -> CheckoutResult:
        if request.token is None or self._attempts is None:
            return await self._place(request)

        guarded = await I.run_once(
            request.token,
            lambda: LazyCoroResult(lambda: self._place(request)),
            store=self._attempts,
            policy=self._attempt_policy,
            input_hash=fingerprint(request),
            # Nothing written means nothing to protect: let the buyer retry.
            cache_if=lambda outcome: bool(outcome.created),
        )

        match guarded:
            case Ok(result):
                if result.from_cache:
                    logger.info(
                        "Checkout replayed",
                        buyer_id=request.buyer_id,
                        token=request.token,
                    )
                return Ok(result.value)
            case Error(I.IdempotencyError(kind=I.IdempotencyErrorKind.EXECUTION, original_error=err)):
                return Error(err)
            case Error(I.IdempotencyError(kind=I.IdempotencyErrorKind.STORE_ERROR, message=msg)):
                logger.error("Checkout token store failed", token=request.token, reason=msg)
                return Error(CheckoutErrors.idempotency_store(msg))
            case Error(err):
                logger.warning(
                    "Checkout token rejected",
                    token=request.token,
                    kind=err.kind.name,
                    reason=err.message,
                )
                return Error(CheckoutErrors.duplicate_checkout(err.message))

    # ── state machine ────────────────────────────────────────────────────────

    async def _place(self, request: CheckoutRequest) -> CheckoutResult:
        log = logger.bind(buyer_id=request.buyer_id, token=request.token)
        log.info(
            "Checkout started",
            state=CheckoutState.VALIDATING.value,
            items=len(request.items),
        )

        match check_preconditions(request, self._config):
            case Error(err):
                log.info(
                    "Checkout rejected",
                    state=CheckoutState.FAILED.value,
                    code=err.code.value,
                    fields=err.fields,
                )
                return Error(err)
            case Ok(_):
                pass

        log.debug("Resolving address", state=CheckoutState.RESOLVING_ADDRESS.value)
        match await self._addresses.resolve(request.buyer_id, request.address):
            case Error(err):
                log.error(
                    "Checkout failed at address",
                    state=CheckoutState.FAILED.value,
                    reason=str(err.cause),
                )
                return Error(CheckoutErrors.address_failed(err.message))
            case Ok(address_id):
                params = replace(request.params, address_id=address_id)

        log.debug("Allocating", state=CheckoutState.ALLOCATING.value)
        grouped = M.group_by_seller(request.items)
        coupon, notice = await self._apply_coupon(params.coupon_code)
        partition = M.allocate(
            grouped,
            transport_fee=self._config.delivery_fee(params.delivery_mode),
            platform_fee_rate=self._config.platform_fee_rate,
            discount_percentage=coupon.discount_percentage if coupon else Decimal(0),
        )

        log.debug(
            "Persisting orders",
            state=CheckoutState.PERSISTING_ORDERS.value,
            sellers=len(grouped),
            grand_total=str(partition.grand_total),
        )
        sellers = await self._persist(request, grouped, partition, params, log)

        created = sum(1 for s in sellers if s.created)
        # Items of sellers never attempted were not ordered; the cart keeps them.
        unplaced = any(s.status is SellerStatus.NOT_ATTEMPTED for s in sellers)
        cart_cleared = created > 0 and not unplaced and await self._clear_cart(request.buyer_id, log)
        state = CheckoutState.COMPLETED if created else CheckoutState.FAILED

        outcome = CheckoutOutcome(
            state=state,
            sellers=sellers,
            address_id=address_id,
            cart_cleared=cart_cleared,
            message=summarize(sellers),
            coupon_code=coupon.code if coupon else None,
            discount_percentage=partition.discount_percentage,
            coupon_notice=notice,
            token=request.token,
        )
        log.info(
            "Checkout finished",
            state=state.value,
            created=created,
            failed=len(outcome.failed),
            cart_cleared=cart_cleared,
        )
        return Ok(outcome)

    # ── steps ────────────────────────────────────────────────────────────────

    async def _apply_coupon(self, code: str | None) -> tuple[CouponRecord | None, str | None]:
        if code is None or not code.strip():
            return None, None
        match await self._coupons.validate(code):
            case Ok(coupon):
                return coupon, coupon.notice
            case Error(rejected):
                return None, rejected.message

    async def _persist(
        self,
        request: CheckoutRequest,
        grouped: CartBySeller,
        partition: Partition,
        params: CheckoutParameters,
        log: structlog.stdlib.BoundLogger,
    ) -> tuple[SellerOutcome, ...]:
        steps = [
            S.step(
                seller_id,
                self._orders.create(
                    seller_id,
                    partition.for_seller(seller_id),
                    items,
                    params,
                    buyer_id=request.buyer_id,
                    checkout_token=request.token,
                ),
                compensate=self._orders.cancel,
            )
            for seller_id, items in grouped.items()
        ]
        report = await S.run_each(
            steps,
            on_failure=self._on_failure,
            compensate=self._compensate,
        )
        if not report.rollback_complete:
            log.warning(
                "Rollback incomplete; some orders still stand",
                compensators_failed=report.compensators_failed,
            )
        return tuple(
            _seller_outcome(o, partition.for_seller(o.key)) for o in report.outcomes
        )

    async def _clear_cart(self, buyer_id: BuyerId, log: structlog.stdlib.BoundLogger) -> bool:
        cleared = L.remote(
            lambda: self._store.clear_cart(buyer_id),
            on_error=lambda exc: exc,
            seconds=self._config.timeout_seconds,
        )
        match await cleared:
            case Ok(_):
                return True
            case Error(exc):
                log.warning("Cart not cleared; orders stand", reason=describe(exc))
                return False


__all__ = ("Checkout", "CheckoutResult", "summarize", "fingerprint", "NOTHING_PLACED")
