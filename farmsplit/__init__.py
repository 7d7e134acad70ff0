"""
farmsplit — multi-seller checkout for a produce marketplace.

    from farmsplit import money as M      # Cart grouping and cost allocation
    from farmsplit import checkout as C   # The checkout state machine
    from farmsplit import saga as S       # Per-seller steps and rollback policies
    from farmsplit import idempotency as I  # One checkout per token
"""

from farmsplit import lift
from farmsplit import money
from farmsplit import saga
from farmsplit import idempotency
from farmsplit import store
from farmsplit import address
from farmsplit import coupon
from farmsplit import order
from farmsplit import checkout
from farmsplit._types import (
    DeliveryMode,
    PaymentMethod,
    PaymentStatus,
    OrderStatus,
)
from farmsplit.config import CheckoutConfig

__version__ = "0.1.0"

__all__ = (
    "lift",
    "money",
    "saga",
    "idempotency",
    "store",
    "address",
    "coupon",
    "order",
    "checkout",
    "DeliveryMode",
    "PaymentMethod",
    "PaymentStatus",
    "OrderStatus",
    "CheckoutConfig",
)
