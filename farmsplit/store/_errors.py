"""
Store errors — raised by adapters, lifted into Results by callers.
"""

from __future__ import annotations


class StoreError(Exception):
    """A remote store call failed."""


class OrderNumberTaken(StoreError):
    """Another order already carries this order number."""

    def __init__(self, order_number: str) -> None:
        self.order_number = order_number
        super().__init__(f"order number already exists: {order_number}")


__all__ = ("StoreError", "OrderNumberTaken")
