"""
Order numbers — `ORD-<6 digits>-<4 alphanumerics>`.

The digits are the tail of the millisecond clock, the suffix is random.
Two numbers can still collide; the store's uniqueness constraint catches
that and the persister draws again.
"""

from __future__ import annotations

import re
import secrets
import string
import time
from collections.abc import Callable

ORDER_NUMBER_PATTERN = re.compile(r"^ORD-\d{6}-[A-Z0-9]{4}$")

_ALPHABET = string.digits + string.ascii_uppercase
_SUFFIX_LENGTH = 4


def generate_order_number(
    *,
    clock: Callable[[], float] = time.time,
    choice: Callable[[str], str] = secrets.choice,
) -> str:
    millis = int(clock() * 1000)
    suffix = "".join(choice(_ALPHABET) for _ in range(_SUFFIX_LENGTH))
    return f"ORD-{millis % 1_000_000:06d}-{suffix}"


def is_order_number(value: str) -> bool:
    return ORDER_NUMBER_PATTERN.match(value) is not None


__all__ = ("ORDER_NUMBER_PATTERN", "generate_order_number", "is_order_number")
