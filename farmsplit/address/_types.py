"""
Address types — drafts, stored records and resolution requests.
"""

from __future__ import annotations

from dataclasses import dataclass

from farmsplit._types import AddressId, BuyerId

ADDRESS_SAVE_FAILED = "Failed to save delivery address."

# ═══════════════════════════════════════════════════════════════════════════════
# Draft — what the buyer typed (or pinned)
# ═══════════════════════════════════════════════════════════════════════════════

REQUIRED_FIELDS = ("full_name", "phone", "street", "city", "pincode")


@dataclass(frozen=True, slots=True)
class AddressDraft:
    """
    A new delivery address.

    from_pin marks drafts that came from the map-pin flow; those must carry
    coordinates.
    """

    full_name: str
    phone: str
    street: str
    city: str
    pincode: str
    latitude: float | None = None
    longitude: float | None = None
    label: str = "Home"
    from_pin: bool = False

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def missing_fields(self) -> tuple[str, ...]:
        return tuple(name for name in REQUIRED_FIELDS if not getattr(self, name).strip())


# ═══════════════════════════════════════════════════════════════════════════════
# Record — stored address
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class AddressRecord:
    buyer_id: BuyerId
    full_name: str
    phone: str
    street: str
    city: str
    district: str
    pincode: str
    latitude: float | None
    longitude: float | None
    label: str = "Home"
    is_default: bool = False
    id: AddressId | None = None

    @classmethod
    def from_draft(cls, buyer_id: BuyerId, draft: AddressDraft) -> AddressRecord:
        """New default address; district mirrors the city."""
        return cls(
            buyer_id=buyer_id,
            full_name=draft.full_name.strip(),
            phone=draft.phone.strip(),
            street=draft.street.strip(),
            city=draft.city.strip(),
            district=draft.city.strip(),
            pincode=draft.pincode.strip(),
            latitude=draft.latitude,
            longitude=draft.longitude,
            label=draft.label,
            is_default=True,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Requests
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ReuseAddress:
    """Deliver to a saved address."""

    address_id: AddressId


@dataclass(frozen=True, slots=True)
class CreateAddress:
    """Save a new address, then deliver to it."""

    draft: AddressDraft


type AddressRequest = ReuseAddress | CreateAddress

# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class AddressError:
    message: str
    cause: Exception | None = None


__all__ = (
    "ADDRESS_SAVE_FAILED",
    "REQUIRED_FIELDS",
    "AddressDraft",
    "AddressRecord",
    "ReuseAddress",
    "CreateAddress",
    "AddressRequest",
    "AddressError",
)
