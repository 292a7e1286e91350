"""Ports for the collaborators checkout depends on but does not own.

The address book, product catalogue, inventory store and buyer profiles are
managed by other services. Checkout code programs against these interfaces;
adapters are swapped via ``checkout.stores.set_stores()``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Address:
    """A buyer's saved address, as returned by the address book."""

    id: str
    user_id: str
    full_name: str
    line1: str
    city: str
    postal_code: str
    country: str
    line2: str | None = None
    state: str | None = None
    phone: str | None = None

    def snapshot(self) -> dict:
        """Field values to copy onto an order. Later address edits never touch the copy."""
        return {
            "full_name": self.full_name,
            "line1": self.line1,
            "line2": self.line2,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "country": self.country,
            "phone": self.phone,
        }


@dataclass(frozen=True)
class CatalogueProduct:
    id: str
    title: str
    price: float


@dataclass(frozen=True)
class CatalogueVariant:
    id: str
    product_id: str
    name: str
    price: float


@dataclass(frozen=True)
class InventoryLevel:
    product_id: str
    variant_id: str | None
    available: int
    reserved: int = 0


class AddressBook(ABC):
    @abstractmethod
    def find_owned_address(self, user_id: str, address_id: str) -> Address | None:
        """Return the address only if it belongs to ``user_id``."""
        ...


class Catalogue(ABC):
    @abstractmethod
    def find_product(self, product_id: str) -> CatalogueProduct | None: ...

    @abstractmethod
    def find_variant(self, variant_id: str) -> CatalogueVariant | None: ...


class InventoryStore(ABC):
    """Per-SKU stock levels keyed by (product_id, variant_id)."""

    @abstractmethod
    def get_level(self, product_id: str, variant_id: str | None) -> InventoryLevel | None: ...

    @abstractmethod
    def decrement_if_available(self, product_id: str, variant_id: str | None, quantity: int) -> bool:
        """Atomically move ``quantity`` units from available to reserved.

        Must succeed only if available >= quantity at write time. Returns
        False (and changes nothing) otherwise.
        """
        ...

    @abstractmethod
    def release(self, product_id: str, variant_id: str | None, quantity: int) -> None:
        """Return previously reserved units to available stock."""
        ...


class CouponUsageCounter(ABC):
    """Shared per-coupon usage counts, consumed by concurrent checkouts."""

    @abstractmethod
    def increment_if_below(self, coupon_id: str, limit: int | None, recorded: int = 0) -> int | None:
        """Atomically consume one use of the coupon.

        Must succeed only if the count is below ``limit`` at write time (no
        limit means always). ``recorded`` is the count stored with the coupon
        and seeds a counter that has not seen it yet. Returns the new count,
        or None (and changes nothing) once the limit is reached.
        """
        ...

    @abstractmethod
    def release(self, coupon_id: str) -> None:
        """Give back one use claimed by a checkout that did not complete."""
        ...


class BuyerProfiles(ABC):
    @abstractmethod
    def append_order_history(self, user_id: str, order_id: str) -> None: ...
