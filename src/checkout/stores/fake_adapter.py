"""In-memory collaborator stores for development and testing.

Each store keeps its records in plain dicts and exposes seeding helpers
(``add_address``, ``add_product``, ``set_stock``...) so tests and local runs
can set up a catalogue without any external service.

``InMemoryInventoryStore`` guards every read-check-write with a lock, which
makes ``decrement_if_available`` the atomic conditional decrement the
order assembler relies on. ``InMemoryCouponUsageCounter`` does the same
for coupon usage with ``increment_if_below``.
"""

import threading
from collections import defaultdict

from checkout.stores.port import (
    Address,
    AddressBook,
    BuyerProfiles,
    Catalogue,
    CatalogueProduct,
    CatalogueVariant,
    CouponUsageCounter,
    InventoryLevel,
    InventoryStore,
)


def _sku(product_id, variant_id):
    return (str(product_id), str(variant_id) if variant_id else None)


class InMemoryAddressBook(AddressBook):
    def __init__(self) -> None:
        self._addresses: dict[str, Address] = {}

    def add_address(self, address: Address) -> Address:
        self._addresses[address.id] = address
        return address

    def update_address(self, address: Address) -> None:
        self._addresses[address.id] = address

    def find_owned_address(self, user_id: str, address_id: str) -> Address | None:
        address = self._addresses.get(str(address_id))
        if address is None or address.user_id != str(user_id):
            return None
        return address


class InMemoryCatalogue(Catalogue):
    def __init__(self) -> None:
        self._products: dict[str, CatalogueProduct] = {}
        self._variants: dict[str, CatalogueVariant] = {}

    def add_product(self, product_id: str, title: str, price: float) -> CatalogueProduct:
        product = CatalogueProduct(id=product_id, title=title, price=price)
        self._products[product_id] = product
        return product

    def add_variant(self, variant_id: str, product_id: str, name: str, price: float) -> CatalogueVariant:
        variant = CatalogueVariant(id=variant_id, product_id=product_id, name=name, price=price)
        self._variants[variant_id] = variant
        return variant

    def find_product(self, product_id: str) -> CatalogueProduct | None:
        return self._products.get(str(product_id))

    def find_variant(self, variant_id: str) -> CatalogueVariant | None:
        return self._variants.get(str(variant_id))


class InMemoryInventoryStore(InventoryStore):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._levels: dict[tuple, dict] = {}

    def set_stock(self, product_id: str, variant_id: str | None, available: int, reserved: int = 0) -> None:
        with self._lock:
            self._levels[_sku(product_id, variant_id)] = {"available": available, "reserved": reserved}

    def get_level(self, product_id: str, variant_id: str | None) -> InventoryLevel | None:
        key = _sku(product_id, variant_id)
        with self._lock:
            record = self._levels.get(key)
            if record is None:
                return None
            return InventoryLevel(
                product_id=key[0],
                variant_id=key[1],
                available=record["available"],
                reserved=record["reserved"],
            )

    def decrement_if_available(self, product_id: str, variant_id: str | None, quantity: int) -> bool:
        with self._lock:
            record = self._levels.get(_sku(product_id, variant_id))
            if record is None or record["available"] < quantity:
                return False
            record["available"] -= quantity
            record["reserved"] += quantity
            return True

    def release(self, product_id: str, variant_id: str | None, quantity: int) -> None:
        with self._lock:
            record = self._levels.get(_sku(product_id, variant_id))
            if record is None:
                return
            returned = min(quantity, record["reserved"])
            record["reserved"] -= returned
            record["available"] += quantity


class InMemoryBuyerProfiles(BuyerProfiles):
    def __init__(self) -> None:
        self.order_history: dict[str, list[str]] = defaultdict(list)

    def append_order_history(self, user_id: str, order_id: str) -> None:
        self.order_history[str(user_id)].append(str(order_id))


class InMemoryCouponUsageCounter(CouponUsageCounter):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts: dict[str, int] = {}

    def count(self, coupon_id: str) -> int:
        with self._lock:
            return self._counts.get(str(coupon_id), 0)

    def increment_if_below(self, coupon_id: str, limit: int | None, recorded: int = 0) -> int | None:
        key = str(coupon_id)
        with self._lock:
            current = max(self._counts.get(key, 0), recorded or 0)
            if limit is not None and current >= limit:
                return None
            self._counts[key] = current + 1
            return current + 1

    def release(self, coupon_id: str) -> None:
        key = str(coupon_id)
        with self._lock:
            if self._counts.get(key, 0) > 0:
                self._counts[key] -= 1
