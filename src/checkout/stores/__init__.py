"""Collaborator store factory.

Provides get_stores() / set_stores() / reset_stores() to swap the address
book, catalogue, inventory, coupon usage and buyer-profile adapters as one
bundle:
- in-memory stores for development and testing (default)
- service-backed stores in production, injected with set_stores()
"""

import os
from dataclasses import dataclass, field

from checkout.errors import ConfigError
from checkout.stores.fake_adapter import (
    InMemoryAddressBook,
    InMemoryBuyerProfiles,
    InMemoryCatalogue,
    InMemoryCouponUsageCounter,
    InMemoryInventoryStore,
)
from checkout.stores.port import AddressBook, BuyerProfiles, Catalogue, CouponUsageCounter, InventoryStore


@dataclass
class Stores:
    addresses: AddressBook = field(default_factory=InMemoryAddressBook)
    catalogue: Catalogue = field(default_factory=InMemoryCatalogue)
    inventory: InventoryStore = field(default_factory=InMemoryInventoryStore)
    buyers: BuyerProfiles = field(default_factory=InMemoryBuyerProfiles)
    coupon_usage: CouponUsageCounter = field(default_factory=InMemoryCouponUsageCounter)


_current_stores: Stores | None = None


def get_stores() -> Stores:
    """Return the active collaborator stores. Defaults to in-memory adapters.

    CHECKOUT_STORES selects the default bundle; anything other than
    "memory" must be injected explicitly with set_stores().
    """
    global _current_stores
    if _current_stores is None:
        adapter = os.environ.get("CHECKOUT_STORES", "memory")
        if adapter != "memory":
            raise ConfigError(f"Unknown stores adapter: {adapter}")
        _current_stores = Stores()
    return _current_stores


def set_stores(stores: Stores) -> None:
    """Override the active stores (useful for tests)."""
    global _current_stores
    _current_stores = stores


def reset_stores() -> None:
    """Reset to fresh in-memory stores."""
    global _current_stores
    _current_stores = None
