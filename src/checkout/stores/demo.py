"""Deterministic demo data for the in-memory stores.

Seeds buyers, addresses, a small catalogue and stock levels so a local
server (and the load tests) can place orders without external services.
Enabled in ``app.py`` with ``CHECKOUT_SEED_DEMO=1``.
"""

import structlog

from checkout.stores import Stores
from checkout.stores.port import Address

logger = structlog.get_logger(__name__)

DEMO_BUYERS = 100
DEMO_PRODUCTS = 20
DEMO_STOCK = 1_000_000

# A single SKU with little stock that many buyers compete for
SCARCE_PRODUCT_ID = "demo-prod-scarce"
SCARCE_STOCK = 50


def demo_buyer_id(n: int) -> str:
    return f"demo-buyer-{n:03d}"


def demo_address_id(n: int) -> str:
    return f"demo-addr-{n:03d}"


def demo_product_id(n: int) -> str:
    return f"demo-prod-{n:03d}"


def demo_variant_id(n: int) -> str:
    return f"demo-var-{n:03d}"


def demo_price(n: int) -> float:
    return round(5.0 + n * 2.5, 2)


def seed_demo_stores(stores: Stores) -> None:
    for n in range(DEMO_BUYERS):
        stores.addresses.add_address(
            Address(
                id=demo_address_id(n),
                user_id=demo_buyer_id(n),
                full_name=f"Demo Buyer {n}",
                line1=f"{n + 1} Demo Street",
                city="Bengaluru",
                postal_code="560001",
                country="IN",
            )
        )

    for n in range(DEMO_PRODUCTS):
        stores.catalogue.add_product(demo_product_id(n), f"Demo Product {n}", demo_price(n))
        # Even products are sold by variant, odd ones directly
        if n % 2 == 0:
            stores.catalogue.add_variant(demo_variant_id(n), demo_product_id(n), "Standard", demo_price(n))
            stores.inventory.set_stock(demo_product_id(n), demo_variant_id(n), available=DEMO_STOCK)
        else:
            stores.inventory.set_stock(demo_product_id(n), None, available=DEMO_STOCK)

    stores.catalogue.add_product(SCARCE_PRODUCT_ID, "Limited Edition", 99.0)
    stores.inventory.set_stock(SCARCE_PRODUCT_ID, None, available=SCARCE_STOCK)

    logger.info(
        "Demo stores seeded",
        buyers=DEMO_BUYERS,
        products=DEMO_PRODUCTS + 1,
        scarce_stock=SCARCE_STOCK,
    )
