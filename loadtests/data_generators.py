"""Faker-based data generators for Locust load test scenarios.

Payloads reference the demo data seeded by ``checkout.stores.demo`` (start
the server with ``CHECKOUT_SEED_DEMO=1``) and match the field names expected
by the API's Pydantic request schemas.
"""

import random

from faker import Faker

from checkout.gateway.fake_adapter import FAKE_CREDENTIALS
from checkout.payment.signature import compute_signature
from checkout.stores.demo import (
    DEMO_BUYERS,
    DEMO_PRODUCTS,
    SCARCE_PRODUCT_ID,
    demo_address_id,
    demo_buyer_id,
    demo_price,
    demo_product_id,
    demo_variant_id,
)

fake = Faker()


# ---------- Buyers ----------


def random_buyer() -> tuple[str, str]:
    """Return (buyer_id, address_id) for a seeded demo buyer."""
    n = random.randrange(DEMO_BUYERS)
    return demo_buyer_id(n), demo_address_id(n)


def buyer_headers(buyer_id: str) -> dict:
    return {"X-Buyer-Id": buyer_id}


# ---------- Orders ----------


def order_item(n: int | None = None, quantity: int | None = None) -> dict:
    """OrderItemRequest for a demo product, quoting the catalogue price."""
    n = random.randrange(DEMO_PRODUCTS) if n is None else n
    item = {
        "product_id": demo_product_id(n),
        "quantity": quantity or random.randint(1, 3),
        "unit_price": demo_price(n),
    }
    if n % 2 == 0:
        item["variant_id"] = demo_variant_id(n)
    return item


def order_data(address_id: str, num_items: int = 2, coupon_code: str | None = None) -> dict:
    """Generate CreateOrderRequest payload."""
    products = random.sample(range(DEMO_PRODUCTS), k=num_items)
    body = {
        "shipping_address_id": address_id,
        "items": [order_item(n) for n in products],
        "shipping_fee": round(random.uniform(0, 9.99), 2),
        "tax": round(random.uniform(0, 5.0), 2),
        "notes": fake.sentence(nb_words=6)[:200],
        "metadata": {"channel": random.choice(["web", "app", "pos"])},
    }
    if coupon_code:
        body["coupon_code"] = coupon_code
    return body


def scarce_order_data(address_id: str) -> dict:
    """Order for the scarce SKU, used to provoke inventory contention."""
    return {
        "shipping_address_id": address_id,
        "items": [{"product_id": SCARCE_PRODUCT_ID, "quantity": random.randint(1, 2), "unit_price": 99.0}],
    }


def tampered_order_data(address_id: str) -> dict:
    """Order quoting a price far below the catalogue, which must be rejected."""
    item = order_item()
    item["unit_price"] = 0.01
    return {"shipping_address_id": address_id, "items": [item]}


# ---------- Coupons ----------


def coupon_code() -> str:
    return f"LT{fake.unique.bothify('????####').upper()}"


def coupon_data(code: str | None = None) -> dict:
    """Generate CreateCouponRequest payload."""
    discount_type = random.choice(["percentage", "fixed", "free_shipping"])
    body = {
        "code": code or coupon_code(),
        "name": fake.catch_phrase()[:100],
        "discount_type": discount_type,
        "usage_limit": random.choice([None, 10, 100]),
    }
    if discount_type == "percentage":
        body["percentage"] = random.choice([5, 10, 15, 20])
        body["max_discount"] = random.choice([0, 25, 50])
    elif discount_type == "fixed":
        body["max_discount"] = random.choice([5, 10, 20])
    return body


# ---------- Payments ----------


def gateway_completion(session_id: str) -> dict:
    """Play the buyer's side of the fake gateway checkout.

    The server must run with the default fake gateway, whose secret is
    known to the load test.
    """
    payment_id = f"pay_lt{fake.unique.hexify('^^^^^^^^^^^^')}"
    return {
        "session_id": session_id,
        "payment_id": payment_id,
        "signature": compute_signature(FAKE_CREDENTIALS.key_secret, session_id, payment_id),
    }
