import json
import os

import pytest

BUYER_ID = "buyer-001"
OTHER_BUYER_ID = "buyer-002"


@pytest.fixture(scope="session")
def _checkout_domain(request):
    """Initialize the checkout domain once per session."""
    os.environ["PROTEAN_ENV"] = request.config.option.env

    from checkout.domain import checkout

    checkout.init()
    return checkout


@pytest.fixture(scope="session", autouse=True)
def setup_db(_checkout_domain):
    from checkout.utils.db import drop_db, setup_db

    setup_db(_checkout_domain)

    yield

    drop_db(_checkout_domain)


@pytest.fixture(autouse=True)
def run_around_tests(_checkout_domain):
    """Push domain context and fresh collaborators before each test, cleanup after."""
    from checkout.gateway import reset_gateway
    from checkout.stores import reset_stores

    reset_stores()
    reset_gateway()

    ctx = _checkout_domain.domain_context()
    ctx.push()

    yield

    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    for _, broker in current_domain.brokers.items():
        broker._data_reset()

    current_domain.event_store.store._data_reset()
    ctx.pop()

    reset_stores()
    reset_gateway()


@pytest.fixture()
def stores():
    """In-memory collaborators seeded with a small catalogue.

    - buyer-001 owns addr-home and addr-work, buyer-002 owns addr-other
    - prod-001 "Notebook" (10.00) with variant var-001 "A5" (10.00), 5 in stock
    - prod-002 "Pen" (25.50) without variants, 10 in stock
    - prod-003 "Lamp" (40.00) with variant var-003 "Brass" (45.00), 3 in stock
    """
    from checkout.stores import get_stores
    from checkout.stores.port import Address

    active = get_stores()
    active.addresses.add_address(
        Address(
            id="addr-home",
            user_id=BUYER_ID,
            full_name="Asha Rao",
            line1="12 MG Road",
            city="Bengaluru",
            state="KA",
            postal_code="560001",
            country="IN",
            phone="+91-9000000001",
        )
    )
    active.addresses.add_address(
        Address(
            id="addr-work",
            user_id=BUYER_ID,
            full_name="Asha Rao",
            line1="5 Residency Road",
            line2="Floor 3",
            city="Bengaluru",
            postal_code="560025",
            country="IN",
        )
    )
    active.addresses.add_address(
        Address(
            id="addr-other",
            user_id=OTHER_BUYER_ID,
            full_name="Vikram Shah",
            line1="1 Marine Drive",
            city="Mumbai",
            postal_code="400002",
            country="IN",
        )
    )

    active.catalogue.add_product("prod-001", "Notebook", 10.0)
    active.catalogue.add_variant("var-001", "prod-001", "A5", 10.0)
    active.catalogue.add_product("prod-002", "Pen", 25.5)
    active.catalogue.add_product("prod-003", "Lamp", 40.0)
    active.catalogue.add_variant("var-003", "prod-003", "Brass", 45.0)

    active.inventory.set_stock("prod-001", "var-001", available=5)
    active.inventory.set_stock("prod-002", None, available=10)
    active.inventory.set_stock("prod-003", "var-003", available=3)
    return active


def _notebook_line(quantity=2, **overrides):
    line = {"product_id": "prod-001", "variant_id": "var-001", "quantity": quantity, "unit_price": 10.0}
    line.update(overrides)
    return line


@pytest.fixture()
def place_order(stores):
    """Place an order through the command, returning the persisted Order."""
    from protean import current_domain

    from checkout.order.order import Order
    from checkout.order.placement import PlaceOrder

    def _place(items=None, buyer_id=BUYER_ID, shipping_address_id="addr-home", **kwargs):
        command = PlaceOrder(
            buyer_id=buyer_id,
            shipping_address_id=shipping_address_id,
            items=json.dumps(items if items is not None else [_notebook_line()]),
            **kwargs,
        )
        order_id = current_domain.process(command, asynchronous=False)
        return current_domain.repository_for(Order).get(order_id)

    return _place


@pytest.fixture()
def create_coupon():
    """Create a coupon through the command, returning the persisted Coupon."""
    from protean import current_domain

    from checkout.coupon.coupon import Coupon
    from checkout.coupon.management import CreateCoupon

    def _create(code="SAVE10", discount_type="percentage", **kwargs):
        if discount_type == "percentage":
            kwargs.setdefault("percentage", 10.0)
        for key in ("applicable_user_ids", "applicable_product_ids"):
            if key in kwargs and not isinstance(kwargs[key], str):
                kwargs[key] = json.dumps(kwargs[key])
        coupon_id = current_domain.process(
            CreateCoupon(code=code, discount_type=discount_type, **kwargs),
            asynchronous=False,
        )
        return current_domain.repository_for(Coupon).get(coupon_id)

    return _create
