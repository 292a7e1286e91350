"""Shared BDD fixtures and step definitions for checkout."""

import pytest
from checkout.coupon.discount import find_coupon_by_code
from checkout.gateway import get_gateway
from checkout.order.cancellation import CancelOrder
from checkout.order.order import Order
from checkout.payment.payment import PaymentAttempt
from checkout.payment.processing import process_payment
from checkout.payment.verification import verify_gateway_payment
from protean import current_domain
from pytest_bdd import given, parsers, then

BUYER_ID = "buyer-001"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def result():
    """Container for what the When steps produced (order, payment, error)."""
    return {"order": None, "payment": None, "error": None}


def _reload_order(result):
    return current_domain.repository_for(Order).get(result["order"].id)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("the catalogue is stocked", target_fixture="catalogue")
def catalogue_is_stocked(stores):
    return stores


@given(
    parsers.cfparse(
        'the buyer has placed an order for {quantity:d} of variant "{variant_id}" of product "{product_id}"'
    )
)
def buyer_has_placed_order(result, place_order, quantity, variant_id, product_id, catalogue):
    variant = catalogue.catalogue.find_variant(variant_id)
    result["order"] = place_order(
        items=[
            {
                "product_id": product_id,
                "variant_id": variant_id,
                "quantity": quantity,
                "unit_price": variant.price,
            }
        ]
    )


@given("the buyer has cancelled the order")
def buyer_has_cancelled(result):
    current_domain.process(
        CancelOrder(order_id=result["order"].id, buyer_id=BUYER_ID),
        asynchronous=False,
    )


@given(parsers.cfparse('the buyer has paid by "{method}"'))
def buyer_has_paid(result, method):
    session = process_payment(result["order"].id, BUYER_ID, method)
    payment_id, signature = get_gateway().complete_checkout(session["session_id"])
    verify_gateway_payment(session["session_id"], payment_id, signature, buyer_id=BUYER_ID)


# ---------------------------------------------------------------------------
# Then steps (shared)
# ---------------------------------------------------------------------------
@then(parsers.cfparse('{available:d} units of variant "{variant_id}" of product "{product_id}" remain'))
def variant_stock_remaining(catalogue, available, variant_id, product_id):
    assert catalogue.inventory.get_level(product_id, variant_id).available == available


@then(parsers.cfparse('{available:d} units of product "{product_id}" remain'))
def product_stock_remaining(catalogue, available, product_id):
    assert catalogue.inventory.get_level(product_id, None).available == available


@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(result, status):
    assert _reload_order(result).status == status


@then(parsers.cfparse('the order payment status is "{status}"'))
def order_payment_status_is(result, status):
    assert _reload_order(result).payment_status == status


@then(parsers.cfparse('coupon "{code}" has been used {count:d} time'))
@then(parsers.cfparse('coupon "{code}" has been used {count:d} times'))
def coupon_usage_is(code, count):
    assert find_coupon_by_code(code).usage_count == count


@then(parsers.cfparse('the payment attempt is "{status}"'))
def payment_attempt_status_is(result, status):
    attempt = current_domain.repository_for(PaymentAttempt).get(result["payment"]["attempt_id"])
    assert attempt.status == status
