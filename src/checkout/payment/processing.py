"""Payment method dispatch: cash on delivery or hosted gateway checkout."""

from protean.utils.globals import current_domain

from checkout.errors import InvalidRequest
from checkout.payment.cash_on_delivery import ProcessCashOnDelivery
from checkout.payment.gateway_checkout import InitiateGatewayPayment
from checkout.payment.payment import GATEWAY_METHODS, PaymentMethod


def process_payment(order_id, buyer_id, method) -> dict:
    """Start paying for an order with ``method`` (``cod``, ``card`` or ``upi``)."""
    method = (method or "").lower()
    if method == PaymentMethod.COD.value:
        attempt_id = current_domain.process(
            ProcessCashOnDelivery(order_id=order_id, buyer_id=buyer_id),
            asynchronous=False,
        )
        return {"method": method, "attempt_id": attempt_id, "order_id": str(order_id)}

    if method in GATEWAY_METHODS:
        session = current_domain.process(
            InitiateGatewayPayment(order_id=order_id, buyer_id=buyer_id, method=method),
            asynchronous=False,
        )
        return {"method": method, **session}

    raise InvalidRequest("InvalidPaymentMethod", f"Payment method {method!r} is not supported")
