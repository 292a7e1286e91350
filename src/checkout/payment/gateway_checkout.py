"""Hosted gateway checkout — command and handler.

Opens a session with the payment gateway for the order's grand total (in
minor units) and records a pending attempt carrying the session id. The
client uses the returned session id and public key to show the gateway's
checkout page.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.errors import ExternalServiceError, InvalidRequest
from checkout.gateway import get_gateway
from checkout.order.listing import get_order_for_buyer
from checkout.order.order import Order
from checkout.payment.payment import GATEWAY_METHODS, PaymentAttempt

logger = structlog.get_logger(__name__)


def to_minor_units(amount: float) -> int:
    return int(round(amount * 100))


@checkout.command(part_of="PaymentAttempt")
class InitiateGatewayPayment:
    order_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    method = String(required=True, max_length=10)


@checkout.command_handler(part_of=PaymentAttempt)
class GatewayCheckoutHandler:
    @handle(InitiateGatewayPayment)
    def initiate_gateway_payment(self, command):
        if command.method not in GATEWAY_METHODS:
            raise InvalidRequest("InvalidPaymentMethod", f"Payment method {command.method} is not supported")

        order = get_order_for_buyer(command.order_id, command.buyer_id)
        order.assert_payable()

        gateway = get_gateway()
        amount = to_minor_units(order.pricing.grand_total)
        result = gateway.create_session(
            amount=amount,
            currency=order.currency,
            receipt=order.order_number,
            notes={"order_id": str(order.id), "buyer_id": str(order.buyer_id)},
        )
        if not result.success:
            logger.warning(
                "Gateway refused checkout session",
                order_id=str(order.id),
                provider=gateway.provider,
                reason=result.failure_reason,
            )
            raise ExternalServiceError("GatewayError", result.failure_reason or "Payment gateway error")

        attempt = PaymentAttempt.open_gateway(
            order,
            method=command.method,
            provider=gateway.provider,
            session_id=result.session_id,
            receipt=order.order_number,
        )
        current_domain.repository_for(PaymentAttempt).add(attempt)

        order.record_payment_attempt(attempt.id, command.method, attempt.requested_amount)
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Gateway checkout session opened",
            order_id=str(order.id),
            attempt_id=str(attempt.id),
            session_id=result.session_id,
            amount=amount,
        )
        return {
            "attempt_id": str(attempt.id),
            "order_id": str(order.id),
            "session_id": result.session_id,
            "amount": amount,
            "currency": order.currency,
            "key_id": gateway.key_id,
        }
