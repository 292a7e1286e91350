"""Gateway payment verification — command and handler.

The client returns (session id, payment id, signature) after paying on the
gateway's page. The signature is recomputed with the server-held secret and
compared in constant time:

- match: the attempt is captured and the order marked paid
- mismatch: the attempt is failed with ``SignatureMismatch`` and the order
  is left untouched

The handler reports a mismatch instead of raising so the failed attempt is
committed; ``verify_gateway_payment`` turns it into ``InvalidSignature``.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.errors import IntegrityFailure, NotFound
from checkout.gateway import get_gateway
from checkout.order.listing import load_order
from checkout.order.order import Order
from checkout.payment.payment import PaymentAttempt
from checkout.payment.signature import signature_matches

logger = structlog.get_logger(__name__)

SIGNATURE_MISMATCH = "SignatureMismatch"


@checkout.command(part_of="PaymentAttempt")
class VerifyGatewayPayment:
    session_id = String(required=True, max_length=255)
    payment_id = String(required=True, max_length=255)
    signature = String(required=True, max_length=255)
    buyer_id = Identifier()
    order_id = Identifier()


@checkout.command_handler(part_of=PaymentAttempt)
class VerificationHandler:
    @handle(VerifyGatewayPayment)
    def verify_gateway_payment(self, command):
        repo = current_domain.repository_for(PaymentAttempt)
        attempt = repo.find_pending_by_session(command.session_id)
        if attempt is None:
            raise NotFound("PendingPaymentNotFound", f"No pending payment for session {command.session_id}")
        if command.order_id and str(command.order_id) != str(attempt.order_id):
            # The session belongs to another order; treat it as unknown for this one
            raise NotFound(
                "PendingPaymentNotFound",
                f"No pending payment for session {command.session_id} on order {command.order_id}",
            )
        if command.buyer_id:
            load_order(attempt.order_id).ensure_owned_by(command.buyer_id)

        gateway = get_gateway()
        if not signature_matches(gateway.key_secret, command.session_id, command.payment_id, command.signature):
            attempt.fail(SIGNATURE_MISMATCH, payment_id=command.payment_id, signature=command.signature)
            repo.add(attempt)
            logger.warning(
                "Payment signature mismatch",
                attempt_id=str(attempt.id),
                order_id=str(attempt.order_id),
                session_id=command.session_id,
            )
            return {"verified": False, "attempt_id": str(attempt.id), "order_id": str(attempt.order_id)}

        attempt.capture(payment_id=command.payment_id, signature=command.signature)
        repo.add(attempt)

        order = load_order(attempt.order_id)
        order.mark_paid(attempt.id, attempt.captured_amount)
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Payment captured",
            attempt_id=str(attempt.id),
            order_id=str(order.id),
            amount=attempt.captured_amount,
            transaction_id=command.payment_id,
        )
        return {"verified": True, "attempt_id": str(attempt.id), "order_id": str(order.id)}


def verify_gateway_payment(session_id, payment_id, signature, buyer_id=None, order_id=None) -> dict:
    result = current_domain.process(
        VerifyGatewayPayment(
            session_id=session_id,
            payment_id=payment_id,
            signature=signature,
            buyer_id=buyer_id,
            order_id=order_id,
        ),
        asynchronous=False,
    )
    if not result["verified"]:
        raise IntegrityFailure("InvalidSignature", "Payment signature could not be verified")
    return result
