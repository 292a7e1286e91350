"""Cash on delivery — command and handler.

No money moves at checkout: the order gets a pending COD attempt for its
grand total, collected when the parcel is handed over. Asking again reuses
the open attempt instead of stacking new ones.
"""

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.order.listing import get_order_for_buyer
from checkout.order.order import Order
from checkout.payment.payment import PaymentAttempt, PaymentMethod

logger = structlog.get_logger(__name__)


@checkout.command(part_of="PaymentAttempt")
class ProcessCashOnDelivery:
    order_id = Identifier(required=True)
    buyer_id = Identifier(required=True)


@checkout.command_handler(part_of=PaymentAttempt)
class CashOnDeliveryHandler:
    @handle(ProcessCashOnDelivery)
    def process_cash_on_delivery(self, command):
        order = get_order_for_buyer(command.order_id, command.buyer_id)
        order.assert_payable()

        repo = current_domain.repository_for(PaymentAttempt)
        attempt = repo.find_open_cod(order.id)
        if attempt is None:
            attempt = PaymentAttempt.open_cash_on_delivery(order)
            repo.add(attempt)
            logger.info(
                "Cash on delivery attempt opened",
                order_id=str(order.id),
                attempt_id=str(attempt.id),
                amount=attempt.requested_amount,
            )

        order.record_payment_attempt(attempt.id, PaymentMethod.COD.value, attempt.requested_amount)
        current_domain.repository_for(Order).add(order)
        return str(attempt.id)
