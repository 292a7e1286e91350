"""Admin status advancement — command and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.errors import BusinessRuleViolation
from checkout.order.cancellation import cancel_and_release
from checkout.order.listing import load_order
from checkout.order.order import Order, OrderStatus


@checkout.command(part_of="Order")
class AdvanceOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    reason = String(max_length=500)


@checkout.command_handler(part_of=Order)
class AdvanceOrderStatusHandler:
    @handle(AdvanceOrderStatus)
    def advance_order_status(self, command):
        try:
            target = OrderStatus(command.status)
        except ValueError:
            raise BusinessRuleViolation("InvalidStatusTransition", f"Unknown order status {command.status}")

        order = load_order(command.order_id)

        # Cancellation goes through the same path as buyer cancellations
        if target == OrderStatus.CANCELLED:
            order.assert_can_transition(target)
            cancel_and_release(order, reason=command.reason)
            return order.status

        order.advance_to(target)
        current_domain.repository_for(Order).add(order)
        return order.status
