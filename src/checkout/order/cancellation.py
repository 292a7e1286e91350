"""Order cancellation — command and handler.

Cancelling gives the order's reserved stock back to the inventory store.
Cancelling an already-cancelled order changes nothing.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.order.listing import get_order_for_buyer, load_order
from checkout.order.order import Order
from checkout.stores import get_stores

logger = structlog.get_logger(__name__)


@checkout.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    buyer_id = Identifier()  # Omitted for admin cancellations
    reason = String(max_length=500)


def release_order_stock(order: Order) -> None:
    inventory = get_stores().inventory
    for item in order.items:
        inventory.release(
            str(item.product_id),
            str(item.variant_id) if item.variant_id else None,
            item.quantity,
        )


def cancel_and_release(order: Order, reason=None) -> bool:
    """Cancel ``order`` and release its stock. Returns False for a repeat cancel."""
    if not order.cancel(reason=reason):
        return False

    release_order_stock(order)
    current_domain.repository_for(Order).add(order)
    logger.info("Order cancelled", order_id=str(order.id), order_number=order.order_number, reason=reason)
    return True


@checkout.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        if command.buyer_id:
            order = get_order_for_buyer(command.order_id, command.buyer_id)
        else:
            order = load_order(command.order_id)
        return cancel_and_release(order, reason=command.reason)
