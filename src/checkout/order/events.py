"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from checkout.domain import checkout


@checkout.event(part_of="Order")
class OrderPlaced:
    """A buyer's checkout was accepted and recorded as an order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    buyer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of line item snapshots
    item_count = Integer(required=True)
    currency = String(required=True)
    items_subtotal = Float(required=True)
    discount_total = Float(default=0.0)
    shipping_fee = Float(default=0.0)
    tax = Float(default=0.0)
    grand_total = Float(required=True)
    coupon_code = String()
    placed_at = DateTime(required=True)


@checkout.event(part_of="Order")
class ShippingAddressChanged:
    """The destination of an unshipped order was changed."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_address_id = Identifier()
    new_address_id = Identifier(required=True)
    changed_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderCancelled:
    """An order was cancelled before shipping."""

    __version__ = 1

    order_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    previous_status = String(required=True)
    reason = String()
    cancelled_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderStatusAdvanced:
    """An order moved one step along its fulfillment lifecycle."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderPaymentPending:
    """A payment attempt was opened against the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_attempt_id = Identifier(required=True)
    method = String(required=True)
    amount = Float(required=True)


@checkout.event(part_of="Order")
class OrderPaid:
    """A payment attempt captured the order's full grand total."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_attempt_id = Identifier(required=True)
    amount = Float(required=True)
    paid_at = DateTime(required=True)
