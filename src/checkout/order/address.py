"""Shipping address change — command and handler."""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.errors import BusinessRuleViolation
from checkout.order.listing import get_order_for_buyer
from checkout.order.order import Order
from checkout.stores import get_stores


@checkout.command(part_of="Order")
class ChangeShippingAddress:
    order_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    address_id = Identifier(required=True)


@checkout.command_handler(part_of=Order)
class ChangeShippingAddressHandler:
    @handle(ChangeShippingAddress)
    def change_shipping_address(self, command):
        order = get_order_for_buyer(command.order_id, command.buyer_id)

        address = get_stores().addresses.find_owned_address(str(command.buyer_id), str(command.address_id))
        if address is None:
            raise BusinessRuleViolation("InvalidAddress", f"Address {command.address_id} not found for this buyer")

        order.change_shipping_address(address.id, address.snapshot())
        current_domain.repository_for(Order).add(order)
