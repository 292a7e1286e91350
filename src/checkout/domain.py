"""Checkout bounded context — order placement, discounts, payments and order lifecycle.

Turns a buyer's checkout request into a durably recorded order, validates and
redeems coupons, tracks payment attempts (cash on delivery or hosted gateway
checkout) and enforces the order status state machine.

Catalogue, inventory, address book and buyer profiles live outside this
context and are reached through the ports in ``checkout.stores``.
"""

from protean.domain import Domain

# Domain Composition Root
checkout = Domain(name="checkout")
