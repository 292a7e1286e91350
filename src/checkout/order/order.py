"""Order aggregate (CQRS) — a buyer's accepted checkout.

Orders are created once, complete with their line items, by the Order
Assembler. After that only the lifecycle (status, shipping destination)
and payment state change; line items and prices are frozen.

State Machine:
    pending -> processing -> shipped -> delivered -> returned
    pending / processing -> cancelled
"""

import json
import secrets
import string
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from checkout.domain import checkout
from checkout.errors import AccessDenied, BusinessRuleViolation, Conflict
from checkout.order.events import (
    OrderCancelled,
    OrderPaid,
    OrderPaymentPending,
    OrderPlaced,
    OrderStatusAdvanced,
    ShippingAddressChanged,
)

PRICE_TOLERANCE = 0.01
SUPPORTED_CURRENCIES = ("INR", "USD")


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class PaymentStatus(Enum):
    UNPAID = "unpaid"
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: {OrderStatus.RETURNED},
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.RETURNED: set(),  # Terminal
}

# The order can still be re-routed or cancelled
_OPEN_STATES = {OrderStatus.PENDING, OrderStatus.PROCESSING}


def grand_total_for(items_subtotal, items_discount_total, order_discount, shipping_fee, tax):
    """grand_total = max(0, subtotal - item discounts - order discount) + shipping + tax."""
    discounted = max(0.0, items_subtotal - items_discount_total - order_discount)
    return round(discounted + shipping_fee + tax, 2)


def generate_order_number(now=None):
    """``YYYYMMDD-XXXXXX`` with an upper-case base-36 suffix."""
    now = now or datetime.now(UTC)
    alphabet = string.digits + string.ascii_uppercase
    suffix = "".join(secrets.choice(alphabet) for _ in range(6))
    return f"{now:%Y%m%d}-{suffix}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@checkout.value_object(part_of="Order")
class AddressSnapshot:
    """An address copied onto the order at the time it was chosen.

    Later edits in the buyer's address book do not reach existing orders.
    """

    full_name = String(required=True, max_length=255)
    line1 = String(required=True, max_length=255)
    line2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)
    phone = String(max_length=30)


@checkout.value_object(part_of="Order")
class OrderPricing:
    """Monetary summary locked at checkout."""

    items_subtotal = Float(default=0.0, min_value=0.0)
    items_discount_total = Float(default=0.0, min_value=0.0)
    order_discount = Float(default=0.0, min_value=0.0)
    shipping_fee = Float(default=0.0, min_value=0.0)
    shipping_fee_waived = Float(default=0.0, min_value=0.0)
    tax = Float(default=0.0, min_value=0.0)
    grand_total = Float(default=0.0, min_value=0.0)

    @property
    def discount_total(self):
        return round((self.items_discount_total or 0.0) + (self.order_discount or 0.0), 2)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@checkout.entity(part_of="Order")
class OrderLineItem:
    """One purchased SKU with the server-authoritative price at checkout."""

    product_id = Identifier(required=True)
    variant_id = Identifier()
    title = String(max_length=255)
    variant_name = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    subtotal = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="INR")

    def snapshot(self) -> dict:
        return {
            "id": str(self.id),
            "product_id": str(self.product_id),
            "variant_id": str(self.variant_id) if self.variant_id else None,
            "title": self.title,
            "variant_name": self.variant_name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "subtotal": self.subtotal,
            "currency": self.currency,
        }


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@checkout.aggregate
class Order:
    order_number = String(required=True, max_length=20)
    buyer_id = Identifier(required=True)
    items = HasMany(OrderLineItem)
    currency = String(max_length=3, default="INR")
    pricing = ValueObject(OrderPricing)
    coupon_id = Identifier()
    coupon_code = String(max_length=50)
    shipping_address_id = Identifier(required=True)
    shipping_address = ValueObject(AddressSnapshot)
    billing_address_id = Identifier()
    billing_address = ValueObject(AddressSnapshot)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.UNPAID.value)
    payment_attempt_ids = Text()  # JSON array of PaymentAttempt ids
    notes = Text()
    order_metadata = Text()  # JSON object of string -> string integration tags
    created_at = DateTime()
    updated_at = DateTime()
    cancelled_at = DateTime()

    @invariant.post
    def grand_total_must_follow_pricing_formula(self):
        p = self.pricing
        if p is None:
            return
        expected = grand_total_for(
            p.items_subtotal or 0.0,
            p.items_discount_total or 0.0,
            p.order_discount or 0.0,
            p.shipping_fee or 0.0,
            p.tax or 0.0,
        )
        if abs((p.grand_total or 0.0) - expected) > PRICE_TOLERANCE:
            raise ValidationError({"pricing": [f"Grand total {p.grand_total} does not match components ({expected})"]})

    @invariant.post
    def items_subtotal_must_match_line_items(self):
        if not self.items or self.pricing is None:
            return
        lines = round(sum(item.subtotal for item in self.items), 2)
        if abs(lines - (self.pricing.items_subtotal or 0.0)) > PRICE_TOLERANCE:
            raise ValidationError({"pricing": ["Items subtotal does not match the line items"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        buyer_id,
        order_number,
        items_data,
        pricing,
        currency,
        shipping_address_id,
        shipping_address,
        billing_address_id=None,
        billing_address=None,
        coupon_id=None,
        coupon_code=None,
        notes=None,
        metadata=None,
    ):
        """Create an order with all of its line items.

        Args:
            items_data: List of dicts with product_id, variant_id, title,
                        variant_name, quantity, unit_price, subtotal.
            pricing: Dict with the OrderPricing fields.
            shipping_address / billing_address: Address snapshot dicts.
                Billing defaults to the shipping address.
        """
        now = datetime.now(UTC)
        line_items = [OrderLineItem(currency=currency, **item) for item in items_data]

        order = cls(
            order_number=order_number,
            buyer_id=buyer_id,
            items=line_items,
            currency=currency,
            pricing=OrderPricing(**pricing),
            coupon_id=coupon_id,
            coupon_code=coupon_code,
            shipping_address_id=shipping_address_id,
            shipping_address=AddressSnapshot(**shipping_address),
            billing_address_id=billing_address_id or shipping_address_id,
            billing_address=AddressSnapshot(**(billing_address or shipping_address)),
            status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.UNPAID.value,
            payment_attempt_ids=json.dumps([]),
            notes=notes,
            order_metadata=json.dumps({str(k): str(v) for k, v in (metadata or {}).items()}),
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                buyer_id=str(buyer_id),
                items=json.dumps([item.snapshot() for item in order.items]),
                item_count=len(order.items),
                currency=currency,
                items_subtotal=order.pricing.items_subtotal,
                discount_total=order.pricing.discount_total,
                shipping_fee=order.pricing.shipping_fee,
                tax=order.pricing.tax,
                grand_total=order.pricing.grand_total,
                coupon_code=coupon_code,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------
    @property
    def attempt_ids(self) -> list[str]:
        return json.loads(self.payment_attempt_ids) if self.payment_attempt_ids else []

    @property
    def metadata_tags(self) -> dict:
        return json.loads(self.order_metadata) if self.order_metadata else {}

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID.value

    def ensure_owned_by(self, buyer_id):
        if str(self.buyer_id) != str(buyer_id):
            raise AccessDenied("Unauthorized", "Order belongs to another buyer")

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    def assert_can_transition(self, target_status):
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise BusinessRuleViolation(
                "InvalidStatusTransition",
                f"Cannot transition from {current.value} to {target_status.value}",
            )

    def _assert_open(self, action):
        if OrderStatus(self.status) not in _OPEN_STATES:
            raise BusinessRuleViolation("OrderLocked", f"Cannot {action} an order that is {self.status}")

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def change_shipping_address(self, address_id, snapshot):
        """Re-route an order that has not shipped yet."""
        self._assert_open("change the shipping address of")

        previous_address_id = self.shipping_address_id
        now = datetime.now(UTC)
        with atomic_change(self):
            self.shipping_address_id = address_id
            self.shipping_address = AddressSnapshot(**snapshot)
            self.updated_at = now

        self.raise_(
            ShippingAddressChanged(
                order_id=str(self.id),
                previous_address_id=str(previous_address_id) if previous_address_id else None,
                new_address_id=str(address_id),
                changed_at=now,
            )
        )

    def cancel(self, reason=None) -> bool:
        """Cancel the order. Returns False when it was already cancelled."""
        if self.status == OrderStatus.CANCELLED.value:
            return False
        self._assert_open("cancel")

        previous_status = self.status
        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = OrderStatus.CANCELLED.value
            self.cancelled_at = now
            self.updated_at = now

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                buyer_id=str(self.buyer_id),
                previous_status=previous_status,
                reason=reason,
                cancelled_at=now,
            )
        )
        return True

    def advance_to(self, target_status: OrderStatus):
        """Move along the fulfillment lifecycle (processing, shipped, delivered, returned)."""
        self.assert_can_transition(target_status)

        previous_status = self.status
        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = target_status.value
            self.updated_at = now

        self.raise_(
            OrderStatusAdvanced(
                order_id=str(self.id),
                previous_status=previous_status,
                new_status=target_status.value,
                changed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Payment state
    # -------------------------------------------------------------------
    def assert_payable(self):
        if self.is_paid:
            raise Conflict("AlreadyPaid", f"Order {self.order_number} is already paid")
        if self.status in (OrderStatus.CANCELLED.value, OrderStatus.RETURNED.value):
            raise BusinessRuleViolation("OrderLocked", f"Cannot pay for an order that is {self.status}")

    def record_payment_attempt(self, attempt_id, method, amount):
        """Link a payment attempt and mark the order as awaiting payment."""
        self.assert_payable()

        ids = self.attempt_ids
        if str(attempt_id) not in ids:
            ids.append(str(attempt_id))

        with atomic_change(self):
            self.payment_attempt_ids = json.dumps(ids)
            self.payment_status = PaymentStatus.PENDING.value
            self.updated_at = datetime.now(UTC)

        self.raise_(
            OrderPaymentPending(
                order_id=str(self.id),
                payment_attempt_id=str(attempt_id),
                method=method,
                amount=amount,
            )
        )

    def mark_paid(self, attempt_id, captured_amount):
        """Settle the order. One attempt must cover the full grand total."""
        self.assert_payable()
        if captured_amount + PRICE_TOLERANCE < self.pricing.grand_total:
            raise BusinessRuleViolation(
                "PartialPayment",
                f"Captured {captured_amount:.2f} does not cover grand total {self.pricing.grand_total:.2f}",
            )

        ids = self.attempt_ids
        if str(attempt_id) not in ids:
            ids.append(str(attempt_id))

        now = datetime.now(UTC)
        with atomic_change(self):
            self.payment_attempt_ids = json.dumps(ids)
            self.payment_status = PaymentStatus.PAID.value
            self.updated_at = now

        self.raise_(
            OrderPaid(
                order_id=str(self.id),
                payment_attempt_id=str(attempt_id),
                amount=captured_amount,
                paid_at=now,
            )
        )
