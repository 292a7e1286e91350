"""Order placement — the Order Assembler.

Turns a buyer's checkout request into a recorded order:

    1. resolve shipping/billing addresses (must belong to the buyer)
    2. price every line from the catalogue, pre-checking stock
    3. apply an optional coupon through the Discount Engine
    4. compute the grand total
    5. reserve stock with the conditional decrement, line by line
    6. claim one coupon use from the shared usage counter
    7. record the order, coupon and redemption, and append the order to the
       buyer's history

Step 7 runs in its own unit of work inside the handler, so the order, coupon
and redemption commit together or not at all. Stock and coupon usage live in
shared stores, so every decrement and the claimed use are given back when
any step fails, the commit included.
"""

import json
import os

import structlog
from protean import handle
from protean.core.unit_of_work import UnitOfWork
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from checkout.coupon.coupon import Coupon, DiscountType
from checkout.coupon.discount import evaluate_coupon, find_coupon_by_code
from checkout.coupon.redemption import CouponRedemption
from checkout.domain import checkout
from checkout.errors import BusinessRuleViolation, Conflict, CouponRejected, InvalidRequest
from checkout.order.order import SUPPORTED_CURRENCIES, Order, generate_order_number, grand_total_for
from checkout.order.pricing import price_items
from checkout.stores import get_stores

logger = structlog.get_logger(__name__)

_ORDER_NUMBER_ATTEMPTS = 5


@checkout.command(part_of="Order")
class PlaceOrder:
    buyer_id = Identifier(required=True)
    shipping_address_id = Identifier(required=True)
    billing_address_id = Identifier()
    items = Text(required=True)  # JSON: list of {product_id, variant_id, quantity, unit_price, total_price}
    coupon_code = String(max_length=50)
    coupon_id = Identifier()
    shipping_fee = Float(default=0.0, min_value=0.0)
    tax = Float(default=0.0, min_value=0.0)
    currency = String(max_length=3)
    notes = Text()
    order_metadata = Text()  # JSON object of string -> string


def default_currency() -> str:
    return os.environ.get("CHECKOUT_DEFAULT_CURRENCY", "INR").upper()


def _resolve_currency(requested) -> str:
    currency = (requested or default_currency()).upper()
    if currency not in SUPPORTED_CURRENCIES:
        raise InvalidRequest("InvalidCurrency", f"Currency {currency} is not supported")
    return currency


def _resolve_address(addresses, buyer_id, address_id, label):
    address = addresses.find_owned_address(str(buyer_id), str(address_id))
    if address is None:
        raise BusinessRuleViolation("InvalidAddress", f"{label} address {address_id} not found for this buyer")
    return address


def _resolve_coupon(coupon_code, coupon_id) -> Coupon | None:
    """Look a coupon up by code and/or id. Both given must name the same coupon."""
    by_code = find_coupon_by_code(coupon_code) if coupon_code else None
    if not coupon_id:
        return by_code

    repo = current_domain.repository_for(Coupon)
    by_id = next(iter(repo._dao.query.filter(id=str(coupon_id)).all().items), None)
    if coupon_code and (by_code is None or by_id is None or str(by_code.id) != str(by_id.id)):
        raise BusinessRuleViolation("CouponMismatch", "Coupon code and coupon id refer to different coupons")
    return by_id


def _unique_order_number() -> str:
    repo = current_domain.repository_for(Order)
    for _ in range(_ORDER_NUMBER_ATTEMPTS):
        number = generate_order_number()
        if repo.find_by_number(number) is None:
            return number
    raise Conflict("OrderNumberCollision", "Could not allocate a unique order number")


def _load_items(raw) -> list[dict]:
    try:
        items = json.loads(raw) if isinstance(raw, str) else raw
    except ValueError:
        raise InvalidRequest("InvalidItems", "Items must be a JSON list")
    if not isinstance(items, list):
        raise InvalidRequest("InvalidItems", "Items must be a JSON list")
    return items


class InventoryReservation:
    """Applies conditional decrements and remembers them for compensation."""

    def __init__(self, inventory) -> None:
        self.inventory = inventory
        self.applied: list[tuple[str, str | None, int]] = []

    def reserve(self, product_id, variant_id, quantity) -> None:
        if not self.inventory.decrement_if_available(product_id, variant_id, quantity):
            logger.warning("Inventory race lost", product_id=product_id, variant_id=variant_id, quantity=quantity)
            raise Conflict(
                "InventoryRace",
                f"Stock for product {product_id} changed during checkout, please retry",
            )
        self.applied.append((product_id, variant_id, quantity))

    def release_all(self) -> None:
        for product_id, variant_id, quantity in reversed(self.applied):
            self.inventory.release(product_id, variant_id, quantity)
        self.applied = []


class CouponUsageClaim:
    """Consumes one coupon use from the shared counter, returned on failure."""

    def __init__(self, counter) -> None:
        self.counter = counter
        self.coupon_id: str | None = None

    def claim(self, coupon) -> int:
        claimed = self.counter.increment_if_below(str(coupon.id), coupon.usage_limit, coupon.usage_count or 0)
        if claimed is None:
            logger.warning("Coupon usage race lost", coupon_code=coupon.code, usage_limit=coupon.usage_limit)
            raise CouponRejected("UsageLimitReached", f"Coupon {coupon.code} has reached its usage limit")
        self.coupon_id = str(coupon.id)
        return claimed

    def release(self) -> None:
        if self.coupon_id is not None:
            self.counter.release(self.coupon_id)
            self.coupon_id = None


@checkout.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        stores = get_stores()
        buyer_id = str(command.buyer_id)

        # 1. Addresses
        shipping = _resolve_address(stores.addresses, buyer_id, command.shipping_address_id, "Shipping")
        billing = (
            _resolve_address(stores.addresses, buyer_id, command.billing_address_id, "Billing")
            if command.billing_address_id
            else shipping
        )
        currency = _resolve_currency(command.currency)

        # 2. Authoritative pricing
        lines = price_items(stores.catalogue, stores.inventory, _load_items(command.items))
        items_subtotal = round(sum(line.subtotal for line in lines), 2)

        # 3. Coupon
        shipping_fee = command.shipping_fee or 0.0
        tax = command.tax or 0.0
        order_discount = 0.0
        shipping_fee_waived = 0.0
        coupon = None
        if command.coupon_code or command.coupon_id:
            coupon = _resolve_coupon(command.coupon_code, command.coupon_id)
            result = evaluate_coupon(coupon, buyer_id, items_subtotal, [line.product_id for line in lines])
            order_discount = result.discount_amount
            if result.waives_shipping:
                shipping_fee_waived = shipping_fee
                shipping_fee = 0.0

        # 4. Totals
        pricing = {
            "items_subtotal": items_subtotal,
            "items_discount_total": 0.0,
            "order_discount": order_discount,
            "shipping_fee": shipping_fee,
            "shipping_fee_waived": shipping_fee_waived,
            "tax": tax,
            "grand_total": grand_total_for(items_subtotal, 0.0, order_discount, shipping_fee, tax),
        }

        order_metadata = json.loads(command.order_metadata) if command.order_metadata else None
        order = Order.place(
            buyer_id=buyer_id,
            order_number=_unique_order_number(),
            items_data=[line.as_item() for line in lines],
            pricing=pricing,
            currency=currency,
            shipping_address_id=shipping.id,
            shipping_address=shipping.snapshot(),
            billing_address_id=billing.id,
            billing_address=billing.snapshot(),
            coupon_id=str(coupon.id) if coupon else None,
            coupon_code=coupon.code if coupon else None,
            notes=command.notes,
            metadata=order_metadata,
        )

        # 5-7. Reserve stock, claim the coupon use, persist, record history
        reservation = InventoryReservation(stores.inventory)
        usage_claim = CouponUsageClaim(stores.coupon_usage)
        redemption = None
        try:
            for line in lines:
                reservation.reserve(line.product_id, line.variant_id, line.quantity)

            if coupon is not None:
                coupon.record_usage(usage_claim.claim(coupon))
                current_domain.repository_for(CouponRedemption).ensure_unique(coupon.id, buyer_id, order.id)
                redemption = CouponRedemption.record(
                    coupon_id=str(coupon.id),
                    user_id=buyer_id,
                    order_id=str(order.id),
                    discount_amount=(
                        shipping_fee_waived
                        if coupon.discount_type == DiscountType.FREE_SHIPPING.value
                        else order_discount
                    ),
                )

            # Committed here, inside the try, so a failing commit is compensated too
            with UnitOfWork():
                current_domain.repository_for(Order).add(order)
                if coupon is not None:
                    current_domain.repository_for(Coupon).add(coupon)
                    current_domain.repository_for(CouponRedemption).add(redemption)
                stores.buyers.append_order_history(buyer_id, str(order.id))
        except Exception as exc:
            logger.warning(
                "Order placement failed, releasing reserved stock",
                buyer_id=buyer_id,
                order_number=order.order_number,
                released_lines=len(reservation.applied),
                coupon_use_released=usage_claim.coupon_id is not None,
                error=str(exc),
            )
            usage_claim.release()
            reservation.release_all()
            raise

        if redemption is not None:
            logger.info(
                "Coupon redeemed",
                coupon_code=coupon.code,
                order_id=str(order.id),
                discount_amount=redemption.discount_amount,
                usage_count=coupon.usage_count,
            )
        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            buyer_id=buyer_id,
            grand_total=order.pricing.grand_total,
            coupon_code=order.coupon_code,
        )
        return str(order.id)
