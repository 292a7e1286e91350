"""Discount Engine — decides whether a coupon applies and what it is worth.

Pure computation over a Coupon and a basket summary. Checks run in a fixed
order and each failure carries its own reason, so the buyer learns exactly
why a code was refused:

    InvalidCoupon -> InactiveCoupon -> NotYetValid / Expired ->
    UsageLimitReached -> UserNotEligible -> ProductsNotEligible ->
    MinOrderNotMet

Nothing here consumes usage or writes records; the Order Assembler does
that once the order is committed.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

from protean.utils.globals import current_domain

from checkout.coupon.coupon import Coupon, DiscountType, as_utc, normalize_code
from checkout.errors import CouponRejected


@dataclass(frozen=True)
class DiscountResult:
    coupon: Coupon
    discount_amount: float
    waives_shipping: bool = False

    @property
    def valid(self) -> bool:
        return True


def find_coupon_by_code(code) -> Coupon | None:
    normalized = normalize_code(code)
    if not normalized:
        return None
    matches = current_domain.repository_for(Coupon)._dao.query.filter(code=normalized).all().items
    return matches[0] if matches else None


def compute_discount(coupon: Coupon, order_total: float) -> float:
    if coupon.discount_type == DiscountType.PERCENTAGE.value:
        amount = order_total * (coupon.percentage or 0.0) / 100
        if coupon.max_discount:
            amount = min(amount, coupon.max_discount)
    elif coupon.discount_type == DiscountType.FIXED.value:
        amount = min(coupon.max_discount or 0.0, order_total)
    else:
        amount = 0.0
    return max(0.0, round(amount, 2))


def evaluate_coupon(
    coupon: Coupon | None,
    user_id,
    order_total: float,
    product_ids=(),
    at: datetime | None = None,
) -> DiscountResult:
    """Run every eligibility check against ``coupon`` and price the discount.

    Raises CouponRejected with the reason of the first failing check.
    """
    if coupon is None:
        raise CouponRejected("InvalidCoupon", "Coupon does not exist")

    if not coupon.is_active:
        raise CouponRejected("InactiveCoupon", f"Coupon {coupon.code} is no longer active")

    now = at or datetime.now(UTC)
    if coupon.valid_from and now < as_utc(coupon.valid_from):
        raise CouponRejected("NotYetValid", f"Coupon {coupon.code} is not valid yet")
    if coupon.valid_to and now > as_utc(coupon.valid_to):
        raise CouponRejected("Expired", f"Coupon {coupon.code} has expired")

    if not coupon.has_remaining_uses():
        raise CouponRejected("UsageLimitReached", f"Coupon {coupon.code} has reached its usage limit")

    allowed_users = coupon.allowed_user_ids
    if allowed_users and str(user_id) not in allowed_users:
        raise CouponRejected("UserNotEligible", f"Coupon {coupon.code} is not available to this buyer")

    allowed_products = coupon.allowed_product_ids
    if allowed_products and not set(allowed_products) & {str(p) for p in product_ids}:
        raise CouponRejected("ProductsNotEligible", f"Coupon {coupon.code} does not apply to these products")

    if order_total < (coupon.min_order_value or 0.0):
        raise CouponRejected(
            "MinOrderNotMet",
            f"Coupon {coupon.code} needs an order of at least {coupon.min_order_value:.2f}",
        )

    return DiscountResult(
        coupon=coupon,
        discount_amount=compute_discount(coupon, order_total),
        waives_shipping=coupon.discount_type == DiscountType.FREE_SHIPPING.value,
    )


def validate_coupon(code, user_id, order_total: float, product_ids=()) -> DiscountResult:
    """Look a code up and evaluate it. Used by the validate endpoint and checkout."""
    return evaluate_coupon(find_coupon_by_code(code), user_id, order_total, product_ids)
