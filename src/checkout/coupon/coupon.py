"""Coupon aggregate (CQRS) — promotional discount codes.

A coupon grants a percentage, fixed or free-shipping discount within a
validity window, optionally restricted to specific buyers or products and
capped by a usage limit. Codes are stored upper-case and matched
case-insensitively.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String, Text

from checkout.coupon.events import CouponCreated, CouponDeactivated, CouponUpdated
from checkout.domain import checkout
from checkout.errors import CouponRejected


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    FREE_SHIPPING = "free_shipping"


# Fields an administrator may edit after creation
EDITABLE_FIELDS = (
    "name",
    "description",
    "discount_type",
    "percentage",
    "max_discount",
    "min_order_value",
    "usage_limit",
    "valid_from",
    "valid_to",
    "is_active",
    "applicable_user_ids",
    "applicable_product_ids",
)


def normalize_code(code):
    return (code or "").strip().upper()


def as_utc(value):
    """Treat naive datetimes as UTC so windows compare consistently."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@checkout.aggregate
class Coupon:
    code = String(required=True, max_length=50)
    name = String(max_length=255)
    description = Text()
    discount_type = String(choices=DiscountType, required=True)
    percentage = Float(min_value=0.0)
    max_discount = Float(default=0.0, min_value=0.0)
    min_order_value = Float(default=0.0, min_value=0.0)
    usage_limit = Integer(min_value=1)
    usage_count = Integer(default=0, min_value=0)
    valid_from = DateTime()
    valid_to = DateTime()
    is_active = Boolean(default=True)
    applicable_user_ids = Text()  # JSON array, empty = any buyer
    applicable_product_ids = Text()  # JSON array, empty = any product
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def usage_count_must_not_exceed_limit(self):
        if self.usage_limit is not None and (self.usage_count or 0) > self.usage_limit:
            raise ValidationError({"usage_count": ["Usage count cannot exceed the usage limit"]})

    @invariant.post
    def validity_window_must_be_ordered(self):
        if self.valid_from and self.valid_to and as_utc(self.valid_from) > as_utc(self.valid_to):
            raise ValidationError({"valid_to": ["Coupon cannot expire before it becomes valid"]})

    @invariant.post
    def percentage_must_be_within_bounds(self):
        if self.discount_type == DiscountType.PERCENTAGE.value:
            if self.percentage is None or not (0 < self.percentage <= 100):
                raise ValidationError({"percentage": ["Percentage coupons need a percentage in (0, 100]"]})

    @invariant.post
    def fixed_coupon_must_have_amount(self):
        if self.discount_type == DiscountType.FIXED.value and not self.max_discount:
            raise ValidationError({"max_discount": ["Fixed coupons need a positive discount amount"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        code,
        discount_type,
        name=None,
        description=None,
        percentage=None,
        max_discount=0.0,
        min_order_value=0.0,
        usage_limit=None,
        valid_from=None,
        valid_to=None,
        is_active=True,
        applicable_user_ids=None,
        applicable_product_ids=None,
    ):
        now = datetime.now(UTC)
        coupon = cls(
            code=normalize_code(code),
            name=name,
            description=description,
            discount_type=discount_type,
            percentage=percentage,
            max_discount=max_discount or 0.0,
            min_order_value=min_order_value or 0.0,
            usage_limit=usage_limit,
            usage_count=0,
            valid_from=valid_from or now,
            valid_to=valid_to,
            is_active=is_active,
            applicable_user_ids=json.dumps([str(u) for u in applicable_user_ids or []]),
            applicable_product_ids=json.dumps([str(p) for p in applicable_product_ids or []]),
            created_at=now,
            updated_at=now,
        )
        coupon.raise_(
            CouponCreated(
                coupon_id=str(coupon.id),
                code=coupon.code,
                discount_type=coupon.discount_type,
                created_at=now,
            )
        )
        return coupon

    # -------------------------------------------------------------------
    # Allow-lists
    # -------------------------------------------------------------------
    @property
    def allowed_user_ids(self) -> list[str]:
        return json.loads(self.applicable_user_ids) if self.applicable_user_ids else []

    @property
    def allowed_product_ids(self) -> list[str]:
        return json.loads(self.applicable_product_ids) if self.applicable_product_ids else []

    # -------------------------------------------------------------------
    # Administration
    # -------------------------------------------------------------------
    def update(self, **changes):
        """Apply an administrator's edits. Unknown keys are ignored, ``None`` means unchanged."""
        now = datetime.now(UTC)
        with atomic_change(self):
            for field_name in EDITABLE_FIELDS:
                value = changes.get(field_name)
                if value is None:
                    continue
                if field_name in ("applicable_user_ids", "applicable_product_ids"):
                    value = json.dumps([str(v) for v in value])
                setattr(self, field_name, value)
            self.updated_at = now

        self.raise_(CouponUpdated(coupon_id=str(self.id), code=self.code, updated_at=now))

    def deactivate(self):
        """Soft-delete: the coupon stops validating but keeps its history."""
        if not self.is_active:
            return

        now = datetime.now(UTC)
        with atomic_change(self):
            self.is_active = False
            self.updated_at = now

        self.raise_(CouponDeactivated(coupon_id=str(self.id), code=self.code, deactivated_at=now))

    # -------------------------------------------------------------------
    # Usage
    # -------------------------------------------------------------------
    def has_remaining_uses(self) -> bool:
        return self.usage_limit is None or (self.usage_count or 0) < self.usage_limit

    def record_usage(self, claimed_count=None):
        """Consume one use. Checked again at write time, not only during validation.

        ``claimed_count`` is the count the shared usage counter handed out for
        this use. It replaces the count loaded with the aggregate, which may
        be stale once other checkouts have redeemed the coupon.
        """
        usage_count = claimed_count if claimed_count is not None else (self.usage_count or 0) + 1
        if self.usage_limit is not None and usage_count > self.usage_limit:
            raise CouponRejected("UsageLimitReached", f"Coupon {self.code} has reached its usage limit")

        with atomic_change(self):
            self.usage_count = usage_count
            self.updated_at = datetime.now(UTC)
