"""Domain events for the Coupon and CouponRedemption aggregates."""

from protean.fields import DateTime, Float, Identifier, String

from checkout.domain import checkout


@checkout.event(part_of="Coupon")
class CouponCreated:
    """A promotional coupon was configured."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    discount_type = String(required=True)
    created_at = DateTime(required=True)


@checkout.event(part_of="Coupon")
class CouponUpdated:
    """A coupon's terms were edited."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    updated_at = DateTime(required=True)


@checkout.event(part_of="Coupon")
class CouponDeactivated:
    """A coupon was withdrawn. Existing redemptions are unaffected."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    deactivated_at = DateTime(required=True)


@checkout.event(part_of="CouponRedemption")
class CouponRedeemed:
    """A buyer applied a coupon to an order."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    user_id = Identifier(required=True)
    order_id = Identifier(required=True)
    discount_amount = Float(required=True)
    redeemed_at = DateTime(required=True)
