"""CouponRedemption aggregate — one buyer applying one coupon to one order."""

from datetime import UTC, datetime

from protean.fields import DateTime, Float, Identifier

from checkout.coupon.events import CouponRedeemed
from checkout.domain import checkout
from checkout.errors import Conflict


@checkout.aggregate
class CouponRedemption:
    coupon_id = Identifier(required=True)
    user_id = Identifier(required=True)
    order_id = Identifier(required=True)
    discount_amount = Float(required=True, min_value=0.0)
    redeemed_at = DateTime()

    @classmethod
    def record(cls, coupon_id, user_id, order_id, discount_amount):
        now = datetime.now(UTC)
        redemption = cls(
            coupon_id=coupon_id,
            user_id=user_id,
            order_id=order_id,
            discount_amount=discount_amount,
            redeemed_at=now,
        )
        redemption.raise_(
            CouponRedeemed(
                coupon_id=str(coupon_id),
                user_id=str(user_id),
                order_id=str(order_id),
                discount_amount=discount_amount,
                redeemed_at=now,
            )
        )
        return redemption


@checkout.repository(part_of=CouponRedemption)
class CouponRedemptionRepository:
    def find_for(self, coupon_id, user_id, order_id) -> list[CouponRedemption]:
        return self._dao.query.filter(
            coupon_id=str(coupon_id),
            user_id=str(user_id),
            order_id=str(order_id),
        ).all().items

    def ensure_unique(self, coupon_id, user_id, order_id) -> None:
        """At most one redemption per (coupon, user, order)."""
        if self.find_for(coupon_id, user_id, order_id):
            raise Conflict(
                "DuplicateRedemption",
                f"Coupon {coupon_id} was already redeemed for order {order_id}",
            )

    def for_coupon(self, coupon_id) -> list[CouponRedemption]:
        return self._dao.query.filter(coupon_id=str(coupon_id)).all().items
