"""Coupon administration — create, edit, deactivate and list coupons."""

import json

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from checkout.coupon.coupon import Coupon
from checkout.coupon.discount import find_coupon_by_code
from checkout.domain import checkout
from checkout.errors import Conflict, NotFound

logger = structlog.get_logger(__name__)


@checkout.command(part_of="Coupon")
class CreateCoupon:
    code = String(required=True, max_length=50)
    discount_type = String(required=True, max_length=20)
    name = String(max_length=255)
    description = Text()
    percentage = Float()
    max_discount = Float(default=0.0)
    min_order_value = Float(default=0.0)
    usage_limit = Integer()
    valid_from = DateTime()
    valid_to = DateTime()
    is_active = Boolean(default=True)
    applicable_user_ids = Text()  # JSON array
    applicable_product_ids = Text()  # JSON array


@checkout.command(part_of="Coupon")
class UpdateCoupon:
    coupon_id = Identifier(required=True)
    name = String(max_length=255)
    description = Text()
    discount_type = String(max_length=20)
    percentage = Float()
    max_discount = Float()
    min_order_value = Float()
    usage_limit = Integer()
    valid_from = DateTime()
    valid_to = DateTime()
    is_active = Boolean()
    applicable_user_ids = Text()  # JSON array
    applicable_product_ids = Text()  # JSON array


@checkout.command(part_of="Coupon")
class DeactivateCoupon:
    coupon_id = Identifier(required=True)


def _load_ids(raw):
    if raw is None:
        return None
    return json.loads(raw) if isinstance(raw, str) else list(raw)


def _get_coupon(coupon_id) -> Coupon:
    try:
        return current_domain.repository_for(Coupon).get(coupon_id)
    except ObjectNotFoundError:
        raise NotFound("CouponNotFound", f"Coupon {coupon_id} not found")


@checkout.command_handler(part_of=Coupon)
class CouponManagementHandler:
    @handle(CreateCoupon)
    def create_coupon(self, command):
        if find_coupon_by_code(command.code) is not None:
            raise Conflict("DuplicateCouponCode", f"Coupon code {command.code.upper()} already exists")

        coupon = Coupon.create(
            code=command.code,
            discount_type=command.discount_type,
            name=command.name,
            description=command.description,
            percentage=command.percentage,
            max_discount=command.max_discount,
            min_order_value=command.min_order_value,
            usage_limit=command.usage_limit,
            valid_from=command.valid_from,
            valid_to=command.valid_to,
            is_active=command.is_active if command.is_active is not None else True,
            applicable_user_ids=_load_ids(command.applicable_user_ids),
            applicable_product_ids=_load_ids(command.applicable_product_ids),
        )
        current_domain.repository_for(Coupon).add(coupon)
        logger.info("Coupon created", coupon_id=str(coupon.id), code=coupon.code, discount_type=coupon.discount_type)
        return str(coupon.id)

    @handle(UpdateCoupon)
    def update_coupon(self, command):
        coupon = _get_coupon(command.coupon_id)
        coupon.update(
            name=command.name,
            description=command.description,
            discount_type=command.discount_type,
            percentage=command.percentage,
            max_discount=command.max_discount,
            min_order_value=command.min_order_value,
            usage_limit=command.usage_limit,
            valid_from=command.valid_from,
            valid_to=command.valid_to,
            is_active=command.is_active,
            applicable_user_ids=_load_ids(command.applicable_user_ids),
            applicable_product_ids=_load_ids(command.applicable_product_ids),
        )
        current_domain.repository_for(Coupon).add(coupon)

    @handle(DeactivateCoupon)
    def deactivate_coupon(self, command):
        coupon = _get_coupon(command.coupon_id)
        coupon.deactivate()
        current_domain.repository_for(Coupon).add(coupon)
        logger.info("Coupon deactivated", coupon_id=str(coupon.id), code=coupon.code)


def list_coupons(is_active: bool | None = None) -> list[Coupon]:
    """All coupons, newest first, optionally filtered by the active flag."""
    query = current_domain.repository_for(Coupon)._dao.query
    if is_active is not None:
        query = query.filter(is_active=is_active)
    coupons = query.all().items
    return sorted(coupons, key=lambda c: c.created_at, reverse=True)


def get_coupon(coupon_id) -> Coupon:
    return _get_coupon(coupon_id)
