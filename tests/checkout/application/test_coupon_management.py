"""Application tests for coupon administration and stand-alone coupon validation."""

import json
from datetime import UTC, datetime, timedelta

import pytest
from checkout.coupon.coupon import Coupon
from checkout.coupon.discount import validate_coupon
from checkout.coupon.management import DeactivateCoupon, UpdateCoupon, get_coupon, list_coupons
from checkout.errors import Conflict, CouponRejected, NotFound
from protean import current_domain
from protean.exceptions import ValidationError


def _reload(coupon):
    return current_domain.repository_for(Coupon).get(coupon.id)


class TestCreateCoupon:
    def test_create_persists_coupon(self, create_coupon):
        coupon = create_coupon(name="Ten percent off", min_order_value=15.0)
        assert coupon.code == "SAVE10"
        assert coupon.percentage == 10.0
        assert coupon.min_order_value == 15.0
        assert coupon.is_active is True
        assert coupon.usage_count == 0

    def test_duplicate_code_rejected(self, create_coupon):
        create_coupon()
        with pytest.raises(Conflict) as exc:
            create_coupon(code="save10")
        assert exc.value.code == "DuplicateCouponCode"

    def test_invalid_configuration_rejected(self, create_coupon):
        with pytest.raises(ValidationError):
            create_coupon(percentage=0.0)

    def test_allow_lists(self, create_coupon):
        coupon = create_coupon(applicable_user_ids=["buyer-001"], applicable_product_ids=["prod-001", "prod-002"])
        assert coupon.allowed_user_ids == ["buyer-001"]
        assert coupon.allowed_product_ids == ["prod-001", "prod-002"]


class TestUpdateCoupon:
    def test_partial_update(self, create_coupon):
        coupon = create_coupon(name="Ten off", usage_limit=100)
        current_domain.process(UpdateCoupon(coupon_id=str(coupon.id), percentage=15.0), asynchronous=False)

        refreshed = _reload(coupon)
        assert refreshed.percentage == 15.0
        assert refreshed.name == "Ten off"
        assert refreshed.usage_limit == 100

    def test_update_allow_list(self, create_coupon):
        coupon = create_coupon()
        current_domain.process(
            UpdateCoupon(coupon_id=str(coupon.id), applicable_product_ids=json.dumps(["prod-003"])),
            asynchronous=False,
        )
        assert _reload(coupon).allowed_product_ids == ["prod-003"]

    def test_update_validity_window(self, create_coupon):
        coupon = create_coupon()
        valid_to = datetime.now(UTC) + timedelta(days=30)
        current_domain.process(UpdateCoupon(coupon_id=str(coupon.id), valid_to=valid_to), asynchronous=False)
        assert _reload(coupon).valid_to is not None

    def test_update_missing_coupon(self, stores):
        with pytest.raises(NotFound) as exc:
            current_domain.process(UpdateCoupon(coupon_id="cpn-404", name="x"), asynchronous=False)
        assert exc.value.code == "CouponNotFound"


class TestDeactivateCoupon:
    def test_deactivate_keeps_record(self, create_coupon):
        coupon = create_coupon()
        current_domain.process(DeactivateCoupon(coupon_id=str(coupon.id)), asynchronous=False)

        refreshed = _reload(coupon)
        assert refreshed.is_active is False
        assert refreshed.code == "SAVE10"

    def test_deactivated_code_cannot_be_reused(self, create_coupon):
        coupon = create_coupon()
        current_domain.process(DeactivateCoupon(coupon_id=str(coupon.id)), asynchronous=False)
        with pytest.raises(Conflict):
            create_coupon()


class TestCouponQueries:
    def test_list_newest_first(self, create_coupon):
        first = create_coupon(code="FIRST")
        second = create_coupon(code="SECOND")
        assert [c.code for c in list_coupons()] == [second.code, first.code]

    def test_list_filtered_by_active_flag(self, create_coupon):
        create_coupon(code="LIVE")
        dead = create_coupon(code="DEAD")
        current_domain.process(DeactivateCoupon(coupon_id=str(dead.id)), asynchronous=False)

        assert [c.code for c in list_coupons(is_active=True)] == ["LIVE"]
        assert [c.code for c in list_coupons(is_active=False)] == ["DEAD"]

    def test_get_coupon(self, create_coupon):
        coupon = create_coupon()
        assert get_coupon(coupon.id).code == "SAVE10"

    def test_get_missing_coupon(self, stores):
        with pytest.raises(NotFound):
            get_coupon("cpn-404")


class TestValidateCoupon:
    def test_valid_coupon_reports_discount(self, create_coupon):
        create_coupon()
        result = validate_coupon("save10", "buyer-001", 20.0, ["prod-001"])
        assert result.valid
        assert result.discount_amount == 2.0
        assert result.coupon.code == "SAVE10"

    def test_validation_does_not_consume_usage(self, create_coupon):
        coupon = create_coupon(usage_limit=1)
        validate_coupon("SAVE10", "buyer-001", 20.0)
        validate_coupon("SAVE10", "buyer-001", 20.0)
        assert _reload(coupon).usage_count == 0

    def test_unknown_code(self, stores):
        with pytest.raises(CouponRejected) as exc:
            validate_coupon("NOPE", "buyer-001", 20.0)
        assert exc.value.reason == "InvalidCoupon"

    def test_below_minimum(self, create_coupon):
        create_coupon(min_order_value=50.0)
        with pytest.raises(CouponRejected) as exc:
            validate_coupon("SAVE10", "buyer-001", 20.0)
        assert exc.value.reason == "MinOrderNotMet"
