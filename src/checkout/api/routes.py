"""FastAPI routes for the Checkout domain — orders, payments and coupons.

Buyer identity comes from the ``X-Buyer-Id`` header set by the upstream
authentication layer.
"""

import json

from fastapi import APIRouter, Header
from protean.utils.globals import current_domain

from checkout.api.schemas import (
    AdvanceStatusRequest,
    CancelOrderRequest,
    CancelOrderResponse,
    CouponIdResponse,
    CouponResponse,
    CreateCouponRequest,
    CreateOrderRequest,
    OrderPageResponse,
    OrderResponse,
    PaymentResponse,
    ProcessPaymentRequest,
    StatusResponse,
    UpdateCouponRequest,
    UpdateShippingAddressRequest,
    ValidateCouponRequest,
    ValidateCouponResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from checkout.coupon.discount import validate_coupon
from checkout.coupon.management import CreateCoupon, DeactivateCoupon, UpdateCoupon, get_coupon, list_coupons
from checkout.order.address import ChangeShippingAddress
from checkout.order.cancellation import CancelOrder
from checkout.order.listing import get_order_for_buyer, list_all_orders, list_orders_for_buyer, load_order
from checkout.order.placement import PlaceOrder
from checkout.order.status import AdvanceOrderStatus
from checkout.payment.processing import process_payment
from checkout.payment.verification import verify_gateway_payment


def _page_response(result: dict) -> OrderPageResponse:
    return OrderPageResponse(
        orders=[OrderResponse.from_order(order) for order in result["orders"]],
        page=result["page"],
        limit=result["limit"],
        total=result["total"],
        pages=result["pages"],
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
async def create_order(body: CreateOrderRequest, x_buyer_id: str = Header()) -> OrderResponse:
    """Place an order from a checkout request."""
    command = PlaceOrder(
        buyer_id=x_buyer_id,
        shipping_address_id=body.shipping_address_id,
        billing_address_id=body.billing_address_id,
        items=json.dumps([item.model_dump(exclude_none=True) for item in body.items]),
        coupon_code=body.coupon_code,
        coupon_id=body.coupon_id,
        shipping_fee=body.shipping_fee,
        tax=body.tax,
        currency=body.currency,
        notes=body.notes,
        order_metadata=json.dumps(body.metadata) if body.metadata else None,
    )
    order_id = current_domain.process(command, asynchronous=False)
    return OrderResponse.from_order(load_order(order_id))


@order_router.get("", response_model=OrderPageResponse)
async def list_my_orders(x_buyer_id: str = Header(), page: int = 1, limit: int = 10) -> OrderPageResponse:
    return _page_response(list_orders_for_buyer(x_buyer_id, page=page, limit=limit))


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, x_buyer_id: str = Header()) -> OrderResponse:
    return OrderResponse.from_order(get_order_for_buyer(order_id, x_buyer_id))


@order_router.put("/{order_id}/shipping-address", response_model=OrderResponse)
async def update_shipping_address(
    order_id: str,
    body: UpdateShippingAddressRequest,
    x_buyer_id: str = Header(),
) -> OrderResponse:
    command = ChangeShippingAddress(order_id=order_id, buyer_id=x_buyer_id, address_id=body.address_id)
    current_domain.process(command, asynchronous=False)
    return OrderResponse.from_order(load_order(order_id))


@order_router.post("/{order_id}/cancel", response_model=CancelOrderResponse)
async def cancel_order(
    order_id: str,
    body: CancelOrderRequest | None = None,
    x_buyer_id: str = Header(),
) -> CancelOrderResponse:
    command = CancelOrder(order_id=order_id, buyer_id=x_buyer_id, reason=body.reason if body else None)
    changed = current_domain.process(command, asynchronous=False)
    return CancelOrderResponse(order_id=order_id, status=load_order(order_id).status, changed=bool(changed))


# ---------------------------------------------------------------------------
# Payment Routes (nested under orders)
# ---------------------------------------------------------------------------
@order_router.post("/{order_id}/payments", status_code=201, response_model=PaymentResponse)
async def pay_for_order(order_id: str, body: ProcessPaymentRequest, x_buyer_id: str = Header()) -> PaymentResponse:
    """Start a cash-on-delivery or hosted gateway payment."""
    return PaymentResponse(**process_payment(order_id, x_buyer_id, body.method))


payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/verify", response_model=VerifyPaymentResponse)
async def verify_payment(body: VerifyPaymentRequest, x_buyer_id: str = Header()) -> VerifyPaymentResponse:
    """Verify the signature the gateway returned to the client."""
    result = verify_gateway_payment(
        session_id=body.session_id,
        payment_id=body.payment_id,
        signature=body.signature,
        buyer_id=x_buyer_id,
        order_id=body.order_id,
    )
    return VerifyPaymentResponse(order_id=result["order_id"], attempt_id=result["attempt_id"])


# ---------------------------------------------------------------------------
# Admin Router
# ---------------------------------------------------------------------------
admin_router = APIRouter(prefix="/admin", tags=["admin"])


@admin_router.get("/orders", response_model=OrderPageResponse)
async def list_orders(page: int = 1, limit: int = 10, status: str | None = None) -> OrderPageResponse:
    return _page_response(list_all_orders(page=page, limit=limit, status=status))


@admin_router.put("/orders/{order_id}/status", response_model=OrderResponse)
async def advance_order_status(order_id: str, body: AdvanceStatusRequest) -> OrderResponse:
    command = AdvanceOrderStatus(order_id=order_id, status=body.status, reason=body.reason)
    current_domain.process(command, asynchronous=False)
    return OrderResponse.from_order(load_order(order_id))


# ---------------------------------------------------------------------------
# Coupon Router
# ---------------------------------------------------------------------------
coupon_router = APIRouter(prefix="/coupons", tags=["coupons"])


@coupon_router.post("", status_code=201, response_model=CouponIdResponse)
async def create_coupon(body: CreateCouponRequest) -> CouponIdResponse:
    command = CreateCoupon(
        code=body.code,
        discount_type=body.discount_type,
        name=body.name,
        description=body.description,
        percentage=body.percentage,
        max_discount=body.max_discount,
        min_order_value=body.min_order_value,
        usage_limit=body.usage_limit,
        valid_from=body.valid_from,
        valid_to=body.valid_to,
        is_active=body.is_active,
        applicable_user_ids=json.dumps(body.applicable_user_ids),
        applicable_product_ids=json.dumps(body.applicable_product_ids),
    )
    coupon_id = current_domain.process(command, asynchronous=False)
    return CouponIdResponse(coupon_id=coupon_id)


@coupon_router.get("", response_model=list[CouponResponse])
async def get_coupons(is_active: bool | None = None) -> list[CouponResponse]:
    return [CouponResponse.from_coupon(c) for c in list_coupons(is_active=is_active)]


@coupon_router.get("/{coupon_id}", response_model=CouponResponse)
async def get_coupon_by_id(coupon_id: str) -> CouponResponse:
    return CouponResponse.from_coupon(get_coupon(coupon_id))


@coupon_router.put("/{coupon_id}", response_model=CouponResponse)
async def update_coupon(coupon_id: str, body: UpdateCouponRequest) -> CouponResponse:
    command = UpdateCoupon(
        coupon_id=coupon_id,
        name=body.name,
        description=body.description,
        discount_type=body.discount_type,
        percentage=body.percentage,
        max_discount=body.max_discount,
        min_order_value=body.min_order_value,
        usage_limit=body.usage_limit,
        valid_from=body.valid_from,
        valid_to=body.valid_to,
        is_active=body.is_active,
        applicable_user_ids=json.dumps(body.applicable_user_ids) if body.applicable_user_ids is not None else None,
        applicable_product_ids=(
            json.dumps(body.applicable_product_ids) if body.applicable_product_ids is not None else None
        ),
    )
    current_domain.process(command, asynchronous=False)
    return CouponResponse.from_coupon(get_coupon(coupon_id))


@coupon_router.delete("/{coupon_id}", response_model=StatusResponse)
async def deactivate_coupon(coupon_id: str) -> StatusResponse:
    """Soft delete: the coupon is deactivated, redemptions are kept."""
    current_domain.process(DeactivateCoupon(coupon_id=coupon_id), asynchronous=False)
    return StatusResponse(status="deactivated")


@coupon_router.post("/validate", response_model=ValidateCouponResponse)
async def validate(body: ValidateCouponRequest, x_buyer_id: str = Header()) -> ValidateCouponResponse:
    """Price a coupon against a basket without consuming a use."""
    result = validate_coupon(body.code, x_buyer_id, body.order_total, body.product_ids)
    return ValidateCouponResponse(
        discount_amount=result.discount_amount,
        waives_shipping=result.waives_shipping,
        coupon=CouponResponse.from_coupon(result.coupon),
    )
