"""Pydantic request/response schemas for the Checkout API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class OrderItemRequest(BaseModel):
    product_id: str
    variant_id: str | None = None
    quantity: int | float  # Validated by the domain, so bad values fail as InvalidQuantity
    unit_price: float | None = None
    total_price: float | None = None
    title: str | None = None
    variant_name: str | None = None


class CreateOrderRequest(BaseModel):
    shipping_address_id: str
    billing_address_id: str | None = None
    items: list[OrderItemRequest]
    coupon_code: str | None = None
    coupon_id: str | None = None
    shipping_fee: float = Field(ge=0, default=0.0)
    tax: float = Field(ge=0, default=0.0)
    currency: str | None = None
    notes: str | None = None
    metadata: dict[str, str] | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "shipping_address_id": "addr-001",
                    "items": [
                        {"product_id": "prod-001", "variant_id": "var-001", "quantity": 2, "unit_price": 10.0},
                    ],
                    "coupon_code": "SAVE10",
                    "shipping_fee": 0.0,
                    "tax": 0.0,
                }
            ]
        }
    }


class UpdateShippingAddressRequest(BaseModel):
    address_id: str


class CancelOrderRequest(BaseModel):
    reason: str | None = None


class AdvanceStatusRequest(BaseModel):
    status: str
    reason: str | None = None


# ---------------------------------------------------------------------------
# Order Response Schemas
# ---------------------------------------------------------------------------
class LineItemResponse(BaseModel):
    id: str
    product_id: str
    variant_id: str | None = None
    title: str | None = None
    variant_name: str | None = None
    quantity: int
    unit_price: float
    subtotal: float
    currency: str | None = None


class PricingResponse(BaseModel):
    items_subtotal: float
    items_discount_total: float
    order_discount: float
    shipping_fee: float
    shipping_fee_waived: float
    tax: float
    grand_total: float


class AddressResponse(BaseModel):
    full_name: str
    line1: str
    line2: str | None = None
    city: str
    state: str | None = None
    postal_code: str
    country: str
    phone: str | None = None


class OrderResponse(BaseModel):
    id: str
    order_number: str
    buyer_id: str
    status: str
    payment_status: str
    currency: str
    items: list[LineItemResponse]
    pricing: PricingResponse
    coupon_id: str | None = None
    coupon_code: str | None = None
    shipping_address_id: str
    shipping_address: AddressResponse
    billing_address_id: str | None = None
    billing_address: AddressResponse | None = None
    payment_attempt_ids: list[str] = []
    notes: str | None = None
    metadata: dict[str, str] = {}
    created_at: datetime | None = None
    updated_at: datetime | None = None
    cancelled_at: datetime | None = None

    @classmethod
    def from_order(cls, order) -> "OrderResponse":
        pricing = order.pricing
        return cls(
            id=str(order.id),
            order_number=order.order_number,
            buyer_id=str(order.buyer_id),
            status=order.status,
            payment_status=order.payment_status,
            currency=order.currency,
            items=[LineItemResponse(**item.snapshot()) for item in order.items],
            pricing=PricingResponse(
                items_subtotal=pricing.items_subtotal or 0.0,
                items_discount_total=pricing.items_discount_total or 0.0,
                order_discount=pricing.order_discount or 0.0,
                shipping_fee=pricing.shipping_fee or 0.0,
                shipping_fee_waived=pricing.shipping_fee_waived or 0.0,
                tax=pricing.tax or 0.0,
                grand_total=pricing.grand_total or 0.0,
            ),
            coupon_id=str(order.coupon_id) if order.coupon_id else None,
            coupon_code=order.coupon_code,
            shipping_address_id=str(order.shipping_address_id),
            shipping_address=AddressResponse(**order.shipping_address.to_dict()),
            billing_address_id=str(order.billing_address_id) if order.billing_address_id else None,
            billing_address=AddressResponse(**order.billing_address.to_dict()) if order.billing_address else None,
            payment_attempt_ids=order.attempt_ids,
            notes=order.notes,
            metadata=order.metadata_tags,
            created_at=order.created_at,
            updated_at=order.updated_at,
            cancelled_at=order.cancelled_at,
        )


class OrderPageResponse(BaseModel):
    orders: list[OrderResponse]
    page: int
    limit: int
    total: int
    pages: int


class CancelOrderResponse(BaseModel):
    order_id: str
    status: str
    changed: bool


class StatusResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Payment Schemas
# ---------------------------------------------------------------------------
class ProcessPaymentRequest(BaseModel):
    method: str

    model_config = {"json_schema_extra": {"examples": [{"method": "cod"}, {"method": "upi"}]}}


class PaymentResponse(BaseModel):
    method: str
    order_id: str
    attempt_id: str
    session_id: str | None = None
    amount: int | None = None  # minor units, gateway checkouts only
    currency: str | None = None
    key_id: str | None = None


class VerifyPaymentRequest(BaseModel):
    session_id: str
    payment_id: str
    signature: str
    order_id: str | None = None


class VerifyPaymentResponse(BaseModel):
    status: str = "paid"
    order_id: str
    attempt_id: str


# ---------------------------------------------------------------------------
# Coupon Schemas
# ---------------------------------------------------------------------------
class CreateCouponRequest(BaseModel):
    code: str
    discount_type: str
    name: str | None = None
    description: str | None = None
    percentage: float | None = None
    max_discount: float = Field(ge=0, default=0.0)
    min_order_value: float = Field(ge=0, default=0.0)
    usage_limit: int | None = Field(default=None, ge=1)
    valid_from: datetime | None = None
    valid_to: datetime | None = None
    is_active: bool = True
    applicable_user_ids: list[str] = []
    applicable_product_ids: list[str] = []

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "code": "SAVE10",
                    "discount_type": "percentage",
                    "percentage": 10,
                    "max_discount": 50,
                    "min_order_value": 0,
                }
            ]
        }
    }


class UpdateCouponRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    discount_type: str | None = None
    percentage: float | None = None
    max_discount: float | None = Field(default=None, ge=0)
    min_order_value: float | None = Field(default=None, ge=0)
    usage_limit: int | None = Field(default=None, ge=1)
    valid_from: datetime | None = None
    valid_to: datetime | None = None
    is_active: bool | None = None
    applicable_user_ids: list[str] | None = None
    applicable_product_ids: list[str] | None = None


class CouponResponse(BaseModel):
    id: str
    code: str
    name: str | None = None
    description: str | None = None
    discount_type: str
    percentage: float | None = None
    max_discount: float | None = None
    min_order_value: float | None = None
    usage_limit: int | None = None
    usage_count: int
    valid_from: datetime | None = None
    valid_to: datetime | None = None
    is_active: bool
    applicable_user_ids: list[str] = []
    applicable_product_ids: list[str] = []

    @classmethod
    def from_coupon(cls, coupon) -> "CouponResponse":
        return cls(
            id=str(coupon.id),
            code=coupon.code,
            name=coupon.name,
            description=coupon.description,
            discount_type=coupon.discount_type,
            percentage=coupon.percentage,
            max_discount=coupon.max_discount,
            min_order_value=coupon.min_order_value,
            usage_limit=coupon.usage_limit,
            usage_count=coupon.usage_count or 0,
            valid_from=coupon.valid_from,
            valid_to=coupon.valid_to,
            is_active=bool(coupon.is_active),
            applicable_user_ids=coupon.allowed_user_ids,
            applicable_product_ids=coupon.allowed_product_ids,
        )


class CouponIdResponse(BaseModel):
    coupon_id: str


class ValidateCouponRequest(BaseModel):
    code: str
    order_total: float = Field(ge=0)
    product_ids: list[str] = []


class ValidateCouponResponse(BaseModel):
    valid: bool = True
    discount_amount: float
    waives_shipping: bool
    coupon: CouponResponse
