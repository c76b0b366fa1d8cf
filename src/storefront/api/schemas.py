"""Pydantic request/response schemas for the Storefront API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands.
"""

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class CustomerInfoSchema(BaseModel):
    name: str
    email: str
    phone: str


class StatusResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    variant_id: str | None = None
    quantity: int = Field(ge=1, default=1)


class UpdateCartQuantityRequest(BaseModel):
    new_quantity: int = Field(ge=1)


class CartItemResponse(BaseModel):
    item_id: str
    product_id: str
    variant_id: str | None = None
    quantity: int


class CartResponse(BaseModel):
    customer_id: str
    items: list[CartItemResponse] = []


class ClearCartResponse(BaseModel):
    items_removed: int


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    customer: CustomerInfoSchema
    payment_method: str
    transaction_reference: str | None = None
    coupon_code: str | None = None
    notes: str | None = None
    currency: str = "BDT"
    return_url: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer": {
                        "name": "Rahim Uddin",
                        "email": "rahim@example.com",
                        "phone": "+880 1712-345678",
                    },
                    "payment_method": "bkash",
                    "transaction_reference": "TXN-8G7H6J5K",
                    "coupon_code": "WELCOME10",
                    "currency": "BDT",
                }
            ]
        }
    }


class OrderItemResponse(BaseModel):
    product_id: str
    variant_id: str | None = None
    product_name: str
    quantity: int
    price: float


class OrderResponse(BaseModel):
    order_id: str
    customer_id: str
    customer_name: str
    customer_email: str
    customer_phone: str
    status: str
    payment_status: str
    payment_method: str
    transaction_reference: str | None = None
    coupon_code: str | None = None
    subtotal: float
    discount_total: float
    total: float
    currency: str
    payment_url: str | None = None
    cancellation_reason: str | None = None
    items: list[OrderItemResponse] = []


class CheckoutResponse(BaseModel):
    order: OrderResponse
    payment_url: str | None = None
    warnings: list[str] = []


class ValidateCouponRequest(BaseModel):
    code: str
    subtotal: float = Field(ge=0)


class CouponDiscountResponse(BaseModel):
    code: str
    discount_type: str
    discount_value: float
    discount: float


# ---------------------------------------------------------------------------
# Order administration
# ---------------------------------------------------------------------------
class UpdateOrderStatusRequest(BaseModel):
    status: str
    reason: str | None = None


class UpdatePaymentStatusRequest(BaseModel):
    payment_status: str
    transaction_reference: str | None = None


class TransitionResponse(BaseModel):
    order_id: str
    status: str
    payment_status: str
    changed: bool
    notification_kind: str | None = None
    warning: str | None = None


class GatewayConfirmationResponse(BaseModel):
    order_id: str
    succeeded: bool
    status: str
    payment_status: str


class RetrySweepResponse(BaseModel):
    retried: int
