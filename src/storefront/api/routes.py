"""FastAPI routes for the storefront — cart, checkout, order administration, gateway webhook.

Thin adapters that translate HTTP requests into commands and service calls.
Authentication is handled upstream; the caller's identity arrives in the
``X-Customer-Id`` header.
"""

from urllib.parse import urlencode

from fastapi import APIRouter, Header, HTTPException, Request
from fastapi.responses import RedirectResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from storefront.api.schemas import (
    AddToCartRequest,
    CartItemResponse,
    CartResponse,
    CheckoutRequest,
    CheckoutResponse,
    ClearCartResponse,
    CouponDiscountResponse,
    GatewayConfirmationResponse,
    OrderItemResponse,
    OrderResponse,
    RetrySweepResponse,
    StatusResponse,
    TransitionResponse,
    UpdateCartQuantityRequest,
    UpdateOrderStatusRequest,
    UpdatePaymentStatusRequest,
    ValidateCouponRequest,
)
from storefront.cart.items import AddToCart, ClearCart, RemoveFromCart, UpdateCartQuantity, get_cart
from storefront.checkout.orchestrator import CheckoutService
from storefront.checkout.validation import CustomerInfo
from storefront.config import get_settings
from storefront.coupon.validation import CouponValidator
from storefront.gateway import get_gateway
from storefront.gateway.port import SIGNATURE_PARAM, signed_payload
from storefront.notification.retry import RetryFailedNotifications
from storefront.order.lifecycle import OrderLifecycle, order_with_items

# Query parameter aliases the gateway uses in its callbacks
_ORDER_ID_PARAMS = ("id_order", "order_id", "o")
_INVOICE_ID_PARAMS = ("id_inv", "inv")


def _order_response(order, items=()) -> OrderResponse:
    return OrderResponse(
        order_id=str(order.id),
        customer_id=str(order.customer_id),
        customer_name=order.customer_name,
        customer_email=order.customer_email,
        customer_phone=order.customer_phone,
        status=order.status,
        payment_status=order.payment_status,
        payment_method=order.payment_method,
        transaction_reference=order.transaction_reference,
        coupon_code=order.coupon_code,
        subtotal=order.subtotal,
        discount_total=order.discount_total or 0.0,
        total=order.total,
        currency=order.currency,
        payment_url=order.payment_url,
        cancellation_reason=order.cancellation_reason,
        items=[
            OrderItemResponse(
                product_id=str(item.product_id),
                variant_id=str(item.variant_id) if item.variant_id else None,
                product_name=item.product_name,
                quantity=item.quantity,
                price=item.price,
            )
            for item in items
        ],
    )


def _transition_response(result) -> TransitionResponse:
    return TransitionResponse(
        order_id=str(result.order.id),
        status=result.order.status,
        payment_status=result.order.payment_status,
        changed=result.changed,
        notification_kind=result.notification_kind,
        warning=result.warning,
    )


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartResponse)
async def show_cart(customer_id: str = Header(alias="X-Customer-Id")) -> CartResponse:
    cart = get_cart(customer_id)
    items = cart.items if cart else []
    return CartResponse(
        customer_id=customer_id,
        items=[
            CartItemResponse(
                item_id=str(item.id),
                product_id=str(item.product_id),
                variant_id=str(item.variant_id) if item.variant_id else None,
                quantity=item.quantity,
            )
            for item in items
        ],
    )


@cart_router.post("/items", status_code=201, response_model=StatusResponse)
async def add_cart_item(body: AddToCartRequest, customer_id: str = Header(alias="X-Customer-Id")) -> StatusResponse:
    command = AddToCart(
        customer_id=customer_id,
        product_id=body.product_id,
        variant_id=body.variant_id,
        quantity=body.quantity,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.put("/items/{item_id}", response_model=StatusResponse)
async def update_cart_item(
    item_id: str,
    body: UpdateCartQuantityRequest,
    customer_id: str = Header(alias="X-Customer-Id"),
) -> StatusResponse:
    command = UpdateCartQuantity(customer_id=customer_id, item_id=item_id, new_quantity=body.new_quantity)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.delete("/items/{item_id}", response_model=StatusResponse)
async def remove_cart_item(item_id: str, customer_id: str = Header(alias="X-Customer-Id")) -> StatusResponse:
    current_domain.process(RemoveFromCart(customer_id=customer_id, item_id=item_id), asynchronous=False)
    return StatusResponse()


@cart_router.delete("", response_model=ClearCartResponse)
async def empty_cart(customer_id: str = Header(alias="X-Customer-Id")) -> ClearCartResponse:
    removed = current_domain.process(ClearCart(customer_id=customer_id), asynchronous=False)
    return ClearCartResponse(items_removed=removed)


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(tags=["checkout"])


@checkout_router.post("/checkout", status_code=201, response_model=CheckoutResponse)
async def place_order(
    body: CheckoutRequest,
    customer_id: str | None = Header(default=None, alias="X-Customer-Id"),
) -> CheckoutResponse:
    result = await CheckoutService().checkout(
        customer_id,
        get_cart(customer_id) if customer_id else None,
        CustomerInfo(name=body.customer.name, email=body.customer.email, phone=body.customer.phone),
        body.payment_method,
        transaction_reference=body.transaction_reference,
        coupon_code=body.coupon_code,
        notes=body.notes,
        currency=body.currency,
        return_url=body.return_url,
    )
    return CheckoutResponse(
        order=_order_response(result.order, result.items),
        payment_url=result.payment_url,
        warnings=list(result.warnings),
    )


@checkout_router.post("/coupons/validate", response_model=CouponDiscountResponse)
async def validate_coupon(
    body: ValidateCouponRequest,
    customer_id: str | None = Header(default=None, alias="X-Customer-Id"),
) -> CouponDiscountResponse:
    discount = CouponValidator().validate(body.code, body.subtotal, customer_id=customer_id)
    return CouponDiscountResponse(
        code=discount.code,
        discount_type=discount.discount_type,
        discount_value=discount.discount_value,
        discount=discount.amount,
    )


@checkout_router.get("/orders/{order_id}", response_model=OrderResponse)
async def show_order(order_id: str) -> OrderResponse:
    order, items = order_with_items(order_id)
    return _order_response(order, items)


# ---------------------------------------------------------------------------
# Admin Router
# ---------------------------------------------------------------------------
admin_router = APIRouter(prefix="/admin", tags=["admin"])


@admin_router.put("/orders/{order_id}/status", response_model=TransitionResponse)
async def change_order_status(order_id: str, body: UpdateOrderStatusRequest) -> TransitionResponse:
    result = await OrderLifecycle().update_status(order_id, body.status, reason=body.reason)
    return _transition_response(result)


@admin_router.put("/orders/{order_id}/payment-status", response_model=TransitionResponse)
async def change_payment_status(order_id: str, body: UpdatePaymentStatusRequest) -> TransitionResponse:
    result = await OrderLifecycle().update_payment_status(
        order_id,
        body.payment_status,
        transaction_reference=body.transaction_reference,
    )
    return _transition_response(result)


@admin_router.post("/notifications/retry", response_model=RetrySweepResponse)
async def retry_failed_notifications() -> RetrySweepResponse:
    retried = current_domain.process(RetryFailedNotifications(), asynchronous=False)
    return RetrySweepResponse(retried=retried or 0)


# ---------------------------------------------------------------------------
# Payments Router (gateway callbacks)
# ---------------------------------------------------------------------------
payments_router = APIRouter(prefix="/payments", tags=["payments"])


async def _callback_params(request: Request) -> dict:
    params = dict(request.query_params)
    if request.method == "POST" and request.headers.get("content-type", "").startswith("application/json"):
        body = await request.json()
        if isinstance(body, dict):
            params.update({key: str(value) for key, value in body.items() if value is not None})
    return params


def _first(params: dict, names) -> str | None:
    return next((params[name] for name in names if params.get(name)), None)


def _signature_valid(params: dict) -> bool:
    return get_gateway().verify_webhook_signature(signed_payload(params), params.get(SIGNATURE_PARAM, ""))


@payments_router.post("/digiseller/webhook", response_model=GatewayConfirmationResponse)
async def digiseller_webhook(request: Request) -> GatewayConfirmationResponse:
    params = await _callback_params(request)
    order_id = _first(params, _ORDER_ID_PARAMS)
    if not order_id:
        raise HTTPException(status_code=400, detail="Missing order id")
    if not _signature_valid(params):
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    confirmation = await OrderLifecycle().confirm_gateway_payment(
        order_id,
        status=params.get("status"),
        invoice_id=_first(params, _INVOICE_ID_PARAMS),
    )
    return GatewayConfirmationResponse(
        order_id=str(confirmation.order.id),
        succeeded=confirmation.succeeded,
        status=confirmation.order.status,
        payment_status=confirmation.order.payment_status,
    )


@payments_router.get("/digiseller/webhook")
async def digiseller_return(request: Request) -> RedirectResponse:
    """The customer's browser lands here after paying; send them to the confirmation page.

    An unsigned return changes nothing: the order waits for the signed server
    callback and the page shows the payment as pending.
    """
    params = await _callback_params(request)
    order_id = _first(params, _ORDER_ID_PARAMS)
    if not order_id:
        raise HTTPException(status_code=400, detail="Missing order id")

    if not _signature_valid(params):
        outcome = "pending"
    else:
        outcome = await _confirm_return(order_id, params)

    site_url = get_settings().site_url.rstrip("/")
    return RedirectResponse(
        url=f"{site_url}/order-confirmation?{urlencode({'orderId': order_id, 'status': outcome})}",
        status_code=302,
    )


async def _confirm_return(order_id, params) -> str:
    try:
        confirmation = await OrderLifecycle().confirm_gateway_payment(
            order_id,
            status=params.get("status"),
            invoice_id=_first(params, _INVOICE_ID_PARAMS),
        )
    except (ObjectNotFoundError, ValidationError):
        return "failed"
    return "success" if confirmation.succeeded else "failed"
