"""HTTP mapping of checkout errors.

Protean's own handlers (``register_exception_handlers``) cover domain
``ValidationError`` (400) and ``ObjectNotFoundError`` (404); the handlers
below cover the checkout taxonomy. Every body carries the error code plus the
field, reason or order id that applies.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from storefront.checkout.errors import (
    CheckoutError,
    CheckoutValidationError,
    CouponError,
    EmptyCartError,
    GatewayError,
    PersistenceError,
)


def _body(exc: CheckoutError, **extra) -> dict:
    return {"error": exc.code, "message": str(exc), **extra}


async def _validation_error(request: Request, exc: CheckoutValidationError):
    return JSONResponse(status_code=422, content=_body(exc, field=exc.field, reason=exc.reason))


async def _empty_cart(request: Request, exc: EmptyCartError):
    return JSONResponse(status_code=400, content=_body(exc))


async def _coupon_error(request: Request, exc: CouponError):
    return JSONResponse(status_code=400, content=_body(exc, reason=exc.reason.value))


async def _gateway_error(request: Request, exc: GatewayError):
    message = "Payment could not be started and your order was cancelled. Please try again."
    return JSONResponse(
        status_code=502,
        content={"error": exc.code, "message": message, "reason": exc.reason, "order_id": exc.order_id},
    )


async def _persistence_error(request: Request, exc: PersistenceError):
    return JSONResponse(status_code=500, content=_body(exc, order_id=exc.order_id))


def register_storefront_exception_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(CheckoutValidationError, _validation_error)
    app.add_exception_handler(EmptyCartError, _empty_cart)
    app.add_exception_handler(CouponError, _coupon_error)
    app.add_exception_handler(GatewayError, _gateway_error)
    app.add_exception_handler(PersistenceError, _persistence_error)
