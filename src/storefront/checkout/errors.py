"""Checkout error taxonomy.

Every failure a checkout or a payment attempt can surface to its caller
derives from ``CheckoutError``. Rule violations inside the domain model
(illegal state transitions, field constraints) keep using protean's
``ValidationError``.
"""

from enum import Enum


class CheckoutError(Exception):
    """Base class for checkout failures."""

    code = "checkout_error"


class CheckoutValidationError(CheckoutError):
    """User input is malformed. Nothing has been persisted."""

    code = "validation_error"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")


class EmptyCartError(CheckoutError):
    """Checkout was attempted with no items. Nothing has been persisted."""

    code = "empty_cart"

    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class CouponRejection(Enum):
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    USAGE_LIMIT_REACHED = "usage_limit_reached"
    BELOW_MINIMUM = "below_minimum"
    ALREADY_REDEEMED = "already_redeemed"


_COUPON_MESSAGES = {
    CouponRejection.NOT_FOUND: "Invalid coupon code",
    CouponRejection.EXPIRED: "This coupon is not valid at this time",
    CouponRejection.USAGE_LIMIT_REACHED: "This coupon has reached its usage limit",
    CouponRejection.BELOW_MINIMUM: "Order total is below the minimum for this coupon",
    CouponRejection.ALREADY_REDEEMED: "You have already used this coupon",
}


class CouponError(CheckoutError):
    """The coupon code cannot be applied to this order."""

    code = "coupon_error"

    def __init__(self, reason: CouponRejection, coupon_code: str | None = None, detail: str | None = None):
        self.reason = reason
        self.coupon_code = coupon_code
        message = _COUPON_MESSAGES[reason]
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class PersistenceError(CheckoutError):
    """A store write failed."""

    code = "persistence_error"

    def __init__(self, message: str, order_id: str | None = None):
        self.order_id = order_id
        super().__init__(message)


class PartialPersistenceError(PersistenceError):
    """The order was written but some or all of its items were not.

    The order stays pending with the items that made it, for manual
    reconciliation. Retrying the checkout automatically could charge twice.
    """

    code = "partial_persistence"

    def __init__(self, order_id: str, persisted: int, failed: int):
        self.persisted = persisted
        self.failed = failed
        super().__init__(
            f"Order {order_id} was saved but {failed} of {persisted + failed} items were not",
            order_id=order_id,
        )


class GatewayError(CheckoutError):
    """The payment gateway could not issue a payment URL (or timed out)."""

    code = "gateway_error"

    def __init__(self, reason: str, order_id: str | None = None):
        self.reason = reason
        self.order_id = order_id
        super().__init__(reason)


class NotificationError(CheckoutError):
    """A notification could not be enqueued. Logged, never surfaced."""

    code = "notification_error"
