"""Order aggregate (CQRS) — the durable result of a checkout.

Amounts are frozen at creation: ``total == subtotal - discount_total`` where
the subtotal is the sum of the item prices resolved at checkout. Nothing
recomputes them afterwards, even if the catalogue changes.

Order status and payment status are independent state machines driven by
administrators (and by the payment gateway's webhook):

    status:   pending | processing | shipped  -> any other status
              completed | cancelled           -> refunded
              refunded                        (final)

    payment:  pending  -> paid | failed
              paid     -> pending | failed | refunded
              failed   -> pending | paid
              refunded (final)

Setting a field to its current value is a no-op and raises no event.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String, Text

from storefront.domain import storefront
from storefront.order.events import OrderPlaced, OrderStatusChanged, PaymentLinkIssued, PaymentStatusChanged
from storefront.pricing.currency import format_amount


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


_OPEN_STATES = {OrderStatus.PENDING, OrderStatus.PROCESSING, OrderStatus.SHIPPED}

# State machine transition maps
_VALID_TRANSITIONS = {
    **{state: set(OrderStatus) - {state} for state in _OPEN_STATES},
    OrderStatus.COMPLETED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: {OrderStatus.REFUNDED},
    OrderStatus.REFUNDED: set(),  # Terminal
}

_VALID_PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.PAID: {PaymentStatus.PENDING, PaymentStatus.FAILED, PaymentStatus.REFUNDED},
    PaymentStatus.FAILED: {PaymentStatus.PENDING, PaymentStatus.PAID},
    PaymentStatus.REFUNDED: set(),  # Terminal
}


def _parse(enum_cls, value, field):
    try:
        return value if isinstance(value, enum_cls) else enum_cls(str(value).strip().lower())
    except ValueError:
        raise ValidationError({field: [f"Unknown {field.replace('_', ' ')}: {value}"]}) from None


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    customer_id = Identifier(required=True)

    # Customer snapshot, copied verbatim from checkout input
    customer_name = String(required=True, max_length=100)
    customer_email = String(required=True, max_length=255)
    customer_phone = String(required=True, max_length=20)

    # Amounts in the settlement currency
    subtotal = Float(required=True, min_value=0.0)
    discount_total = Float(default=0.0, min_value=0.0)
    total = Float(required=True, min_value=0.0)
    currency = String(required=True, max_length=3)

    payment_method = String(required=True, max_length=50)
    transaction_reference = String(max_length=255)
    coupon_code = String(max_length=50)
    notes = Text()

    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_url = String(max_length=2048)
    cancellation_reason = String(max_length=500)

    # Filled by fulfillment after payment
    delivery_platform = String(max_length=100)
    delivery_instructions = Text()
    delivery_secret = Text()

    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def discount_cannot_exceed_subtotal(self):
        if (self.discount_total or 0) > (self.subtotal or 0):
            raise ValidationError({"discount_total": ["Discount cannot exceed the subtotal"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id,
        customer_name,
        customer_email,
        customer_phone,
        subtotal,
        discount_total,
        currency,
        payment_method,
        transaction_reference=None,
        coupon_code=None,
        notes=None,
    ):
        """Create a pending order. The total is derived once, here."""
        now = datetime.now(UTC)
        order = cls(
            customer_id=customer_id,
            customer_name=customer_name,
            customer_email=customer_email,
            customer_phone=customer_phone,
            subtotal=subtotal,
            discount_total=discount_total,
            total=subtotal - discount_total,
            currency=currency,
            payment_method=payment_method,
            transaction_reference=transaction_reference,
            coupon_code=coupon_code,
            notes=notes,
            status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=str(customer_id),
                subtotal=order.subtotal,
                discount_total=order.discount_total,
                total=order.total,
                currency=currency,
                payment_method=payment_method,
                coupon_code=coupon_code,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def change_status(self, new_status, reason=None) -> bool:
        """Move the order to ``new_status``. Returns False when already there."""
        target = _parse(OrderStatus, new_status, "status")
        current = OrderStatus(self.status)
        if target == current:
            return False
        if target not in _VALID_TRANSITIONS[current]:
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target.value}"]})

        now = datetime.now(UTC)
        self.status = target.value
        if target == OrderStatus.CANCELLED and reason:
            self.cancellation_reason = reason
        self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=current.value,
                new_status=target.value,
                reason=reason,
                changed_at=now,
            )
        )
        return True

    def change_payment_status(self, new_status, transaction_reference=None) -> bool:
        """Move the payment to ``new_status``. Returns False when already there."""
        target = _parse(PaymentStatus, new_status, "payment_status")
        current = PaymentStatus(self.payment_status)
        if target == current:
            return False
        if target not in _VALID_PAYMENT_TRANSITIONS[current]:
            raise ValidationError(
                {"payment_status": [f"Cannot transition payment from {current.value} to {target.value}"]}
            )

        now = datetime.now(UTC)
        self.payment_status = target.value
        if transaction_reference:
            self.transaction_reference = transaction_reference
        self.updated_at = now

        self.raise_(
            PaymentStatusChanged(
                order_id=str(self.id),
                previous_status=current.value,
                new_status=target.value,
                transaction_reference=self.transaction_reference,
                changed_at=now,
            )
        )
        return True

    def record_payment_link(self, payment_url):
        now = datetime.now(UTC)
        self.payment_url = payment_url
        self.updated_at = now
        self.raise_(PaymentLinkIssued(order_id=str(self.id), payment_url=payment_url, issued_at=now))

    def compensate_gateway_failure(self, reason):
        """Cancel an order whose hosted payment could not be started."""
        self.change_status(OrderStatus.CANCELLED, reason=reason)
        self.change_payment_status(PaymentStatus.FAILED)

    def apply_gateway_confirmation(self, succeeded: bool, invoice_id=None) -> list[tuple[str, str, str]]:
        """Apply the gateway's verdict. Returns ``(field, previous, current)`` per change.

        A success for an order that is already paid is ignored, so replayed
        webhooks cannot drag a shipped order back to processing.
        """
        changes = []
        if succeeded:
            if PaymentStatus(self.payment_status) == PaymentStatus.PAID:
                return changes
            targets = (OrderStatus.PROCESSING, PaymentStatus.PAID)
        else:
            targets = (OrderStatus.CANCELLED, PaymentStatus.FAILED)

        previous = self.status
        if self.change_status(targets[0], reason=None if succeeded else "Payment was not completed"):
            changes.append(("status", previous, self.status))

        previous = self.payment_status
        if self.change_payment_status(targets[1], transaction_reference=invoice_id if succeeded else None):
            changes.append(("payment_status", previous, self.payment_status))
        return changes

    # -------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------
    def notification_context(self, items=None) -> dict:
        """Data rendered into the customer and admin notification templates."""
        context = {
            "order_id": str(self.id),
            "order_ref": str(self.id)[:8].upper(),
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "status": self.status,
            "payment_status": self.payment_status,
            "payment_method": self.payment_method,
            "transaction_reference": self.transaction_reference,
            "currency": self.currency,
            "subtotal": format_amount(self.subtotal, self.currency),
            "discount_total": format_amount(self.discount_total or 0, self.currency),
            "total": format_amount(self.total, self.currency),
            "coupon_code": self.coupon_code,
            "cancellation_reason": self.cancellation_reason,
        }
        if items is not None:
            context["items"] = [
                {
                    "product_name": item.product_name,
                    "quantity": item.quantity,
                    "price": format_amount(item.price, self.currency),
                }
                for item in items
            ]
        return context
