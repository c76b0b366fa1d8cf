"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """A checkout produced a new order in pending/pending state."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    subtotal = Float(required=True)
    discount_total = Float(required=True)
    total = Float(required=True)
    currency = String(required=True)
    payment_method = String(required=True)
    coupon_code = String()
    placed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    reason = String()
    changed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class PaymentStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    transaction_reference = String()
    changed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class PaymentLinkIssued:
    """The payment gateway issued a hosted payment URL for the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_url = String(required=True, max_length=2048)
    issued_at = DateTime(required=True)
