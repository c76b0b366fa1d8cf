"""Template registry — maps NotificationKind to template classes.

Each template renders a subject and a plain-text body from the order
context captured when the notification is enqueued.
"""

from storefront.notification.notification import NotificationKind
from storefront.notification.templates.admin_new_order import AdminNewOrderTemplate
from storefront.notification.templates.cancellation import CancellationTemplate
from storefront.notification.templates.delivery import DeliveryTemplate
from storefront.notification.templates.order_confirmation import OrderConfirmationTemplate
from storefront.notification.templates.payment import PaymentFailedTemplate, PaymentPaidTemplate
from storefront.notification.templates.refund import RefundTemplate
from storefront.notification.templates.shipping import ShippingTemplate

TEMPLATE_REGISTRY: dict[str, type] = {
    NotificationKind.ORDER_CONFIRMATION.value: OrderConfirmationTemplate,
    NotificationKind.ADMIN_NEW_ORDER.value: AdminNewOrderTemplate,
    NotificationKind.SHIPPING.value: ShippingTemplate,
    NotificationKind.DELIVERY.value: DeliveryTemplate,
    NotificationKind.CANCELLATION.value: CancellationTemplate,
    NotificationKind.REFUND.value: RefundTemplate,
    NotificationKind.PAYMENT_PAID.value: PaymentPaidTemplate,
    NotificationKind.PAYMENT_FAILED.value: PaymentFailedTemplate,
}


def get_template(kind: str):
    """Look up a template class by notification kind string."""
    template_cls = TEMPLATE_REGISTRY.get(kind)
    if template_cls is None:
        raise ValueError(f"No template registered for notification kind: {kind}")
    return template_cls
