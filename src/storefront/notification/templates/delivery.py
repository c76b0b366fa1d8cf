"""Delivery confirmation — the order was completed."""

from storefront.notification.notification import NotificationKind


class DeliveryTemplate:
    kind = NotificationKind.DELIVERY.value

    @staticmethod
    def render(context: dict) -> dict:
        order_ref = context.get("order_ref", "N/A")
        return {
            "subject": f"Your Order Has Been Delivered - #{order_ref}",
            "body": (
                f"Hi {context.get('customer_name', 'there')},\n\n"
                f"Your order #{order_ref} has been delivered. Enjoy!"
            ),
        }
