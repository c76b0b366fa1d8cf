"""Shipping update — the order left processing."""

from storefront.notification.notification import NotificationKind


class ShippingTemplate:
    kind = NotificationKind.SHIPPING.value

    @staticmethod
    def render(context: dict) -> dict:
        order_ref = context.get("order_ref", "N/A")
        return {
            "subject": f"Your Order Has Shipped - #{order_ref}",
            "body": (
                f"Hi {context.get('customer_name', 'there')},\n\n"
                f"Your order #{order_ref} is on its way. "
                "Delivery details will follow shortly."
            ),
        }
