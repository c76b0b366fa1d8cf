"""Refund notice — sent for a refunded order or a refunded payment."""

from storefront.notification.notification import NotificationKind


class RefundTemplate:
    kind = NotificationKind.REFUND.value

    @staticmethod
    def render(context: dict) -> dict:
        order_ref = context.get("order_ref", "N/A")
        return {
            "subject": f"Refund Processed - {context.get('total')} - #{order_ref}",
            "body": (
                f"Hi {context.get('customer_name', 'there')},\n\n"
                f"A refund of {context.get('total')} for order #{order_ref} has been processed "
                f"to your original payment method ({context.get('payment_method')})."
            ),
        }
