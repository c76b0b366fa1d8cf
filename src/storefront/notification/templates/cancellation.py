"""Order cancellation notice."""

from storefront.notification.notification import NotificationKind


class CancellationTemplate:
    kind = NotificationKind.CANCELLATION.value

    @staticmethod
    def render(context: dict) -> dict:
        order_ref = context.get("order_ref", "N/A")
        reason = context.get("cancellation_reason")
        reason_line = f"Reason: {reason}\n\n" if reason else ""
        return {
            "subject": f"Order Cancelled - #{order_ref}",
            "body": (
                f"Hi {context.get('customer_name', 'there')},\n\n"
                f"Your order #{order_ref} has been cancelled.\n\n"
                f"{reason_line}"
                "Contact us if you did not expect this."
            ),
        }
