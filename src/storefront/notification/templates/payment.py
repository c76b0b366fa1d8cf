"""Payment verdict templates: confirmed or failed."""

from storefront.notification.notification import NotificationKind


class PaymentPaidTemplate:
    kind = NotificationKind.PAYMENT_PAID.value

    @staticmethod
    def render(context: dict) -> dict:
        order_ref = context.get("order_ref", "N/A")
        return {
            "subject": f"Payment Confirmed - Order #{order_ref}",
            "body": (
                f"Hi {context.get('customer_name', 'there')},\n\n"
                f"We received your payment of {context.get('total')} for order #{order_ref}. "
                "Your order is now being processed."
            ),
        }


class PaymentFailedTemplate:
    kind = NotificationKind.PAYMENT_FAILED.value

    @staticmethod
    def render(context: dict) -> dict:
        order_ref = context.get("order_ref", "N/A")
        return {
            "subject": f"Payment Failed - Order #{order_ref}",
            "body": (
                f"Hi {context.get('customer_name', 'there')},\n\n"
                f"We could not verify your payment for order #{order_ref}. "
                "Please check the transaction details or place the order again."
            ),
        }
