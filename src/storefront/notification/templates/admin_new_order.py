"""New order alert for the shop administrators."""

from storefront.notification.notification import NotificationKind


class AdminNewOrderTemplate:
    kind = NotificationKind.ADMIN_NEW_ORDER.value

    @staticmethod
    def render(context: dict) -> dict:
        order_ref = context.get("order_ref", "N/A")
        reference = context.get("transaction_reference") or "-"
        return {
            "subject": f"New Order #{order_ref} - {context.get('total')}",
            "body": (
                f"Order #{order_ref} was placed by {context.get('customer_name')} "
                f"<{context.get('customer_email')}>, phone {context.get('customer_phone')}.\n\n"
                f"Total: {context.get('total')}\n"
                f"Payment method: {context.get('payment_method')}\n"
                f"Transaction reference: {reference}\n"
            ),
        }
