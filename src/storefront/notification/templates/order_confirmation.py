"""Order confirmation template — sent to the customer when checkout succeeds."""

from storefront.notification.notification import NotificationKind


class OrderConfirmationTemplate:
    kind = NotificationKind.ORDER_CONFIRMATION.value

    @staticmethod
    def render(context: dict) -> dict:
        order_ref = context.get("order_ref", "N/A")
        lines = "\n".join(
            f"  {item['quantity']} x {item['product_name']} @ {item['price']}" for item in context.get("items", [])
        )
        discount = ""
        if context.get("coupon_code"):
            discount = f"Discount ({context['coupon_code']}): -{context.get('discount_total')}\n"
        return {
            "subject": f"Order Confirmed - #{order_ref}",
            "body": (
                f"Hi {context.get('customer_name', 'there')},\n\n"
                f"Thank you for your order #{order_ref}.\n\n"
                f"{lines}\n\n"
                f"Subtotal: {context.get('subtotal')}\n"
                f"{discount}"
                f"Total: {context.get('total')}\n"
                f"Payment method: {context.get('payment_method')}\n\n"
                "We will email you again as soon as your payment is verified."
            ),
        }
