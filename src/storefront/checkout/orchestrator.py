"""Checkout orchestration: cart in, durable order (and maybe a payment URL) out.

Steps run strictly in this order and a failing step stops the ones after it:

1. preconditions: a customer and a non-empty cart;
2. input validation (first violation wins);
3. line pricing and the coupon, both before anything is written;
4. the order write, then all of its items in one batch;
5. the payment path (manual reference or gateway redirect);
6. the coupon redemption record (best effort), only once the payment path
   succeeded, so an order cancelled by a gateway failure leaves the coupon
   unused;
7. clearing the cart;
8. the customer confirmation and the admin alert, each on its own so one
   failing notification cannot suppress the other or fail the checkout.
"""

from dataclasses import dataclass

import structlog
from protean.utils.globals import current_domain

from storefront.cart.items import clear_cart
from storefront.checkout.errors import (
    CheckoutValidationError,
    EmptyCartError,
    NotificationError,
    PartialPersistenceError,
    PersistenceError,
)
from storefront.checkout.lines import PricedLine, price_cart
from storefront.checkout.payment_path import PaymentPathResolver
from storefront.checkout.validation import CustomerInfo, validate_checkout_input
from storefront.config import get_settings
from storefront.coupon.coupon import CouponRedemption
from storefront.coupon.validation import CouponDiscount, CouponValidator
from storefront.notification.notification import NotificationKind
from storefront.notification.outbox import get_outbox
from storefront.order.order import Order
from storefront.order.order_item import OrderItem
from storefront.pricing.currency import Currency, CurrencyConverter, parse_currency, round_amount
from storefront.pricing.resolver import PriceResolver

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CheckoutResult:
    order: Order
    items: tuple[OrderItem, ...]
    payment_url: str | None = None
    discount: CouponDiscount | None = None
    warnings: tuple[str, ...] = ()


class CheckoutService:
    def __init__(self, gateway=None, outbox=None, settings=None, coupon_validator=None):
        self.settings = settings or get_settings()
        self.converter = CurrencyConverter(self.settings.usd_to_bdt_rate)
        self.resolver = PriceResolver(self.converter)
        self.payment_paths = PaymentPathResolver(gateway=gateway, converter=self.converter, settings=self.settings)
        self.base_currency = parse_currency(self.settings.base_currency)
        self.coupons = coupon_validator or CouponValidator(base_currency=self.base_currency)
        self._outbox = outbox

    @property
    def outbox(self):
        return self._outbox or get_outbox()

    async def checkout(
        self,
        customer_id,
        cart,
        customer_info: CustomerInfo,
        payment_method,
        transaction_reference=None,
        coupon_code=None,
        notes=None,
        currency="BDT",
        return_url=None,
    ) -> CheckoutResult:
        if not customer_id:
            raise CheckoutValidationError("customer_id", "Sign in to place an order")
        cart_items = list(cart.items) if cart is not None else []
        if not cart_items:
            raise EmptyCartError()

        data = validate_checkout_input(
            customer_info,
            payment_method,
            transaction_reference=transaction_reference,
            notes=notes,
            currency=currency,
            requires_reference=not self.payment_paths.is_gateway_method(payment_method),
        )

        lines = price_cart(cart_items, data.currency, self.resolver)
        subtotal = sum(line.line_total for line in lines)
        discount = self._apply_coupon(coupon_code, subtotal, data.currency, customer_id)
        discount_total = self._settlement_discount(discount, subtotal, data.currency)

        order = self._persist_order(customer_id, data, subtotal, discount_total, discount)
        items = self._persist_items(order, lines)
        payment_url = await self.payment_paths.resolve(order, lines, return_url=return_url)
        self._record_redemption(order, discount, discount_total)

        try:
            clear_cart(customer_id)
        except Exception as exc:
            logger.error("cart_not_cleared", order_id=str(order.id), customer_id=str(customer_id), error=str(exc))
            raise PersistenceError(
                "Order was placed but the cart could not be cleared", order_id=str(order.id)
            ) from exc

        warnings = self._notify_placed(order, items)

        logger.info(
            "checkout_completed",
            order_id=str(order.id),
            customer_id=str(customer_id),
            total=order.total,
            currency=order.currency,
            gateway=payment_url is not None,
        )
        return CheckoutResult(
            order=order,
            items=tuple(items),
            payment_url=payment_url,
            discount=discount,
            warnings=tuple(warnings),
        )

    # -------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------
    def _apply_coupon(self, coupon_code, subtotal, currency, customer_id) -> CouponDiscount | None:
        if not coupon_code or not str(coupon_code).strip():
            return None
        base_subtotal = self.converter.convert(subtotal, currency, self.base_currency)
        return self.coupons.validate(coupon_code, base_subtotal, customer_id=customer_id)

    def _settlement_discount(self, discount, subtotal, currency: Currency) -> float:
        """Coupon amounts are in the base currency; the order may settle in another."""
        if discount is None:
            return 0.0
        amount = round_amount(self.converter.convert(discount.amount, self.base_currency, currency), currency)
        return max(0.0, min(amount, subtotal))

    # -------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------
    def _persist_order(self, customer_id, data, subtotal, discount_total, discount) -> Order:
        try:
            order = Order.place(
                customer_id=customer_id,
                customer_name=data.customer.name,
                customer_email=data.customer.email,
                customer_phone=data.customer.phone,
                subtotal=subtotal,
                discount_total=discount_total,
                currency=data.currency.value,
                payment_method=data.payment_method,
                transaction_reference=data.transaction_reference,
                coupon_code=discount.code if discount else None,
                notes=data.notes,
            )
            current_domain.repository_for(Order).add(order)
        except Exception as exc:
            logger.error("order_not_persisted", customer_id=str(customer_id), error=str(exc))
            raise PersistenceError("Failed to create order") from exc
        return order

    def _persist_items(self, order: Order, lines: list[PricedLine]) -> list[OrderItem]:
        items = [
            OrderItem(
                order_id=str(order.id),
                product_id=line.product_id,
                variant_id=line.variant_id,
                product_name=line.product_name,
                quantity=line.quantity,
                price=line.unit_price,
            )
            for line in lines
        ]
        repo = current_domain.repository_for(OrderItem)
        try:
            repo.add_all(items)
        except Exception as exc:
            persisted = len(repo.for_order(order.id))
            logger.error(
                "order_items_not_persisted",
                order_id=str(order.id),
                persisted=persisted,
                failed=len(items) - persisted,
                error=str(exc),
            )
            raise PartialPersistenceError(str(order.id), persisted, len(items) - persisted) from exc
        return items

    def _record_redemption(self, order: Order, discount, discount_total) -> None:
        if discount is None:
            return
        try:
            current_domain.repository_for(CouponRedemption).add(
                CouponRedemption.record(
                    coupon_id=discount.coupon_id,
                    coupon_code=discount.code,
                    customer_id=str(order.customer_id),
                    order_id=str(order.id),
                    discount_applied=discount_total,
                )
            )
        except Exception as exc:
            logger.warning(
                "coupon_redemption_not_recorded",
                order_id=str(order.id),
                coupon_code=discount.code,
                error=str(exc),
            )

    # -------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------
    def _notify_placed(self, order: Order, items) -> list[str]:
        context = order.notification_context(items)
        warnings = []
        for kind, recipient in (
            (NotificationKind.ORDER_CONFIRMATION, order.customer_email),
            (NotificationKind.ADMIN_NEW_ORDER, self.settings.admin_email),
        ):
            try:
                self.outbox.send(kind, recipient=recipient, payload=context, order_id=str(order.id))
            except NotificationError as exc:
                logger.warning("checkout_notification_failed", order_id=str(order.id), kind=kind.value, error=str(exc))
                warnings.append(str(exc))
        return warnings


async def checkout(customer_id, cart, customer_info, payment_method, **kwargs) -> CheckoutResult:
    return await CheckoutService().checkout(customer_id, cart, customer_info, payment_method, **kwargs)
