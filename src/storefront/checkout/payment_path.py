"""Payment path resolution: manual verification or gateway redirect.

Manual methods (bank transfer, mobile wallets) carry the customer's transfer
reference on the order and wait for an administrator to verify it. Gateway
methods ask the payment gateway for a hosted payment URL.

A gateway failure after the order exists must not leave it pending forever:
the order is cancelled with its payment marked failed, then the gateway error
is raised to the caller. A timeout counts as a failure.
"""

import asyncio
from urllib.parse import urlencode

import structlog
from protean.utils.globals import current_domain

from storefront.checkout.errors import GatewayError
from storefront.config import get_settings
from storefront.gateway import get_gateway
from storefront.gateway.port import PaymentRequest
from storefront.order.order import Order
from storefront.pricing.currency import CurrencyConverter, round_amount

logger = structlog.get_logger(__name__)


class PaymentPathResolver:
    def __init__(self, gateway=None, converter: CurrencyConverter | None = None, settings=None):
        self.settings = settings or get_settings()
        self._gateway = gateway
        self.converter = converter or CurrencyConverter(self.settings.usd_to_bdt_rate)

    @property
    def gateway(self):
        return self._gateway or get_gateway()

    def is_gateway_method(self, payment_method) -> bool:
        method = str(payment_method or "").strip().lower()
        return method in {m.lower() for m in self.settings.gateway_payment_methods}

    def build_request(self, order: Order, lines, return_url=None) -> PaymentRequest:
        gateway_currency = self.settings.gateway_currency
        amount = round_amount(
            self.converter.convert(order.total, order.currency, gateway_currency),
            gateway_currency,
        )

        product_ref, quantity = None, 1
        if len(lines) == 1:
            line = lines[0]
            description = line.product_name
            if line.catalog_id:
                product_ref, quantity = line.catalog_id, line.quantity
        else:
            description = f"Order with {len(lines)} items"

        order_id = str(order.id)
        base_url = (return_url or self.settings.site_url).rstrip("/")
        fail_query = urlencode({"orderId": order_id, "status": "failed"})

        return PaymentRequest(
            order_id=order_id,
            amount=amount,
            currency=gateway_currency,
            customer_email=order.customer_email,
            customer_name=order.customer_name,
            description=description,
            success_url=f"{self.settings.webhook_url}?{urlencode({'order_id': order_id})}",
            fail_url=f"{base_url}/order-confirmation?{fail_query}",
            product_ref=product_ref,
            quantity=quantity,
        )

    async def resolve(self, order: Order, lines, return_url=None) -> str | None:
        """Return the hosted payment URL for gateway methods, None for manual ones."""
        if not self.is_gateway_method(order.payment_method):
            logger.info("manual_payment_pending", order_id=str(order.id), payment_method=order.payment_method)
            return None

        request = self.build_request(order, lines, return_url=return_url)
        try:
            redirect = await asyncio.wait_for(
                self.gateway.create_payment_request(request),
                timeout=self.settings.gateway_timeout_seconds,
            )
        except TimeoutError:
            error = GatewayError("Payment gateway timed out", order_id=str(order.id))
            self._compensate(order, error)
            raise error from None
        except GatewayError as exc:
            exc.order_id = exc.order_id or str(order.id)
            self._compensate(order, exc)
            raise
        except Exception as exc:
            error = GatewayError(f"Payment gateway error: {exc}", order_id=str(order.id))
            self._compensate(order, error)
            raise error from exc

        self._record_link(order, redirect.payment_url)
        return redirect.payment_url

    def _compensate(self, order: Order, error: GatewayError) -> None:
        logger.error("gateway_payment_failed", order_id=str(order.id), reason=error.reason)
        try:
            order.compensate_gateway_failure(error.reason)
            current_domain.repository_for(Order).add(order)
        except Exception as exc:
            logger.error(
                "gateway_compensation_failed",
                order_id=str(order.id),
                reason=error.reason,
                error=str(exc),
            )

    def _record_link(self, order: Order, payment_url: str) -> None:
        try:
            order.record_payment_link(payment_url)
            current_domain.repository_for(Order).add(order)
        except Exception as exc:
            logger.warning("payment_link_not_recorded", order_id=str(order.id), error=str(exc))
