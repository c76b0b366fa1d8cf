"""Digiseller hosted-checkout adapter.

Digiseller does not need a server-to-server call to start a payment: the
customer is redirected to its payment page with the order encoded in the
query string, and the result comes back through the webhook.

Two modes:

* product mode, when the order is a single line whose product is listed on
  Digiseller: ``id_d`` is the Digiseller product id and ``cnt`` the quantity;
* flexible mode for everything else: ``id_d`` is the seller id and the amount
  is passed explicitly with its currency.

Callbacks are signed with HMAC-SHA256 over ``signed_payload(params)`` using
the shared webhook secret; without a configured secret every callback is
rejected.
"""

import hashlib
import hmac
from urllib.parse import urlencode

import structlog

from storefront.config import get_settings
from storefront.gateway.port import GatewayError, PaymentGateway, PaymentRedirect, PaymentRequest
from storefront.pricing.currency import half_up

logger = structlog.get_logger(__name__)


class DigisellerGateway(PaymentGateway):
    def __init__(self, seller_id: str, base_url: str, language: str = "en-US", webhook_secret: str = "") -> None:
        self.seller_id = seller_id
        self.base_url = base_url
        self.language = language
        self.webhook_secret = webhook_secret

    @classmethod
    def from_settings(cls) -> "DigisellerGateway":
        settings = get_settings()
        return cls(
            seller_id=settings.digiseller_seller_id,
            base_url=settings.digiseller_base_url,
            webhook_secret=settings.digiseller_webhook_secret,
        )

    def build_payment_url(self, request: PaymentRequest) -> str:
        if request.product_ref:
            params = {"id_d": request.product_ref}
        else:
            if not self.seller_id:
                raise GatewayError("Digiseller not configured", order_id=request.order_id)
            params = {
                "id_d": self.seller_id,
                "amount": f"{half_up(request.amount, 2):.2f}",
                "curr": request.currency,
            }

        params.update(
            {
                "lang": self.language,
                "email": request.customer_email,
                "failpage": request.fail_url,
                "agent": request.order_id,
            }
        )
        if request.product_ref and request.quantity > 1:
            params["cnt"] = str(request.quantity)

        return f"{self.base_url}?{urlencode(params)}"

    async def create_payment_request(self, request: PaymentRequest) -> PaymentRedirect:
        payment_url = self.build_payment_url(request)
        logger.info(
            "digiseller_payment_url_issued",
            order_id=request.order_id,
            product_mode=bool(request.product_ref),
        )
        return PaymentRedirect(payment_url=payment_url)

    def verify_webhook_signature(self, payload: str, signature: str) -> bool:
        if not self.webhook_secret:
            logger.warning("digiseller_webhook_secret_missing")
            return False
        expected = hmac.new(self.webhook_secret.encode(), payload.encode(), hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, (signature or "").lower())
