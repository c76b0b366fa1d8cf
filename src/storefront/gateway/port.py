"""Payment gateway port (abstract interface).

The gateway path of checkout needs two things from a processor: a hosted
payment URL the customer is redirected to, and a way to tell whether a
callback reporting the outcome really came from the processor.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from storefront.checkout.errors import GatewayError

__all__ = ["SIGNATURE_PARAM", "GatewayError", "PaymentGateway", "PaymentRedirect", "PaymentRequest", "signed_payload"]

# Callback parameter carrying the processor's signature
SIGNATURE_PARAM = "sign"


@dataclass(frozen=True)
class PaymentRequest:
    """What the processor needs to issue a payment URL for one order."""

    order_id: str
    amount: float
    currency: str
    customer_email: str
    customer_name: str
    description: str
    success_url: str
    fail_url: str
    product_ref: str | None = None  # Processor-side catalogue id
    quantity: int = 1


@dataclass(frozen=True)
class PaymentRedirect:
    payment_url: str
    gateway_reference: str | None = None


def signed_payload(params: dict) -> str:
    """The text a callback signature covers: ``key=value`` pairs sorted by key,
    joined with ``&``, without the signature itself."""
    return "&".join(f"{key}={params[key]}" for key in sorted(params) if key != SIGNATURE_PARAM)


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    async def create_payment_request(self, request: PaymentRequest) -> PaymentRedirect:
        """Issue a hosted payment URL, raising GatewayError on failure."""
        ...

    @abstractmethod
    def verify_webhook_signature(self, payload: str, signature: str) -> bool:
        """Verify that a callback payload is authentically from the gateway."""
        ...
