"""Configurable fake payment gateway for development and testing.

Simulates a hosted-checkout processor without external calls. It can be
configured at runtime to succeed, fail or stall, which is how tests exercise
the compensating cancellation and the gateway timeout.
"""

import asyncio
from dataclasses import asdict
from uuid import uuid4

from storefront.gateway.port import GatewayError, PaymentGateway, PaymentRedirect, PaymentRequest


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Payment gateway unavailable"
        self.delay: float = 0.0
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool,
        failure_reason: str = "Payment gateway unavailable",
        delay: float = 0.0,
    ) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.delay = delay

    async def create_payment_request(self, request: PaymentRequest) -> PaymentRedirect:
        self.calls.append({"method": "create_payment_request", **asdict(request)})

        if self.delay:
            await asyncio.sleep(self.delay)

        if not self.should_succeed:
            raise GatewayError(self.failure_reason, order_id=request.order_id)

        return PaymentRedirect(
            payment_url=f"https://pay.fake-gateway.test/checkout/{request.order_id}",
            gateway_reference=f"fake_pay_{uuid4().hex[:12]}",
        )

    def verify_webhook_signature(self, payload: str, signature: str) -> bool:  # noqa: ARG002
        return signature == "test-signature"
