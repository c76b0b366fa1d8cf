"""Storefront bounded context: checkout orchestration and order lifecycle.

Turns a customer's cart into a durable order, resolves payment through either
manual verification or a hosted gateway redirect, and propagates administrator
status changes through the notification outbox.
"""

import structlog
from protean.domain import Domain

storefront = Domain(name="storefront")

logger = structlog.get_logger(__name__)
