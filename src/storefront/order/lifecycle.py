"""Order lifecycle — administrator status changes and gateway confirmations.

The write is the source of truth. Once a transition is stored, the matching
customer notification is enqueued; if enqueueing fails the failure is logged
and reported back as a warning, never by rolling the transition back.
Re-applying the current value stores nothing and notifies nobody.
"""

from dataclasses import dataclass

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Identifier, String
from protean.utils.globals import current_domain

from storefront.checkout.errors import NotificationError
from storefront.config import get_settings
from storefront.domain import storefront
from storefront.notification.notification import NotificationKind
from storefront.notification.outbox import get_outbox
from storefront.order.order import Order, OrderStatus, PaymentStatus
from storefront.order.order_item import OrderItem

logger = structlog.get_logger(__name__)

STATUS_NOTIFICATIONS = {
    OrderStatus.SHIPPED.value: NotificationKind.SHIPPING,
    OrderStatus.COMPLETED.value: NotificationKind.DELIVERY,
    OrderStatus.CANCELLED.value: NotificationKind.CANCELLATION,
    OrderStatus.REFUNDED.value: NotificationKind.REFUND,
}

PAYMENT_NOTIFICATIONS = {
    PaymentStatus.PAID.value: NotificationKind.PAYMENT_PAID,
    PaymentStatus.FAILED.value: NotificationKind.PAYMENT_FAILED,
    PaymentStatus.REFUNDED.value: NotificationKind.REFUND,
}

# Statuses the payment gateway uses to report a completed payment
GATEWAY_SUCCESS_STATUSES = {"success", "completed", "paid", "1"}


@dataclass(frozen=True)
class StatusChange:
    order: Order
    field: str
    previous: str
    current: str

    @property
    def changed(self) -> bool:
        return self.previous != self.current


@dataclass(frozen=True)
class TransitionResult:
    order: Order
    changed: bool
    notification_kind: str | None = None
    warning: str | None = None


@dataclass(frozen=True)
class GatewayConfirmation:
    order: Order
    succeeded: bool
    transitions: tuple[TransitionResult, ...]


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
@storefront.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    reason = String(max_length=500)


@storefront.command(part_of="Order")
class UpdatePaymentStatus:
    order_id = Identifier(required=True)
    payment_status = String(required=True, max_length=20)
    transaction_reference = String(max_length=255)


@storefront.command(part_of="Order")
class ConfirmGatewayPayment:
    """The payment gateway reported the outcome of a hosted payment."""

    order_id = Identifier(required=True)
    succeeded = Boolean(required=True)
    invoice_id = String(max_length=255)


@storefront.command_handler(part_of=Order)
class OrderLifecycleHandler:
    @handle(UpdateOrderStatus)
    def update_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous = order.status
        if order.change_status(command.status, reason=command.reason):
            repo.add(order)
        return StatusChange(order=order, field="status", previous=previous, current=order.status)

    @handle(UpdatePaymentStatus)
    def update_payment_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous = order.payment_status
        if order.change_payment_status(command.payment_status, transaction_reference=command.transaction_reference):
            repo.add(order)
        return StatusChange(order=order, field="payment_status", previous=previous, current=order.payment_status)

    @handle(ConfirmGatewayPayment)
    def confirm_gateway_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        gateway_methods = {method.lower() for method in get_settings().gateway_payment_methods}
        if str(order.payment_method or "").lower() not in gateway_methods:
            # Manual payments are verified by an administrator, never by a callback
            raise ValidationError({"payment_method": [f"Order {order.id} is not paid through the gateway"]})
        changes = order.apply_gateway_confirmation(command.succeeded, invoice_id=command.invoice_id)
        if changes:
            repo.add(order)
        return [
            StatusChange(order=order, field=field, previous=previous, current=current)
            for field, previous, current in changes
        ]


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------
def is_gateway_success(status) -> bool:
    """An absent status counts as success, matching the gateway's redirect callback."""
    if status is None or str(status).strip() == "":
        return True
    return str(status).strip().lower() in GATEWAY_SUCCESS_STATUSES


class OrderLifecycle:
    def __init__(self, outbox=None):
        self._outbox = outbox

    @property
    def outbox(self):
        return self._outbox or get_outbox()

    async def update_status(self, order_id, status, reason=None) -> TransitionResult:
        change = current_domain.process(
            UpdateOrderStatus(order_id=order_id, status=status, reason=reason),
            asynchronous=False,
        )
        return self._notify(change)

    async def update_payment_status(self, order_id, payment_status, transaction_reference=None) -> TransitionResult:
        change = current_domain.process(
            UpdatePaymentStatus(
                order_id=order_id,
                payment_status=payment_status,
                transaction_reference=transaction_reference,
            ),
            asynchronous=False,
        )
        return self._notify(change)

    async def confirm_gateway_payment(self, order_id, status=None, invoice_id=None) -> GatewayConfirmation:
        succeeded = is_gateway_success(status)
        changes = current_domain.process(
            ConfirmGatewayPayment(order_id=order_id, succeeded=succeeded, invoice_id=invoice_id),
            asynchronous=False,
        )
        transitions = tuple(self._notify(change) for change in changes)
        order = changes[-1].order if changes else current_domain.repository_for(Order).get(order_id)

        logger.info(
            "gateway_payment_confirmed",
            order_id=str(order_id),
            succeeded=succeeded,
            invoice_id=invoice_id,
            changes=len(transitions),
        )
        return GatewayConfirmation(order=order, succeeded=succeeded, transitions=transitions)

    def _notify(self, change: StatusChange) -> TransitionResult:
        if not change.changed:
            return TransitionResult(order=change.order, changed=False)

        mapping = STATUS_NOTIFICATIONS if change.field == "status" else PAYMENT_NOTIFICATIONS
        kind = mapping.get(change.current)
        if kind is None:
            return TransitionResult(order=change.order, changed=True)

        order = change.order
        try:
            self.outbox.send(
                kind,
                recipient=order.customer_email,
                payload=order.notification_context(),
                order_id=str(order.id),
            )
        except NotificationError as exc:
            logger.warning(
                "lifecycle_notification_failed",
                order_id=str(order.id),
                kind=kind.value,
                error=str(exc),
            )
            return TransitionResult(order=order, changed=True, notification_kind=kind.value, warning=str(exc))

        return TransitionResult(order=order, changed=True, notification_kind=kind.value)


async def update_order_status(order_id, status, reason=None) -> TransitionResult:
    return await OrderLifecycle().update_status(order_id, status, reason=reason)


async def update_payment_status(order_id, payment_status, transaction_reference=None) -> TransitionResult:
    return await OrderLifecycle().update_payment_status(
        order_id, payment_status, transaction_reference=transaction_reference
    )


def order_with_items(order_id) -> tuple[Order, list[OrderItem]]:
    order = current_domain.repository_for(Order).get(order_id)
    items = current_domain.repository_for(OrderItem).for_order(order_id)
    return order, items
