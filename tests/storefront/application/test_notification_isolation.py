"""A broken notification path never fails a checkout or a transition."""

import asyncio

from protean import current_domain
from storefront.cart.items import get_cart
from storefront.checkout.errors import NotificationError
from storefront.checkout.orchestrator import checkout
from storefront.notification.notification import Notification, NotificationStatus
from storefront.notification.outbox import NotificationOutbox, set_outbox
from storefront.order.lifecycle import update_order_status
from storefront.order.order import Order, OrderStatus


class BrokenOutbox(NotificationOutbox):
    def __init__(self, fail_kinds=None):
        super().__init__(max_attempts=3)
        self.fail_kinds = fail_kinds

    def send(self, kind, recipient, payload, order_id=None):
        if self.fail_kinds is None or kind.value in self.fail_kinds:
            raise NotificationError(f"Could not enqueue {kind.value} notification: outbox unavailable")
        return super().send(kind, recipient, payload, order_id=order_id)


def _checkout(customer_id, customer_info):
    return asyncio.run(
        checkout(customer_id, get_cart(customer_id), customer_info, "bkash", transaction_reference="TXN-12345")
    )


class TestCheckoutIsolation:
    def test_outbox_failure_does_not_fail_checkout(self, customer_id, customer_info, cart):
        set_outbox(BrokenOutbox())

        result = _checkout(customer_id, customer_info)

        order = current_domain.repository_for(Order).get(result.order.id)
        assert order.status == OrderStatus.PENDING.value
        assert get_cart(customer_id).is_empty
        assert len(result.warnings) == 2

    def test_one_failure_does_not_suppress_the_other(self, customer_id, customer_info, cart):
        set_outbox(BrokenOutbox(fail_kinds={"order-confirmation"}))

        result = _checkout(customer_id, customer_info)

        kinds = [n.kind for n in current_domain.repository_for(Notification)._dao.query.all().items]
        assert kinds == ["admin-new-order"]
        assert len(result.warnings) == 1

    def test_channel_failure_leaves_notification_failed(self, customer_id, customer_info, cart, email_channel):
        email_channel.configure(should_succeed=False, failure_reason="SMTP unreachable")

        result = _checkout(customer_id, customer_info)

        notifications = current_domain.repository_for(Notification)._dao.query.all().items
        assert len(notifications) == 2
        assert all(n.status == NotificationStatus.FAILED.value for n in notifications)
        assert all(n.last_error == "SMTP unreachable" for n in notifications)
        assert result.warnings == ()
        assert current_domain.repository_for(Order).get(result.order.id).status == OrderStatus.PENDING.value


class TestTransitionIsolation:
    def test_outbox_failure_becomes_warning(self, customer_id, customer_info, cart):
        result = _checkout(customer_id, customer_info)
        set_outbox(BrokenOutbox())

        transition = asyncio.run(update_order_status(result.order.id, "shipped"))

        assert transition.changed
        assert transition.notification_kind == "shipping"
        assert "outbox unavailable" in transition.warning
        assert current_domain.repository_for(Order).get(result.order.id).status == OrderStatus.SHIPPED.value
