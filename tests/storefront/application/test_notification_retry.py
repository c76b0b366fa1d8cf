"""Retrying failed notifications."""

from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from storefront.notification.notification import Notification, NotificationKind, NotificationStatus
from storefront.notification.outbox import NotificationOutbox
from storefront.notification.retry import CancelNotification, RetryFailedNotifications, RetryNotification


def _send(max_attempts=3):
    return NotificationOutbox(max_attempts=max_attempts).send(
        NotificationKind.SHIPPING,
        recipient="rahim@example.com",
        payload={"order_ref": "AB12CD34", "customer_name": "Rahim"},
        order_id="ord-001",
    )


def _get(notification_id):
    return current_domain.repository_for(Notification).get(notification_id)


class TestOutboxDispatch:
    def test_enqueue_sends_immediately(self, email_channel):
        notification_id = _send()

        notification = _get(notification_id)
        assert notification.status == NotificationStatus.SENT.value
        assert notification.attempts == 1
        assert email_channel.sent_emails[0]["subject"] == "Your Order Has Shipped - #AB12CD34"

    def test_failed_delivery_is_scheduled(self, email_channel):
        email_channel.configure(should_succeed=False)
        notification = _get(_send())

        assert notification.status == NotificationStatus.FAILED.value
        assert notification.next_attempt_at is not None


class TestRetry:
    def test_manual_retry_redelivers(self, email_channel):
        email_channel.configure(should_succeed=False)
        notification_id = _send()
        email_channel.configure(should_succeed=True)

        current_domain.process(RetryNotification(notification_id=notification_id), asynchronous=False)

        notification = _get(notification_id)
        assert notification.status == NotificationStatus.SENT.value
        assert notification.attempts == 2
        assert len(email_channel.sent_emails) == 1

    def test_sweep_retries_due_notifications(self, email_channel):
        email_channel.configure(should_succeed=False)
        first, second = _send(), _send()
        email_channel.configure(should_succeed=True)

        retried = current_domain.process(
            RetryFailedNotifications(as_of=datetime.now(UTC) + timedelta(hours=1)),
            asynchronous=False,
        )

        assert retried == 2
        assert _get(first).status == NotificationStatus.SENT.value
        assert _get(second).status == NotificationStatus.SENT.value

    def test_sweep_skips_notifications_not_yet_due(self, email_channel):
        email_channel.configure(should_succeed=False)
        notification_id = _send()

        retried = current_domain.process(RetryFailedNotifications(), asynchronous=False)

        assert retried == 0
        assert _get(notification_id).status == NotificationStatus.FAILED.value

    def test_sweep_skips_exhausted(self, email_channel):
        email_channel.configure(should_succeed=False)
        notification_id = _send(max_attempts=1)

        retried = current_domain.process(
            RetryFailedNotifications(as_of=datetime.now(UTC) + timedelta(days=1)),
            asynchronous=False,
        )

        assert retried == 0
        assert _get(notification_id).exhausted

    def test_cancel_failed_notification_rejected(self, email_channel):
        email_channel.configure(should_succeed=False)
        notification_id = _send()

        with pytest.raises(ValidationError):
            current_domain.process(
                CancelNotification(notification_id=notification_id, reason="Order deleted"),
                asynchronous=False,
            )
