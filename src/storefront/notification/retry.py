"""Retry commands — manual retry, cancellation and the periodic backoff sweep.

``RetryFailedNotifications`` is meant for a background job or cron: it moves
every failed notification whose backoff has elapsed back to pending, which
triggers another dispatch. Notifications that used all their attempts stay
failed for an operator to look at.
"""

from datetime import UTC, datetime

import structlog
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from storefront.domain import storefront
from storefront.notification.notification import Notification, NotificationStatus

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Notification")
class RetryNotification:
    """Request to retry a failed notification now, ignoring its backoff."""

    notification_id = Identifier(required=True)


@storefront.command(part_of="Notification")
class CancelNotification:
    notification_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


@storefront.command(part_of="Notification")
class RetryFailedNotifications:
    """Request to retry all failed notifications that are due."""

    as_of = DateTime()  # Defaults to now


@storefront.command_handler(part_of=Notification)
class NotificationRetryHandler:
    @handle(RetryNotification)
    def retry_notification(self, command: RetryNotification):
        repo = current_domain.repository_for(Notification)
        notification = repo.get(command.notification_id)
        notification.retry()
        repo.add(notification)

    @handle(CancelNotification)
    def cancel_notification(self, command: CancelNotification):
        repo = current_domain.repository_for(Notification)
        notification = repo.get(command.notification_id)
        notification.cancel(command.reason)
        repo.add(notification)

    @handle(RetryFailedNotifications)
    def retry_failed(self, command: RetryFailedNotifications) -> int:
        as_of = command.as_of or datetime.now(UTC)
        repo = current_domain.repository_for(Notification)
        failed = repo._dao.query.filter(status=NotificationStatus.FAILED.value).all().items

        retried = 0
        for record in failed:
            if record.exhausted or not record.is_due(as_of):
                continue
            notification = repo.get(record.id)
            notification.retry()
            repo.add(notification)
            retried += 1

        logger.info("Failed notifications swept", retried=retried, as_of=str(as_of))
        return retried
