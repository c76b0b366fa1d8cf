"""Internal dispatch handler — sends outbox notifications via the email channel.

Reacts to NotificationEnqueued (first attempt) and NotificationRetried (later
attempts), then records SENT or FAILED on the notification.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from storefront.config import get_settings
from storefront.domain import storefront
from storefront.notification.channel import get_channel
from storefront.notification.events import NotificationEnqueued, NotificationRetried
from storefront.notification.notification import Notification, NotificationStatus

logger = structlog.get_logger(__name__)


def deliver(notification: Notification) -> None:
    """Attempt one delivery and record the outcome on the notification."""
    try:
        result = get_channel().send(
            to=notification.recipient,
            subject=notification.subject or "",
            body=notification.body,
        )
        if result.get("status") == "sent":
            notification.mark_sent()
            return
        error = result.get("error", "Unknown dispatch error")
    except Exception as e:
        error = str(e)

    notification.mark_failed(error, retry_base_seconds=get_settings().notification_retry_base_seconds)
    logger.error(
        "Notification dispatch failed",
        notification_id=str(notification.id),
        kind=notification.kind,
        attempts=notification.attempts,
        error=error,
    )


@storefront.event_handler(part_of=Notification)
class NotificationDispatcher:
    """Dispatches notifications via the channel adapter when they become pending."""

    def _dispatch(self, notification_id) -> None:
        repo = current_domain.repository_for(Notification)
        try:
            notification = repo.get(notification_id)
        except ObjectNotFoundError:
            logger.error("Failed to load notification for dispatch", notification_id=str(notification_id))
            return

        if NotificationStatus(notification.status) != NotificationStatus.PENDING:
            logger.info(
                "Notification not in PENDING status, skipping dispatch",
                notification_id=str(notification_id),
                status=notification.status,
            )
            return

        deliver(notification)
        repo.add(notification)

    @handle(NotificationEnqueued)
    def on_notification_enqueued(self, event: NotificationEnqueued) -> None:
        self._dispatch(event.notification_id)

    @handle(NotificationRetried)
    def on_notification_retried(self, event: NotificationRetried) -> None:
        self._dispatch(event.notification_id)
