"""Notification outbox — the only way the rest of the storefront sends messages.

``send`` renders the template for the kind and stores a pending Notification.
Delivery happens in the dispatcher, after the write, so a broken mail channel
never fails the operation that asked for the message. A failure to store the
notification itself surfaces as ``NotificationError``; callers log it and move
on.
"""

import json

import structlog
from protean.utils.globals import current_domain

from storefront.checkout.errors import NotificationError
from storefront.config import get_settings
from storefront.notification.notification import Notification, NotificationKind
from storefront.notification.templates import get_template

logger = structlog.get_logger(__name__)


class NotificationOutbox:
    def __init__(self, max_attempts: int | None = None):
        self.max_attempts = max_attempts or get_settings().notification_max_attempts

    def send(self, kind, recipient, payload: dict, order_id=None) -> str:
        """Enqueue one notification and return its id."""
        kind_value = kind.value if isinstance(kind, NotificationKind) else str(kind)
        try:
            rendered = get_template(kind_value).render(payload)
            notification = Notification.enqueue(
                kind=kind_value,
                recipient=recipient,
                subject=rendered["subject"],
                body=rendered["body"],
                payload=json.dumps(payload, default=str),
                order_id=order_id,
                max_attempts=self.max_attempts,
            )
            current_domain.repository_for(Notification).add(notification)
        except Exception as exc:
            raise NotificationError(f"Could not enqueue {kind_value} notification: {exc}") from exc

        logger.info(
            "notification_enqueued",
            notification_id=str(notification.id),
            kind=kind_value,
            order_id=str(order_id) if order_id else None,
        )
        return str(notification.id)


_current_outbox: NotificationOutbox | None = None


def get_outbox() -> NotificationOutbox:
    global _current_outbox
    if _current_outbox is None:
        _current_outbox = NotificationOutbox()
    return _current_outbox


def set_outbox(outbox: NotificationOutbox) -> None:
    """Override the active outbox (useful for tests)."""
    global _current_outbox
    _current_outbox = outbox


def reset_outbox() -> None:
    global _current_outbox
    _current_outbox = None
