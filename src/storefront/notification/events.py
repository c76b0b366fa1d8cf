"""Domain events for the Notification aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Notification")
class NotificationEnqueued:
    """A notification was stored in the outbox and is ready for dispatch."""

    __version__ = 1

    notification_id = Identifier(required=True)
    kind = String(required=True)
    recipient = String(required=True)
    order_id = Identifier()
    enqueued_at = DateTime(required=True)


@storefront.event(part_of="Notification")
class NotificationSent:
    __version__ = 1

    notification_id = Identifier(required=True)
    kind = String(required=True)
    recipient = String(required=True)
    sent_at = DateTime(required=True)


@storefront.event(part_of="Notification")
class NotificationFailed:
    __version__ = 1

    notification_id = Identifier(required=True)
    kind = String(required=True)
    reason = String(required=True)
    attempts = Integer(required=True)
    max_attempts = Integer(required=True)
    failed_at = DateTime(required=True)


@storefront.event(part_of="Notification")
class NotificationRetried:
    """A failed notification went back to pending for another attempt."""

    __version__ = 1

    notification_id = Identifier(required=True)
    kind = String(required=True)
    attempts = Integer(required=True)
    retried_at = DateTime(required=True)


@storefront.event(part_of="Notification")
class NotificationCancelled:
    __version__ = 1

    notification_id = Identifier(required=True)
    kind = String(required=True)
    reason = String(required=True)
    cancelled_at = DateTime(required=True)
