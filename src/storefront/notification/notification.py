"""Notification aggregate (CQRS) — one outbound message in the outbox.

Checkout and order transitions never talk to the mail channel directly. They
store a Notification; the dispatcher sends it and records the outcome, and a
periodic sweep retries failures with exponential backoff.

State Machine:
    PENDING → SENT
    PENDING → FAILED → (retry) → PENDING
    PENDING → CANCELLED
"""

from datetime import UTC, datetime, timedelta
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text

from storefront.domain import storefront
from storefront.notification.events import (
    NotificationCancelled,
    NotificationEnqueued,
    NotificationFailed,
    NotificationRetried,
    NotificationSent,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class NotificationKind(Enum):
    ORDER_CONFIRMATION = "order-confirmation"
    ADMIN_NEW_ORDER = "admin-new-order"
    SHIPPING = "shipping"
    DELIVERY = "delivery"
    CANCELLATION = "cancellation"
    REFUND = "refund"
    PAYMENT_PAID = "payment-paid"
    PAYMENT_FAILED = "payment-failed"


class NotificationStatus(Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
    CANCELLED = "cancelled"


# ---------------------------------------------------------------------------
# State Machine
# ---------------------------------------------------------------------------
_VALID_TRANSITIONS = {
    NotificationStatus.PENDING: {
        NotificationStatus.SENT,
        NotificationStatus.FAILED,
        NotificationStatus.CANCELLED,
    },
    NotificationStatus.FAILED: {
        NotificationStatus.PENDING,  # Via retry
    },
    NotificationStatus.SENT: set(),  # Terminal
    NotificationStatus.CANCELLED: set(),  # Terminal
}


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Notification:
    kind = String(choices=NotificationKind, required=True)
    recipient = String(required=True, max_length=255)

    # Content, rendered once at enqueue time
    subject = String(max_length=500)
    body = Text(required=True)
    payload = Text()  # JSON of the data the template was rendered with

    order_id = Identifier()

    status = String(choices=NotificationStatus, default=NotificationStatus.PENDING.value)

    # Delivery tracking
    attempts = Integer(default=0)
    max_attempts = Integer(default=3)
    last_error = String(max_length=500)
    next_attempt_at = DateTime()
    sent_at = DateTime()

    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def enqueue(cls, kind, recipient, subject, body, payload=None, order_id=None, max_attempts=3):
        """Create a PENDING notification and announce it to the dispatcher."""
        now = datetime.now(UTC)
        notification = cls(
            kind=kind,
            recipient=recipient,
            subject=subject,
            body=body,
            payload=payload,
            order_id=order_id,
            status=NotificationStatus.PENDING.value,
            attempts=0,
            max_attempts=max_attempts,
            created_at=now,
            updated_at=now,
        )

        notification.raise_(
            NotificationEnqueued(
                notification_id=str(notification.id),
                kind=kind,
                recipient=recipient,
                order_id=order_id,
                enqueued_at=now,
            )
        )
        return notification

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        current = NotificationStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def mark_sent(self):
        self._assert_can_transition(NotificationStatus.SENT)

        now = datetime.now(UTC)
        self.status = NotificationStatus.SENT.value
        self.attempts = self.attempts + 1
        self.last_error = None
        self.next_attempt_at = None
        self.sent_at = now
        self.updated_at = now

        self.raise_(
            NotificationSent(
                notification_id=str(self.id),
                kind=self.kind,
                recipient=self.recipient,
                sent_at=now,
            )
        )

    def mark_failed(self, reason, retry_base_seconds=60):
        """Record a failed attempt and schedule the next one (base * 2^(attempts - 1))."""
        self._assert_can_transition(NotificationStatus.FAILED)

        now = datetime.now(UTC)
        self.status = NotificationStatus.FAILED.value
        self.attempts = self.attempts + 1
        self.last_error = str(reason)[:500]
        if self.attempts < self.max_attempts:
            self.next_attempt_at = now + timedelta(seconds=retry_base_seconds * 2 ** (self.attempts - 1))
        else:
            self.next_attempt_at = None
        self.updated_at = now

        self.raise_(
            NotificationFailed(
                notification_id=str(self.id),
                kind=self.kind,
                reason=self.last_error,
                attempts=self.attempts,
                max_attempts=self.max_attempts,
                failed_at=now,
            )
        )

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts

    def is_due(self, as_of) -> bool:
        if self.next_attempt_at is None:
            return False
        due = self.next_attempt_at
        if due.tzinfo is None and as_of.tzinfo is not None:
            due = due.replace(tzinfo=as_of.tzinfo)
        return due <= as_of

    def retry(self):
        if NotificationStatus(self.status) != NotificationStatus.FAILED:
            raise ValidationError({"status": ["Only failed notifications can be retried"]})
        if self.exhausted:
            raise ValidationError({"attempts": ["Maximum delivery attempts exceeded"]})

        now = datetime.now(UTC)
        self.status = NotificationStatus.PENDING.value
        self.next_attempt_at = None
        self.updated_at = now

        self.raise_(
            NotificationRetried(
                notification_id=str(self.id),
                kind=self.kind,
                attempts=self.attempts,
                retried_at=now,
            )
        )

    def cancel(self, reason):
        self._assert_can_transition(NotificationStatus.CANCELLED)

        now = datetime.now(UTC)
        self.status = NotificationStatus.CANCELLED.value
        self.last_error = reason
        self.updated_at = now

        self.raise_(
            NotificationCancelled(
                notification_id=str(self.id),
                kind=self.kind,
                reason=reason,
                cancelled_at=now,
            )
        )
