"""Email channel port: the one method the dispatcher needs from a mail service."""

from abc import ABC, abstractmethod


class EmailPort(ABC):
    @abstractmethod
    def send(self, to: str, subject: str, body: str) -> dict:
        """Deliver one plain-text message.

        Adapters report the outcome instead of raising: ``{"status": "sent",
        "message_id": ...}`` or ``{"status": "failed", "error": ...}``. The
        dispatcher still treats an exception as a failed attempt.
        """
        ...
