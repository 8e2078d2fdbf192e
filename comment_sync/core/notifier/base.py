"""
Abstract base class for notification delivery.
"""

from abc import ABC, abstractmethod

from comment_sync.models.results import NotificationPayload


class Notifier(ABC):
    """
    Delivers notification payloads.

    send() reports the outcome as a boolean and never raises: a sync run must
    succeed even when delivery fails.
    """

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Whether the notifier has everything it needs to deliver."""
        pass

    @abstractmethod
    async def send(self, payload: NotificationPayload) -> bool:
        """
        Deliver one notification.

        Args:
            payload: Subject plus markdown and HTML bodies

        Returns:
            True if delivered, False otherwise
        """
        pass
