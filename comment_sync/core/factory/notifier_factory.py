"""
Factory for creating notifiers.
"""

from comment_sync.config import EmailConfig
from comment_sync.core.notifier.base import Notifier
from comment_sync.core.notifier.smtp import SmtpNotifier


class NotifierFactory:
    """Factory for creating notifiers from configuration."""

    @staticmethod
    def create(config: EmailConfig) -> Notifier:
        """
        Create notifier from configuration.

        An unconfigured SMTP notifier is still returned; it reports every send
        as not delivered.

        Args:
            config: Email configuration

        Returns:
            Notifier instance
        """
        return SmtpNotifier(config)
