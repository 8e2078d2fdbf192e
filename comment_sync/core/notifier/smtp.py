"""
SMTP email notifier.
"""

import asyncio
import smtplib
from email.message import EmailMessage

from comment_sync.config import EmailConfig
from comment_sync.core.notifier.base import Notifier
from comment_sync.models.results import NotificationPayload
from comment_sync.utils.exceptions import NotificationError
from comment_sync.utils.logger import get_logger

logger = get_logger(__name__)


class SmtpNotifier(Notifier):
    """
    Sends multipart (plain text + HTML) email over SMTP with STARTTLS.

    The blocking smtplib session runs in a worker thread so the caller's
    control flow only suspends on it.
    """

    def __init__(self, config: EmailConfig):
        """
        Initialize SMTP notifier.

        Args:
            config: SMTP host, credentials and recipient
        """
        self.config = config
        if not config.is_configured:
            logger.warning(
                "Email not configured (smtp_user, smtp_password and email_to are required); "
                "notifications will be skipped"
            )

    @property
    def is_configured(self) -> bool:
        return self.config.is_configured

    def build_message(self, payload: NotificationPayload) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = payload.subject
        message["From"] = self.config.smtp_user
        message["To"] = self.config.email_to
        message.set_content(payload.body_markdown)
        message.add_alternative(payload.body_html, subtype="html")
        return message

    def _deliver(self, message: EmailMessage) -> None:
        try:
            with smtplib.SMTP(
                self.config.smtp_host, self.config.smtp_port, timeout=self.config.timeout
            ) as smtp:
                if self.config.use_tls:
                    smtp.starttls()
                smtp.login(self.config.smtp_user, self.config.smtp_password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(
                f"SMTP delivery failed: {e}", context={"host": self.config.smtp_host}
            ) from e

    async def send(self, payload: NotificationPayload) -> bool:
        if not self.is_configured:
            logger.warning(f"Email not configured, skipping notification: {payload.subject}")
            return False

        try:
            await asyncio.to_thread(self._deliver, self.build_message(payload))
        except NotificationError as e:
            logger.bind(subject=payload.subject, error=str(e)).error(
                f"Failed to send notification: {e}"
            )
            return False

        logger.bind(to=self.config.email_to).info(f"Notification sent: {payload.subject}")
        return True
