"""Notification delivery."""

from .base import Notifier
from .smtp import SmtpNotifier

__all__ = ["Notifier", "SmtpNotifier"]
