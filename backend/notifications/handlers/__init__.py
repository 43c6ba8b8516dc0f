"""
Notification handlers.

Each handler implements the NotificationHandler protocol for a specific provider.
"""

from .base import NotificationHandler, NotificationResult
from .telegram import TelegramHandler

__all__ = ["NotificationHandler", "NotificationResult", "TelegramHandler"]
