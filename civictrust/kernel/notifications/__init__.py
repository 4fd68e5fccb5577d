"""
User-visible notifications.
"""

from civictrust.kernel.notifications.dispatcher import NotificationDispatcher

__all__ = ["NotificationDispatcher"]
