"""Messaging module providing the platform-agnostic delivery interface."""

from remindee.messaging.base import ReminderNotification, ReminderNotifier

__all__ = [
    "ReminderNotification",
    "ReminderNotifier",
]
