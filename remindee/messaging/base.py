"""Transport boundary for delivering reminders.

The dispatch scheduler only knows the ReminderNotifier interface, so the
messaging platform can be swapped without touching the scheduling core.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ReminderNotification:
    """What the transport needs to deliver one due reminder.

    :param chat_id: Target chat.
    :param description: Reminder text.
    :param is_recurring: Whether the reminder is a cron reminder.
    :param reply_to_message_id: Message to thread the notification under, if any.
    """

    chat_id: int
    description: str
    is_recurring: bool
    reply_to_message_id: int | None = None


class ReminderNotifier(ABC):
    """Abstract base class for reminder delivery."""

    @abstractmethod
    def deliver(self, notification: ReminderNotification) -> int | None:
        """Deliver a reminder notification.

        :param notification: The reminder to deliver.
        :returns: ID of the sent message, if the platform provides one.
        :raises Exception: Any exception means the delivery failed.
        """
        ...
