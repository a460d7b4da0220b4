"""Reminder delivery over Telegram."""

import html
import logging

from remindee.messaging.base import ReminderNotification, ReminderNotifier
from remindee.messaging.telegram.client import TelegramClient

logger = logging.getLogger(__name__)

ONE_SHOT_MARKER = "⏰"
RECURRING_MARKER = "🔁"


def format_notification(notification: ReminderNotification) -> str:
    """Render a reminder as Telegram HTML.

    :param notification: The reminder to render.
    :returns: HTML message text.
    """
    marker = RECURRING_MARKER if notification.is_recurring else ONE_SHOT_MARKER
    return f"{marker} {html.escape(notification.description)}"


class TelegramNotifier(ReminderNotifier):
    """Deliver reminders as Telegram messages."""

    def __init__(self, client: TelegramClient) -> None:
        """Initialise the notifier.

        :param client: Telegram client used for sending.
        """
        self._client = client

    def deliver(self, notification: ReminderNotification) -> int | None:
        """Send the reminder to its chat, threaded under the creating message.

        :param notification: The reminder to deliver.
        :returns: ID of the sent Telegram message.
        :raises TelegramClientError: If the Bot API request fails.
        """
        result = self._client.send_message(
            format_notification(notification),
            chat_id=notification.chat_id,
            parse_mode="HTML",
            reply_to_message_id=notification.reply_to_message_id,
        )
        logger.debug(f"Delivered reminder to chat_id={notification.chat_id}")
        return result.message_id
