"""Telegram transport for reminder delivery."""

from remindee.messaging.telegram.client import TelegramClient, TelegramClientError
from remindee.messaging.telegram.config import TelegramConfig, get_telegram_settings
from remindee.messaging.telegram.models import SendMessageResult
from remindee.messaging.telegram.notifier import TelegramNotifier, format_notification

__all__ = [
    "SendMessageResult",
    "TelegramClient",
    "TelegramClientError",
    "TelegramConfig",
    "TelegramNotifier",
    "format_notification",
    "get_telegram_settings",
]
