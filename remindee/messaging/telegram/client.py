"""Telegram Bot API client for sending messages."""

import logging
from typing import Any

import requests

from remindee.messaging.telegram.models import SendMessageResult

logger = logging.getLogger(__name__)

# Default API timeout in seconds
DEFAULT_REQUEST_TIMEOUT = 30


class TelegramClientError(Exception):
    """Raised when Telegram API request fails."""

    pass


class TelegramClient:
    """Client for sending messages through the Telegram Bot API."""

    def __init__(
        self,
        *,
        bot_token: str,
        chat_id: str | None = None,
        request_timeout: int = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        """Initialise the Telegram client.

        :param bot_token: Telegram bot token from @BotFather.
        :param chat_id: Default chat ID for sending messages. Can be overridden per-message.
        :param request_timeout: Timeout in seconds for API requests.
        """
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._request_timeout = request_timeout
        self._base_url = f"https://api.telegram.org/bot{self._bot_token}"

    @property
    def chat_id(self) -> str | None:
        """Get the configured chat ID."""
        return self._chat_id

    def send_message(
        self,
        text: str,
        chat_id: str | int | None = None,
        parse_mode: str | None = "HTML",
        reply_to_message_id: int | None = None,
    ) -> SendMessageResult:
        """Send a text message to a chat.

        :param text: The message text to send.
        :param chat_id: Target chat ID. If not provided, uses the configured chat_id.
        :param parse_mode: Message parse mode (HTML or MarkdownV2), or None for plain text.
        :param reply_to_message_id: Message to reply to. Sending still succeeds if
            that message no longer exists.
        :returns: Result containing message_id and chat_id.
        :raises TelegramClientError: If the API request fails.
        :raises ValueError: If no chat_id is provided or configured.
        """
        target_chat_id = chat_id or self._chat_id
        if not target_chat_id:
            raise ValueError(
                "No chat_id provided. Pass chat_id to the constructor or provide "
                "the chat_id parameter."
            )

        url = f"{self._base_url}/sendMessage"
        logger.info(f"Sending message to chat_id={target_chat_id}")
        payload: dict[str, Any] = {
            "chat_id": target_chat_id,
            "text": text,
            "disable_web_page_preview": True,
        }
        if parse_mode:
            payload["parse_mode"] = parse_mode
        if reply_to_message_id is not None:
            payload["reply_parameters"] = {
                "message_id": reply_to_message_id,
                "allow_sending_without_reply": True,
            }

        try:
            response = requests.post(url, json=payload, timeout=self._request_timeout)
            response.raise_for_status()

            result = response.json()
            if not result.get("ok"):
                error_description = result.get("description", "Unknown error")
                raise TelegramClientError(f"Telegram API returned error: {error_description}")

            message_data = result.get("result", {})
            message_id = message_data.get("message_id")
            response_chat_id = message_data.get("chat", {}).get("id")

            logger.info(
                f"Message sent successfully: message_id={message_id}, chat_id={target_chat_id}"
            )
            return SendMessageResult(message_id=message_id, chat_id=response_chat_id)

        except requests.exceptions.Timeout as e:
            raise TelegramClientError(
                f"Telegram API request timed out after {self._request_timeout}s"
            ) from e
        except requests.exceptions.RequestException as e:
            raise TelegramClientError(f"Telegram API request failed: {e}") from e
