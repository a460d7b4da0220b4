"""Pydantic models for Telegram integration."""

from pydantic import BaseModel


class SendMessageResult(BaseModel):
    """Result of sending a message via Telegram."""

    message_id: int
    chat_id: int
