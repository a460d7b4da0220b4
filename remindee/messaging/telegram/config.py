"""Configuration for Telegram integration using pydantic-settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from remindee.paths import PROJECT_ROOT

_ENV_FILE = PROJECT_ROOT / ".env"


class TelegramConfig(BaseSettings):
    """Configuration for Telegram integration.

    All settings are loaded from environment variables with the TELEGRAM_ prefix.

    :param bot_token: Telegram bot token from @BotFather.
    :param request_timeout: Timeout in seconds for Bot API requests.
    :param error_bot_token: Separate bot token for error notifications (optional).
    :param error_chat_id: Chat ID for error notifications (optional).
    """

    model_config = SettingsConfigDict(
        env_prefix="TELEGRAM_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    bot_token: str = Field(..., description="Bot token from @BotFather")
    request_timeout: int = Field(
        default=30,
        ge=1,
        le=120,
        description="Bot API request timeout in seconds",
    )
    error_bot_token: str | None = Field(
        default=None,
        description="Separate bot token for error notifications",
    )
    error_chat_id: str | None = Field(
        default=None,
        description="Chat ID for error notifications",
    )


@lru_cache
def get_telegram_settings() -> TelegramConfig:
    """Get cached Telegram settings.

    Settings are loaded once and cached for the lifetime of the process.

    :returns: Configured TelegramConfig instance.
    """
    return TelegramConfig()  # type: ignore[call-arg]
