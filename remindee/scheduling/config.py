"""Configuration for the reminder dispatch loop using pydantic-settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from remindee.paths import PROJECT_ROOT

_ENV_FILE = PROJECT_ROOT / ".env"


class DispatchConfig(BaseSettings):
    """Configuration for the dispatch scheduler.

    All settings are loaded from environment variables with the DISPATCH_ prefix.

    :param interval_seconds: Seconds between the starts of two dispatch cycles.
    :param max_delivery_attempts: Failed deliveries tolerated per reminder before
        it is given up on. None retries forever.
    """

    model_config = SettingsConfigDict(
        env_prefix="DISPATCH_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    interval_seconds: int = Field(
        default=60,
        ge=1,
        le=3600,
        description="Seconds between dispatch cycles",
    )
    max_delivery_attempts: int | None = Field(
        default=None,
        ge=1,
        description="Failed deliveries tolerated per reminder (unset = unlimited)",
    )


@lru_cache
def get_dispatch_settings() -> DispatchConfig:
    """Get cached dispatch settings.

    :returns: Configured DispatchConfig instance.
    """
    return DispatchConfig()
