"""Dagster Util Sensors."""

from dagster import (
    DefaultSensorStatus,
    Definitions,
    RunFailureSensorContext,
    run_failure_sensor,
)
from remindee.messaging.telegram import TelegramClient, get_telegram_settings


@run_failure_sensor(
    default_status=DefaultSensorStatus.RUNNING,
    minimum_interval_seconds=60,
)
def telegram_on_run_failure(context: RunFailureSensorContext) -> None:
    """Send a Telegram alert once per failed run."""
    run = context.dagster_run

    settings = get_telegram_settings()
    if not settings.error_bot_token or not settings.error_chat_id:
        context.log.warning(
            "Error notification skipped: TELEGRAM_ERROR_BOT_TOKEN or "
            "TELEGRAM_ERROR_CHAT_ID not configured"
        )
        return

    client = TelegramClient(
        bot_token=settings.error_bot_token,
        chat_id=settings.error_chat_id,
    )
    context.log.info(f"Sending Telegram alert for failed run: {run.job_name}")
    text = f"Dagster failure: {run.job_name}\nRun ID: {run.run_id}\n"

    client.send_message(text, parse_mode=None)


util_sensor_defs = Definitions(
    sensors=[telegram_on_run_failure],
)
