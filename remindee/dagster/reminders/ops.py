"""Dagster ops for dispatching due reminders."""

from dagster import OpExecutionContext, op
from remindee.messaging.telegram import TelegramClient, TelegramNotifier, get_telegram_settings
from remindee.scheduling.config import get_dispatch_settings
from remindee.scheduling.dispatcher import DispatchStats, ReminderDispatcher

# Maximum number of error messages to include in notification
MAX_ERRORS_IN_NOTIFICATION = 5


def _notify_errors(context: OpExecutionContext, errors: list[str]) -> None:
    """Send error notification to the error bot if configured.

    :param context: Dagster execution context.
    :param errors: List of error messages.
    """
    if not errors:
        return

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

    error_summary = "\n".join(f"• {err}" for err in errors[:MAX_ERRORS_IN_NOTIFICATION])
    if len(errors) > MAX_ERRORS_IN_NOTIFICATION:
        extra = len(errors) - MAX_ERRORS_IN_NOTIFICATION
        error_summary += f"\n... and {extra} more"

    text = (
        f"Reminder dispatch errors\n\n"
        f"Run ID: {context.run_id}\n"
        f"Errors: {len(errors)}\n\n"
        f"{error_summary}"
    )

    try:
        client.send_message(text, parse_mode=None)
        context.log.info(f"Error notification sent: {len(errors)} errors")
    except Exception as e:
        context.log.error(f"Failed to send error notification: {e}")


@op(
    name="dispatch_reminders",
    description="Deliver due reminders and move recurring ones to their next occurrence.",
)
def dispatch_reminders_op(context: OpExecutionContext) -> DispatchStats:
    """Run one dispatch cycle.

    No retry policy: a failed cycle leaves due reminders in place and the
    next scheduled run picks them up.

    :param context: Dagster execution context.
    :returns: Stats for the cycle.
    """
    context.log.info("Starting reminder dispatch")

    settings = get_telegram_settings()
    client = TelegramClient(
        bot_token=settings.bot_token,
        request_timeout=settings.request_timeout,
    )
    dispatcher = ReminderDispatcher(
        TelegramNotifier(client),
        max_delivery_attempts=get_dispatch_settings().max_delivery_attempts,
    )

    stats = dispatcher.run_cycle()

    context.log.info(
        f"Reminder dispatch complete: "
        f"due={stats.one_shot_due + stats.cron_due}, "
        f"sent={stats.reminders_sent}, "
        f"rescheduled={stats.cron_rescheduled}, "
        f"delivery_failures={stats.delivery_failures}, "
        f"errors={len(stats.errors)}"
    )

    _notify_errors(context, stats.errors)

    return stats
