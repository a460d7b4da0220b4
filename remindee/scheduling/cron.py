"""Cron expression adaptor: next occurrence of a recurrence rule."""

from datetime import UTC, datetime

from croniter import croniter

from remindee.exceptions import CronParseError


def is_valid_cron(cron_expr: str) -> bool:
    """Check whether a cron expression can be parsed.

    :param cron_expr: Standard cron expression (5 fields).
    :returns: True if the expression is valid.
    """
    return croniter.is_valid(cron_expr)


def next_occurrence(cron_expr: str, after: datetime | None = None) -> datetime:
    """Calculate the next trigger time of a cron expression.

    :param cron_expr: Standard cron expression (5 fields).
    :param after: Calculate the first trigger strictly after this time. Defaults to now.
    :returns: Next trigger datetime in UTC.
    :raises CronParseError: If the expression is malformed.
    """
    if after is None:
        after = datetime.now(UTC)
    elif after.tzinfo is None:
        after = after.replace(tzinfo=UTC)

    try:
        cron = croniter(cron_expr, after.astimezone(UTC))
        next_time = cron.get_next(datetime)
    except (ValueError, KeyError) as e:
        raise CronParseError(cron_expr, str(e)) from e

    # Ensure timezone awareness
    if next_time.tzinfo is None:
        next_time = next_time.replace(tzinfo=UTC)

    return next_time.astimezone(UTC)
