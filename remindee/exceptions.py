"""Custom exceptions for the reminder core."""


class RemindeeError(Exception):
    """Base exception for reminder-related errors."""


class StorageError(RemindeeError):
    """Raised when the backing store fails (I/O, connection or constraint errors).

    The original SQLAlchemy exception is always available as ``__cause__``.
    """


class ReminderNotFoundError(RemindeeError):
    """Raised when an operation targets a reminder that does not exist."""

    def __init__(self, kind: str, reminder_id: int) -> None:
        """Initialise ReminderNotFoundError.

        :param kind: Name of the reminder table that was searched.
        :param reminder_id: ID of the missing reminder.
        """
        self.kind = kind
        self.reminder_id = reminder_id
        super().__init__(f"{kind} {reminder_id} not found")


class CronParseError(RemindeeError):
    """Raised when a cron expression cannot be parsed."""

    def __init__(self, cron_expr: str, reason: str) -> None:
        """Initialise CronParseError.

        :param cron_expr: The offending cron expression.
        :param reason: Parser error message.
        """
        self.cron_expr = cron_expr
        self.reason = reason
        super().__init__(f"Invalid cron expression {cron_expr!r}: {reason}")


class EditStateViolationError(RemindeeError):
    """Raised when a chat ends up with more than one reminder in edit state."""

    def __init__(self, chat_id: int, count: int) -> None:
        """Initialise EditStateViolationError.

        :param chat_id: The affected chat.
        :param count: Number of reminders found with edit=True.
        """
        self.chat_id = chat_id
        self.count = count
        super().__init__(f"Chat {chat_id} has {count} reminders in edit state")
