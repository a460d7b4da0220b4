"""Database models and operations for one-shot and cron reminders."""

from remindee.database.reminders.generic import GenericReminder, sort_reminders, wrap_reminders
from remindee.database.reminders.models import (
    REMINDER_MODELS,
    CronReminder,
    EditMode,
    OneShotReminder,
)
from remindee.database.reminders.operations import (
    commit_edited_cron_expr,
    commit_edited_description,
    commit_edited_time,
    count_edit_reminders,
    create_cron_reminder,
    create_reminder,
    delete_reminder,
    get_active_reminders,
    get_by_msg_id,
    get_by_reply_id,
    get_edit_reminder,
    get_pending_for_chat,
    get_reminder,
    get_sorted_all,
    mark_sent,
    record_delivery_failure,
    reschedule_cron_reminder,
    reset_edit,
    set_edit,
    set_edit_mode,
    set_msg_id,
    set_reply_id,
    toggle_paused,
)

__all__ = [
    # Models
    "REMINDER_MODELS",
    "CronReminder",
    "EditMode",
    "GenericReminder",
    "OneShotReminder",
    # Sorting
    "sort_reminders",
    "wrap_reminders",
    # Operations
    "commit_edited_cron_expr",
    "commit_edited_description",
    "commit_edited_time",
    "count_edit_reminders",
    "create_cron_reminder",
    "create_reminder",
    "delete_reminder",
    "get_active_reminders",
    "get_by_msg_id",
    "get_by_reply_id",
    "get_edit_reminder",
    "get_pending_for_chat",
    "get_reminder",
    "get_sorted_all",
    "mark_sent",
    "record_delivery_failure",
    "reschedule_cron_reminder",
    "reset_edit",
    "set_edit",
    "set_edit_mode",
    "set_msg_id",
    "set_reply_id",
    "toggle_paused",
]
