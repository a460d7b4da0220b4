"""Database operations for one-shot and cron reminders.

Operations that apply to both reminder kinds take the model class
(``OneShotReminder`` or ``CronReminder``) as their second argument. Every
function runs inside the caller's session; one ``with get_session()`` block
is one transaction, so multi-step operations such as ``set_edit`` are atomic.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from remindee.database.reminders.generic import GenericReminder, wrap_reminders
from remindee.database.reminders.models import (
    REMINDER_MODELS,
    AnyReminder,
    CronReminder,
    EditMode,
    OneShotReminder,
)
from remindee.exceptions import EditStateViolationError, ReminderNotFoundError

logger = logging.getLogger(__name__)


def create_reminder(
    session: Session,
    chat_id: int,
    time: datetime,
    description: str,
    msg_id: int | None = None,
) -> OneShotReminder:
    """Create a new one-shot reminder.

    :param session: Database session.
    :param chat_id: Chat that owns the reminder.
    :param time: When the reminder should fire (timezone-aware).
    :param description: The reminder text.
    :param msg_id: Optional ID of the message that created the reminder.
    :returns: The created reminder, with its ID assigned.
    """
    reminder = OneShotReminder(
        chat_id=chat_id,
        time=time,
        description=description,
        sent=False,
        paused=False,
        edit=False,
        edit_mode=EditMode.NONE.value,
        msg_id=msg_id,
    )
    session.add(reminder)
    session.flush()
    logger.info(f"Created reminder: id={reminder.id}, chat_id={chat_id}, time={time}")
    return reminder


def create_cron_reminder(
    session: Session,
    chat_id: int,
    cron_expr: str,
    time: datetime,
    description: str,
    msg_id: int | None = None,
) -> CronReminder:
    """Create a new recurring reminder.

    :param session: Database session.
    :param chat_id: Chat that owns the reminder.
    :param cron_expr: Cron expression describing the recurrence.
    :param time: The first occurrence (timezone-aware).
    :param description: The reminder text.
    :param msg_id: Optional ID of the message that created the reminder.
    :returns: The created reminder, with its ID assigned.
    """
    reminder = CronReminder(
        chat_id=chat_id,
        cron_expr=cron_expr,
        time=time,
        description=description,
        sent=False,
        paused=False,
        edit=False,
        edit_mode=EditMode.NONE.value,
        msg_id=msg_id,
    )
    session.add(reminder)
    session.flush()
    logger.info(
        f"Created cron reminder: id={reminder.id}, chat_id={chat_id}, "
        f"cron={cron_expr}, first={time}"
    )
    return reminder


def get_reminder[R: (OneShotReminder, CronReminder)](
    session: Session,
    model: type[R],
    reminder_id: int,
    *,
    for_update: bool = False,
) -> R | None:
    """Get a reminder by ID.

    :param session: Database session.
    :param model: Reminder model class.
    :param reminder_id: Reminder ID.
    :param for_update: Lock the row until the transaction ends.
    :returns: The reminder or None if not found.
    """
    stmt = select(model).where(model.id == reminder_id)
    if for_update:
        stmt = stmt.with_for_update()
    return session.execute(stmt).scalar_one_or_none()


def _require_reminder[R: (OneShotReminder, CronReminder)](
    session: Session,
    model: type[R],
    reminder_id: int,
) -> R:
    reminder = get_reminder(session, model, reminder_id, for_update=True)
    if reminder is None:
        raise ReminderNotFoundError(model.__tablename__, reminder_id)
    return reminder


def get_by_msg_id[R: (OneShotReminder, CronReminder)](
    session: Session,
    model: type[R],
    chat_id: int,
    msg_id: int,
) -> R | None:
    """Get the reminder created by a given chat message.

    :param session: Database session.
    :param model: Reminder model class.
    :param chat_id: Chat the message belongs to.
    :param msg_id: External message ID.
    :returns: The reminder or None if not found.
    """
    return (
        session.query(model)
        .filter(model.chat_id == chat_id, model.msg_id == msg_id)
        .order_by(model.id)
        .first()
    )


def get_by_reply_id[R: (OneShotReminder, CronReminder)](
    session: Session,
    model: type[R],
    chat_id: int,
    reply_id: int,
) -> R | None:
    """Get the reminder whose notification has a given message ID.

    :param session: Database session.
    :param model: Reminder model class.
    :param chat_id: Chat the message belongs to.
    :param reply_id: External message ID of the delivered notification.
    :returns: The reminder or None if not found.
    """
    return (
        session.query(model)
        .filter(model.chat_id == chat_id, model.reply_id == reply_id)
        .order_by(model.id)
        .first()
    )


def set_msg_id(
    session: Session,
    model: type[AnyReminder],
    reminder_id: int,
    msg_id: int,
) -> None:
    """Record the ID of the message that created a reminder.

    :raises ReminderNotFoundError: If the reminder does not exist.
    """
    reminder = _require_reminder(session, model, reminder_id)
    reminder.msg_id = msg_id
    session.flush()


def set_reply_id(
    session: Session,
    model: type[AnyReminder],
    reminder_id: int,
    reply_id: int,
) -> None:
    """Record the ID of the message a reminder was last delivered as.

    :raises ReminderNotFoundError: If the reminder does not exist.
    """
    reminder = _require_reminder(session, model, reminder_id)
    reminder.reply_id = reply_id
    session.flush()


def delete_reminder(
    session: Session,
    model: type[AnyReminder],
    reminder_id: int,
) -> bool:
    """Delete a reminder. Deleting a missing reminder is a no-op.

    :param session: Database session.
    :param model: Reminder model class.
    :param reminder_id: Reminder ID.
    :returns: True if a row was deleted.
    """
    deleted = session.query(model).filter(model.id == reminder_id).delete()
    session.flush()
    if deleted:
        logger.info(f"Deleted {model.__tablename__}: id={reminder_id}")
    return deleted > 0


def reset_edit(session: Session, chat_id: int) -> None:
    """Clear the edit slot of a chat in both reminder tables.

    :param session: Database session.
    :param chat_id: Chat whose reminders are reset.
    """
    for model in REMINDER_MODELS:
        session.query(model).filter(model.chat_id == chat_id).update(
            {"edit": False, "edit_mode": EditMode.NONE.value},
            synchronize_session="fetch",
        )
    session.flush()
    logger.debug(f"Reset edit state: chat_id={chat_id}")


def count_edit_reminders(session: Session, chat_id: int) -> int:
    """Count reminders of a chat that are in edit state, across both tables.

    :param session: Database session.
    :param chat_id: Chat ID.
    :returns: Number of rows with edit=True.
    """
    return sum(
        session.execute(
            select(func.count())
            .select_from(model)
            .where(model.chat_id == chat_id, model.edit.is_(True))
        ).scalar_one()
        for model in REMINDER_MODELS
    )


def set_edit(
    session: Session,
    model: type[AnyReminder],
    reminder_id: int,
    chat_id: int,
) -> AnyReminder:
    """Make a reminder the chat's single edit slot.

    Locks the chat's rows, clears edit state on every reminder of the chat in
    both tables, then marks the target. Both steps happen in the caller's
    transaction, so concurrent calls for one chat are serialised by the row
    locks and the last writer wins.

    :param session: Database session.
    :param model: Reminder model class of the target.
    :param reminder_id: Reminder to put into edit state.
    :param chat_id: Chat that owns the reminder.
    :returns: The reminder now in edit state.
    :raises ReminderNotFoundError: If the reminder does not exist for this chat or was
        already sent.
    :raises EditStateViolationError: If more than one edit row remains afterwards.
    """
    for locked_model in REMINDER_MODELS:
        session.execute(
            select(locked_model.id).where(locked_model.chat_id == chat_id).with_for_update()
        ).all()

    reminder = get_reminder(session, model, reminder_id)
    # Sent rows are invisible to get_edit_reminder, so they cannot hold the slot
    if reminder is None or reminder.chat_id != chat_id or reminder.sent:
        raise ReminderNotFoundError(model.__tablename__, reminder_id)

    reset_edit(session, chat_id)
    reminder.edit = True
    reminder.edit_mode = EditMode.NONE.value
    session.flush()

    count = count_edit_reminders(session, chat_id)
    if count > 1:
        raise EditStateViolationError(chat_id, count)

    logger.info(f"Set edit slot: chat_id={chat_id}, {model.__tablename__} id={reminder_id}")
    return reminder


def get_edit_reminder(session: Session, chat_id: int) -> AnyReminder | None:
    """Get the unsent reminder currently occupying a chat's edit slot.

    :param session: Database session.
    :param chat_id: Chat ID.
    :returns: The reminder in edit state, or None.
    """
    for model in REMINDER_MODELS:
        reminder = (
            session.query(model)
            .filter(
                model.chat_id == chat_id,
                model.edit.is_(True),
                model.sent.is_(False),
            )
            .first()
        )
        if reminder is not None:
            return reminder
    return None


def set_edit_mode(session: Session, chat_id: int, mode: EditMode) -> AnyReminder | None:
    """Choose which field the chat's current edit session changes.

    :param session: Database session.
    :param chat_id: Chat ID.
    :param mode: The field to edit next.
    :returns: The updated reminder, or None if the chat has no edit slot.
    """
    reminder = get_edit_reminder(session, chat_id)
    if reminder is None:
        logger.debug(f"No reminder in edit state: chat_id={chat_id}")
        return None

    reminder.edit_mode = mode.value
    session.flush()
    return reminder


def _finish_edit(reminder: AnyReminder) -> None:
    reminder.edit = False
    reminder.edit_mode = EditMode.NONE.value


def commit_edited_description[R: (OneShotReminder, CronReminder)](
    session: Session,
    model: type[R],
    reminder_id: int,
    description: str,
) -> R:
    """Replace a reminder's description and close its edit session.

    :param session: Database session.
    :param model: Reminder model class.
    :param reminder_id: Reminder ID.
    :param description: New description.
    :returns: The updated reminder.
    :raises ReminderNotFoundError: If the reminder does not exist.
    """
    reminder = _require_reminder(session, model, reminder_id)
    reminder.description = description
    _finish_edit(reminder)
    session.flush()
    logger.info(f"Edited description: {model.__tablename__} id={reminder_id}")
    return reminder


def commit_edited_time(
    session: Session,
    reminder_id: int,
    time: datetime,
) -> OneShotReminder:
    """Move a one-shot reminder to a new time and close its edit session.

    :param session: Database session.
    :param reminder_id: Reminder ID.
    :param time: New firing time.
    :returns: The updated reminder.
    :raises ReminderNotFoundError: If the reminder does not exist.
    """
    reminder = _require_reminder(session, OneShotReminder, reminder_id)
    reminder.time = time
    reminder.delivery_attempts = 0
    _finish_edit(reminder)
    session.flush()
    logger.info(f"Edited time: reminder id={reminder_id}, time={time}")
    return reminder


def commit_edited_cron_expr(
    session: Session,
    reminder_id: int,
    cron_expr: str,
    next_time: datetime,
) -> CronReminder:
    """Replace a cron reminder's recurrence and close its edit session.

    :param session: Database session.
    :param reminder_id: Reminder ID.
    :param cron_expr: New cron expression.
    :param next_time: First occurrence under the new expression.
    :returns: The updated reminder.
    :raises ReminderNotFoundError: If the reminder does not exist.
    """
    reminder = _require_reminder(session, CronReminder, reminder_id)
    reminder.cron_expr = cron_expr
    reminder.time = next_time
    reminder.delivery_attempts = 0
    _finish_edit(reminder)
    session.flush()
    logger.info(f"Edited cron: cron_reminder id={reminder_id}, cron={cron_expr}")
    return reminder


def toggle_paused(
    session: Session,
    model: type[AnyReminder],
    reminder_id: int,
) -> bool:
    """Flip the paused flag of a reminder.

    The row is read under a lock so duplicate toggles cannot interleave.

    :param session: Database session.
    :param model: Reminder model class.
    :param reminder_id: Reminder ID.
    :returns: The new paused value.
    :raises ReminderNotFoundError: If the reminder does not exist.
    """
    reminder = _require_reminder(session, model, reminder_id)
    reminder.paused = not reminder.paused
    session.flush()
    logger.info(f"Toggled paused: {model.__tablename__} id={reminder_id}, paused={reminder.paused}")
    return reminder.paused


def mark_sent(
    session: Session,
    model: type[AnyReminder],
    reminder_id: int,
) -> None:
    """Mark a reminder as sent. Marking an already sent reminder is a no-op.

    :param session: Database session.
    :param model: Reminder model class.
    :param reminder_id: Reminder ID.
    :raises ReminderNotFoundError: If the reminder does not exist.
    """
    reminder = _require_reminder(session, model, reminder_id)
    if reminder.sent:
        return
    reminder.sent = True
    session.flush()
    logger.info(f"Marked sent: {model.__tablename__} id={reminder_id}")


def reschedule_cron_reminder(
    session: Session,
    reminder_id: int,
    next_time: datetime,
) -> CronReminder:
    """Move a cron reminder to its next occurrence.

    :param session: Database session.
    :param reminder_id: Cron reminder ID.
    :param next_time: The next occurrence.
    :returns: The updated reminder.
    :raises ReminderNotFoundError: If the reminder does not exist.
    """
    reminder = _require_reminder(session, CronReminder, reminder_id)
    reminder.time = next_time
    reminder.sent = False
    reminder.delivery_attempts = 0
    session.flush()
    logger.debug(f"Rescheduled cron reminder: id={reminder_id}, next={next_time}")
    return reminder


def record_delivery_failure(
    session: Session,
    model: type[AnyReminder],
    reminder_id: int,
) -> int:
    """Count one more failed delivery of a reminder's current occurrence.

    The counter lives on the row so every dispatcher process sees the same
    value. It is reset whenever the reminder gets a new schedule.

    :param session: Database session.
    :param model: Reminder model class.
    :param reminder_id: Reminder ID.
    :returns: Failed deliveries so far, including this one.
    :raises ReminderNotFoundError: If the reminder does not exist.
    """
    reminder = _require_reminder(session, model, reminder_id)
    reminder.delivery_attempts += 1
    session.flush()
    logger.debug(
        f"Delivery failure recorded: {model.__tablename__} id={reminder_id}, "
        f"attempts={reminder.delivery_attempts}"
    )
    return reminder.delivery_attempts


def get_active_reminders[R: (OneShotReminder, CronReminder)](
    session: Session,
    model: type[R],
    now: datetime | None = None,
) -> list[R]:
    """Get reminders that are due: unsent, not paused and scheduled before now.

    :param session: Database session.
    :param model: Reminder model class.
    :param now: Current time (defaults to now).
    :returns: Due reminders ordered by time.
    """
    if now is None:
        now = datetime.now(UTC)

    return (
        session.query(model)
        .filter(
            model.sent.is_(False),
            model.paused.is_(False),
            model.time < now,
        )
        .order_by(model.time, model.id)
        .all()
    )


def get_pending_for_chat[R: (OneShotReminder, CronReminder)](
    session: Session,
    model: type[R],
    chat_id: int,
) -> list[R]:
    """Get all unsent reminders of a chat, paused or not, regardless of time.

    :param session: Database session.
    :param model: Reminder model class.
    :param chat_id: Chat ID.
    :returns: Pending reminders ordered by time.
    """
    return (
        session.query(model)
        .filter(model.chat_id == chat_id, model.sent.is_(False))
        .order_by(model.time, model.id)
        .all()
    )


def get_sorted_all(
    session: Session,
    chat_id: int,
    exclude_one_shot: bool = False,
    exclude_cron: bool = False,
) -> list[GenericReminder]:
    """Get a chat's pending reminders of both kinds in display order.

    :param session: Database session.
    :param chat_id: Chat ID.
    :param exclude_one_shot: Leave out one-shot reminders.
    :param exclude_cron: Leave out cron reminders.
    :returns: Reminders sorted by due time, then kind, then ID.
    """
    one_shot = [] if exclude_one_shot else get_pending_for_chat(session, OneShotReminder, chat_id)
    cron = [] if exclude_cron else get_pending_for_chat(session, CronReminder, chat_id)
    return wrap_reminders(one_shot, cron)
