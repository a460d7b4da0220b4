"""Dispatch scheduler: deliver due reminders and advance recurring ones.

Every cycle re-reads the due set from the database, so there is no in-memory
queue to lose on restart. A reminder is only marked sent (or moved to its next
occurrence) after its delivery succeeded, and only if the row still holds the
occurrence that was delivered. A failed delivery leaves the row due and it is
retried on the next cycle; the failure count is stored on the row so that every
dispatcher process enforces the same attempt limit.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from remindee.database.connection import get_session
from remindee.database.reminders.models import AnyReminder, CronReminder, OneShotReminder
from remindee.database.reminders.operations import (
    get_active_reminders,
    get_reminder,
    mark_sent,
    record_delivery_failure,
    reschedule_cron_reminder,
    set_reply_id,
)
from remindee.exceptions import CronParseError
from remindee.messaging.base import ReminderNotification, ReminderNotifier
from remindee.scheduling.cron import next_occurrence

logger = logging.getLogger(__name__)

type SessionFactory = Callable[[], AbstractContextManager[Session]]


@dataclass
class DispatchStats:
    """Outcome of one dispatch cycle."""

    one_shot_due: int = 0
    cron_due: int = 0
    reminders_sent: int = 0
    cron_rescheduled: int = 0
    delivery_failures: int = 0
    cron_parse_failures: int = 0
    abandoned: int = 0
    skipped: bool = False
    errors: list[str] = field(default_factory=list)


def build_notification(reminder: AnyReminder) -> ReminderNotification:
    """Build the transport payload for a reminder.

    :param reminder: The due reminder.
    :returns: Notification threaded under the message that created the reminder.
    """
    return ReminderNotification(
        chat_id=reminder.chat_id,
        description=reminder.description,
        is_recurring=reminder.is_cron,
        reply_to_message_id=reminder.msg_id,
    )


def is_same_occurrence(current: AnyReminder, delivered: AnyReminder) -> bool:
    """Check that a re-read row still describes the occurrence that was delivered.

    :param current: The row as re-read under lock.
    :param delivered: The snapshot the delivery was built from.
    :returns: False if the row was rescheduled, edited, paused or sent meanwhile.
    """
    if current.sent or current.paused or current.time != delivered.time:
        return False
    if isinstance(current, CronReminder) and isinstance(delivered, CronReminder):
        return current.cron_expr == delivered.cron_expr
    return True


class ReminderDispatcher:
    """Runs dispatch cycles against the reminder store.

    Cycles never overlap: a cycle requested while another one is running is
    skipped rather than queued.
    """

    def __init__(
        self,
        notifier: ReminderNotifier,
        session_factory: SessionFactory = get_session,
        max_delivery_attempts: int | None = None,
    ) -> None:
        """Initialise the dispatcher.

        :param notifier: Transport used to deliver reminders.
        :param session_factory: Callable returning a transactional session context.
        :param max_delivery_attempts: Failed deliveries tolerated per reminder
            before it is given up on. Counted on the row, so the limit holds
            across dispatcher instances. None retries forever.
        """
        self._notifier = notifier
        self._session_factory = session_factory
        self._max_delivery_attempts = max_delivery_attempts
        self._lock = threading.Lock()

    def run_cycle(self, now: datetime | None = None) -> DispatchStats:
        """Deliver every reminder that is due at ``now``.

        :param now: Current time (defaults to now).
        :returns: Stats for the cycle; ``skipped`` is set if a cycle was already running.
        """
        if not self._lock.acquire(blocking=False):
            logger.warning("Dispatch cycle still running, skipping this tick")
            return DispatchStats(skipped=True)

        try:
            return self._run_cycle(now or datetime.now(UTC))
        finally:
            self._lock.release()

    def _run_cycle(self, now: datetime) -> DispatchStats:
        stats = DispatchStats()

        with self._session_factory() as session:
            due_one_shot = get_active_reminders(session, OneShotReminder, now)
            due_cron = get_active_reminders(session, CronReminder, now)

        stats.one_shot_due = len(due_one_shot)
        stats.cron_due = len(due_cron)
        logger.info(
            f"Dispatch cycle at {now.isoformat()}: "
            f"{stats.one_shot_due} one-shot and {stats.cron_due} cron reminders due"
        )

        for reminder in [*due_one_shot, *due_cron]:
            try:
                self._dispatch(reminder, stats)
            except Exception as e:
                error_msg = f"Failed to dispatch {reminder.__tablename__} {reminder.id}: {e}"
                logger.exception(error_msg)
                stats.errors.append(error_msg)

        logger.info(
            f"Dispatch cycle complete: sent={stats.reminders_sent}, "
            f"rescheduled={stats.cron_rescheduled}, "
            f"delivery_failures={stats.delivery_failures}, "
            f"abandoned={stats.abandoned}, errors={len(stats.errors)}"
        )
        return stats

    def _dispatch(self, reminder: AnyReminder, stats: DispatchStats) -> None:
        model = type(reminder)

        try:
            message_id = self._notifier.deliver(build_notification(reminder))
        except Exception as e:
            stats.delivery_failures += 1
            logger.warning(f"Delivery failed for {reminder.__tablename__} {reminder.id}: {e}")
            self._record_failure(reminder, stats)
            return

        stats.reminders_sent += 1

        with self._session_factory() as session:
            current = get_reminder(session, model, reminder.id, for_update=True)
            if current is None:
                logger.info(f"{reminder.__tablename__} {reminder.id} deleted during delivery")
                return
            if message_id is not None:
                set_reply_id(session, model, reminder.id, message_id)
            if not is_same_occurrence(current, reminder):
                logger.info(
                    f"{reminder.__tablename__} {reminder.id} changed during delivery, "
                    f"keeping its new state"
                )
                return
            if isinstance(current, CronReminder):
                self._advance_cron(session, current, stats)
            else:
                mark_sent(session, OneShotReminder, reminder.id)

    def _record_failure(self, reminder: AnyReminder, stats: DispatchStats) -> None:
        """Count a failed delivery and give up once the attempt limit is reached.

        Failures of an occurrence that was edited, paused or deleted while the
        delivery was in flight are not counted against the new state.
        """
        model = type(reminder)
        with self._session_factory() as session:
            current = get_reminder(session, model, reminder.id, for_update=True)
            if current is None or not is_same_occurrence(current, reminder):
                return

            attempts = record_delivery_failure(session, model, reminder.id)
            if self._max_delivery_attempts is not None and attempts >= self._max_delivery_attempts:
                self._abandon(session, current, attempts, stats)

    def _advance_cron(self, session: Session, reminder: CronReminder, stats: DispatchStats) -> None:
        """Move a fired cron reminder to its next occurrence, or freeze it.

        ``reminder`` must be the row re-read under lock in this transaction, so
        the occurrence that just fired is its stored ``time``.
        """
        try:
            next_time = next_occurrence(reminder.cron_expr, reminder.time)
        except CronParseError as e:
            mark_sent(session, CronReminder, reminder.id)
            stats.cron_parse_failures += 1
            error_msg = f"Froze cron reminder {reminder.id}: {e}"
            logger.error(error_msg)
            stats.errors.append(error_msg)
            return

        reschedule_cron_reminder(session, reminder.id, next_time)
        stats.cron_rescheduled += 1

    def _abandon(
        self,
        session: Session,
        reminder: AnyReminder,
        attempts: int,
        stats: DispatchStats,
    ) -> None:
        """Stop retrying a reminder that keeps failing delivery.

        One-shot reminders are marked sent; cron reminders skip to their next
        occurrence.
        """
        stats.abandoned += 1
        error_msg = (
            f"Gave up on {reminder.__tablename__} {reminder.id} after "
            f"{attempts} failed deliveries"
        )
        logger.error(error_msg)
        stats.errors.append(error_msg)

        if isinstance(reminder, CronReminder):
            self._advance_cron(session, reminder, stats)
        else:
            mark_sent(session, OneShotReminder, reminder.id)
