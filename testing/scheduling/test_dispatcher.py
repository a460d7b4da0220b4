"""Tests for the reminder dispatch scheduler."""

from datetime import timedelta
from unittest.mock import MagicMock

from remindee.database.connection import get_session
from remindee.database.reminders.models import CronReminder, OneShotReminder
from remindee.database.reminders.operations import (
    commit_edited_cron_expr,
    commit_edited_time,
    create_cron_reminder,
    create_reminder,
    delete_reminder,
    get_active_reminders,
    get_reminder,
    toggle_paused,
)
from remindee.exceptions import StorageError
from remindee.messaging.base import ReminderNotification, ReminderNotifier
from remindee.scheduling.dispatcher import DispatchStats, ReminderDispatcher, build_notification
from testing.database.fixtures import DatabaseTestCase, T


class FakeNotifier(ReminderNotifier):
    """Records deliveries and fails for chosen chats."""

    def __init__(self, failing_chats: set[int] | None = None) -> None:
        self.delivered: list[ReminderNotification] = []
        self.failing_chats = failing_chats or set()
        self.on_deliver: MagicMock | None = None
        self._next_message_id = 1000

    def deliver(self, notification: ReminderNotification) -> int | None:
        if self.on_deliver is not None:
            self.on_deliver(notification)
        if notification.chat_id in self.failing_chats:
            raise ConnectionError("network down")
        self.delivered.append(notification)
        self._next_message_id += 1
        return self._next_message_id


class TestBuildNotification(DatabaseTestCase):
    """Tests for build_notification."""

    def test_threads_under_creating_message(self) -> None:
        """Test that the notification replies to the message that created the reminder."""
        with get_session() as session:
            reminder = create_cron_reminder(session, 3, "0 * * * *", T, "water plants", msg_id=77)

        notification = build_notification(reminder)

        self.assertEqual(notification.chat_id, 3)
        self.assertEqual(notification.description, "water plants")
        self.assertTrue(notification.is_recurring)
        self.assertEqual(notification.reply_to_message_id, 77)


class TestDispatchStats(DatabaseTestCase):
    """Tests for DispatchStats dataclass."""

    def test_default_values(self) -> None:
        """Test that defaults are initialized correctly."""
        stats = DispatchStats()

        self.assertEqual(stats.reminders_sent, 0)
        self.assertEqual(stats.cron_rescheduled, 0)
        self.assertFalse(stats.skipped)
        self.assertEqual(stats.errors, [])


class TestReminderDispatcher(DatabaseTestCase):
    """Tests for ReminderDispatcher.run_cycle."""

    def setUp(self) -> None:
        """Create a dispatcher with a recording notifier."""
        super().setUp()
        self.notifier = FakeNotifier()
        self.dispatcher = ReminderDispatcher(self.notifier)

    def test_delivers_and_marks_one_shot_sent(self) -> None:
        """Test that a due one-shot reminder is delivered once and marked sent."""
        with get_session() as session:
            reminder = create_reminder(session, 1, T - timedelta(hours=1), "buy milk", msg_id=5)

        stats = self.dispatcher.run_cycle(T)
        second = self.dispatcher.run_cycle(T)

        self.assertEqual(stats.one_shot_due, 1)
        self.assertEqual(stats.reminders_sent, 1)
        self.assertEqual(second.reminders_sent, 0)
        self.assertEqual(len(self.notifier.delivered), 1)
        self.assertEqual(self.notifier.delivered[0].reply_to_message_id, 5)
        with get_session() as session:
            stored = get_reminder(session, OneShotReminder, reminder.id)
            assert stored is not None
            self.assertTrue(stored.sent)
            self.assertEqual(stored.reply_id, 1001)

    def test_reschedules_cron_reminder(self) -> None:
        """Test that a fired cron reminder moves to the next top of the hour."""
        with get_session() as session:
            reminder = create_cron_reminder(
                session, 1, "0 * * * *", T - timedelta(minutes=1), "stretch"
            )

        stats = self.dispatcher.run_cycle(T)

        self.assertEqual(stats.cron_due, 1)
        self.assertEqual(stats.cron_rescheduled, 1)
        self.assertTrue(self.notifier.delivered[0].is_recurring)
        with get_session() as session:
            stored = get_reminder(session, CronReminder, reminder.id)
            assert stored is not None
            self.assertFalse(stored.sent)
            self.assertEqual(stored.time, T)
            self.assertEqual(get_active_reminders(session, CronReminder, T), [])
            later = get_active_reminders(session, CronReminder, T + timedelta(hours=1))
            self.assertEqual([r.id for r in later], [reminder.id])

    def test_paused_reminders_are_not_delivered(self) -> None:
        """Test that paused reminders stay silent."""
        with get_session() as session:
            reminder = create_reminder(session, 1, T - timedelta(hours=1), "quiet")
            toggle_paused(session, OneShotReminder, reminder.id)

        stats = self.dispatcher.run_cycle(T)

        self.assertEqual(stats.one_shot_due, 0)
        self.assertEqual(self.notifier.delivered, [])

    def test_failed_delivery_does_not_block_others(self) -> None:
        """Test that one failing reminder is retried while the rest are delivered."""
        self.notifier.failing_chats = {2}
        with get_session() as session:
            failing = create_reminder(session, 2, T - timedelta(minutes=5), "fails")
            ok = create_reminder(session, 1, T - timedelta(minutes=1), "works")

        stats = self.dispatcher.run_cycle(T)

        self.assertEqual(stats.delivery_failures, 1)
        self.assertEqual(stats.reminders_sent, 1)
        with get_session() as session:
            failed_row = get_reminder(session, OneShotReminder, failing.id)
            ok_row = get_reminder(session, OneShotReminder, ok.id)
            assert failed_row is not None and ok_row is not None
            self.assertFalse(failed_row.sent)
            self.assertTrue(ok_row.sent)

        self.notifier.failing_chats = set()
        retry = self.dispatcher.run_cycle(T)

        self.assertEqual(retry.reminders_sent, 1)

    def test_gives_up_after_max_attempts(self) -> None:
        """Test that a one-shot reminder is marked sent after repeated failures."""
        dispatcher = ReminderDispatcher(self.notifier, max_delivery_attempts=2)
        self.notifier.failing_chats = {1}
        with get_session() as session:
            reminder = create_reminder(session, 1, T - timedelta(minutes=1), "never arrives")

        first = dispatcher.run_cycle(T)
        second = dispatcher.run_cycle(T)
        third = dispatcher.run_cycle(T)

        self.assertEqual(first.abandoned, 0)
        self.assertEqual(second.abandoned, 1)
        self.assertEqual(len(second.errors), 1)
        self.assertEqual(third.one_shot_due, 0)
        with get_session() as session:
            stored = get_reminder(session, OneShotReminder, reminder.id)
            assert stored is not None
            self.assertTrue(stored.sent)

    def test_gives_up_on_cron_occurrence_only(self) -> None:
        """Test that an abandoned cron reminder skips to its next occurrence."""
        dispatcher = ReminderDispatcher(self.notifier, max_delivery_attempts=1)
        self.notifier.failing_chats = {1}
        with get_session() as session:
            reminder = create_cron_reminder(
                session, 1, "0 * * * *", T - timedelta(minutes=1), "flaky"
            )

        stats = dispatcher.run_cycle(T)

        self.assertEqual(stats.abandoned, 1)
        self.assertEqual(stats.cron_rescheduled, 1)
        with get_session() as session:
            stored = get_reminder(session, CronReminder, reminder.id)
            assert stored is not None
            self.assertFalse(stored.sent)
            self.assertEqual(stored.time, T)

    def test_unparseable_cron_is_frozen(self) -> None:
        """Test that a cron reminder whose rule cannot be parsed fires once, then stops."""
        with get_session() as session:
            reminder = create_cron_reminder(
                session, 1, "not a cron", T - timedelta(minutes=1), "broken"
            )

        stats = self.dispatcher.run_cycle(T)

        self.assertEqual(stats.reminders_sent, 1)
        self.assertEqual(stats.cron_parse_failures, 1)
        self.assertEqual(len(stats.errors), 1)
        with get_session() as session:
            stored = get_reminder(session, CronReminder, reminder.id)
            assert stored is not None
            self.assertTrue(stored.sent)
        self.assertEqual(self.dispatcher.run_cycle(T + timedelta(days=1)).cron_due, 0)

    def test_reminder_deleted_during_delivery(self) -> None:
        """Test that a row deleted while its message was in flight is left alone."""
        with get_session() as session:
            reminder = create_reminder(session, 1, T - timedelta(minutes=1), "gone")

        def delete_row(_: ReminderNotification) -> None:
            with get_session() as session:
                delete_reminder(session, OneShotReminder, reminder.id)

        self.notifier.on_deliver = MagicMock(side_effect=delete_row)

        stats = self.dispatcher.run_cycle(T)

        self.assertEqual(stats.reminders_sent, 1)
        self.assertEqual(stats.errors, [])

    def test_skips_when_cycle_already_running(self) -> None:
        """Test that an overlapping cycle is skipped rather than queued."""
        with get_session() as session:
            create_reminder(session, 1, T - timedelta(minutes=1), "once")

        self.dispatcher._lock.acquire()
        try:
            stats = self.dispatcher.run_cycle(T)
        finally:
            self.dispatcher._lock.release()

        self.assertTrue(stats.skipped)
        self.assertEqual(self.notifier.delivered, [])
        self.assertEqual(self.dispatcher.run_cycle(T).reminders_sent, 1)

    def test_due_query_failure_propagates_and_releases_lock(self) -> None:
        """Test that a storage failure aborts the cycle without wedging the lock."""
        failing_factory = MagicMock(side_effect=StorageError("database unavailable"))
        dispatcher = ReminderDispatcher(self.notifier, session_factory=failing_factory)

        with self.assertRaises(StorageError):
            dispatcher.run_cycle(T)

        self.assertFalse(dispatcher._lock.locked())

    def test_delivers_in_due_order(self) -> None:
        """Test that within a kind, older reminders are delivered first."""
        with get_session() as session:
            create_reminder(session, 1, T - timedelta(minutes=1), "second")
            create_reminder(session, 1, T - timedelta(minutes=10), "first")

        self.dispatcher.run_cycle(T)

        self.assertEqual([n.description for n in self.notifier.delivered], ["first", "second"])

    def test_time_edited_during_delivery_is_kept(self) -> None:
        """Test that a one-shot reminder moved while in flight is not marked sent."""
        with get_session() as session:
            reminder = create_reminder(session, 1, T - timedelta(hours=1), "moved")

        def move_row(_: ReminderNotification) -> None:
            with get_session() as session:
                commit_edited_time(session, reminder.id, T + timedelta(days=1))

        self.notifier.on_deliver = MagicMock(side_effect=move_row)

        stats = self.dispatcher.run_cycle(T)

        self.assertEqual(stats.reminders_sent, 1)
        with get_session() as session:
            stored = get_reminder(session, OneShotReminder, reminder.id)
            assert stored is not None
            self.assertFalse(stored.sent)
            self.assertEqual(stored.time, T + timedelta(days=1))
            self.assertEqual(stored.reply_id, 1001)
        self.assertEqual(self.dispatcher.run_cycle(T + timedelta(days=1)).reminders_sent, 1)

    def test_cron_edited_during_delivery_is_kept(self) -> None:
        """Test that a new cron rule saved while in flight is not overwritten by the reschedule."""
        new_time = T + timedelta(days=1, hours=-4)
        with get_session() as session:
            reminder = create_cron_reminder(
                session, 1, "0 * * * *", T - timedelta(minutes=1), "stretch"
            )

        def edit_rule(_: ReminderNotification) -> None:
            with get_session() as session:
                commit_edited_cron_expr(session, reminder.id, "0 9 * * *", new_time)

        self.notifier.on_deliver = MagicMock(side_effect=edit_rule)

        stats = self.dispatcher.run_cycle(T)

        self.assertEqual(stats.cron_rescheduled, 0)
        with get_session() as session:
            stored = get_reminder(session, CronReminder, reminder.id)
            assert stored is not None
            self.assertEqual(stored.cron_expr, "0 9 * * *")
            self.assertEqual(stored.time, new_time)
            self.assertFalse(stored.sent)

    def test_paused_during_delivery_stays_unsent(self) -> None:
        """Test that pausing a reminder while in flight keeps it for later."""
        with get_session() as session:
            reminder = create_reminder(session, 1, T - timedelta(minutes=1), "hold on")

        def pause_row(_: ReminderNotification) -> None:
            with get_session() as session:
                toggle_paused(session, OneShotReminder, reminder.id)

        self.notifier.on_deliver = MagicMock(side_effect=pause_row)

        self.dispatcher.run_cycle(T)

        with get_session() as session:
            stored = get_reminder(session, OneShotReminder, reminder.id)
            assert stored is not None
            self.assertTrue(stored.paused)
            self.assertFalse(stored.sent)

    def test_attempt_limit_holds_across_dispatchers(self) -> None:
        """Test that failures count towards the limit when every cycle uses a new dispatcher."""
        self.notifier.failing_chats = {1}
        with get_session() as session:
            reminder = create_reminder(session, 1, T - timedelta(minutes=1), "never arrives")

        first = ReminderDispatcher(self.notifier, max_delivery_attempts=2).run_cycle(T)
        second = ReminderDispatcher(self.notifier, max_delivery_attempts=2).run_cycle(T)

        self.assertEqual(first.abandoned, 0)
        self.assertEqual(second.abandoned, 1)
        with get_session() as session:
            stored = get_reminder(session, OneShotReminder, reminder.id)
            assert stored is not None
            self.assertTrue(stored.sent)
            self.assertEqual(stored.delivery_attempts, 2)

    def test_failure_of_edited_reminder_is_not_counted(self) -> None:
        """Test that a failed delivery does not count against a reminder moved meanwhile."""
        dispatcher = ReminderDispatcher(self.notifier, max_delivery_attempts=1)
        self.notifier.failing_chats = {1}
        with get_session() as session:
            reminder = create_reminder(session, 1, T - timedelta(minutes=1), "moved")

        def move_row(_: ReminderNotification) -> None:
            with get_session() as session:
                commit_edited_time(session, reminder.id, T + timedelta(hours=2))

        self.notifier.on_deliver = MagicMock(side_effect=move_row)

        stats = dispatcher.run_cycle(T)

        self.assertEqual(stats.delivery_failures, 1)
        self.assertEqual(stats.abandoned, 0)
        with get_session() as session:
            stored = get_reminder(session, OneShotReminder, reminder.id)
            assert stored is not None
            self.assertFalse(stored.sent)
            self.assertEqual(stored.delivery_attempts, 0)
