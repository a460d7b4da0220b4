"""Tests for reminder Dagster ops and schedules."""

import unittest
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock, patch

from dagster import (
    RunRequest,
    SkipReason,
    build_op_context,
    build_schedule_context,
    instance_for_test,
)
from remindee.dagster.reminders.ops import (
    MAX_ERRORS_IN_NOTIFICATION,
    _notify_errors,
    dispatch_reminders_op,
)
from remindee.dagster.reminders.schedules import (
    IN_PROGRESS_STATUSES,
    dispatch_reminders_schedule,
    has_run_in_progress,
)
from remindee.database.connection import get_session
from remindee.database.reminders.models import OneShotReminder
from remindee.database.reminders.operations import create_reminder, get_reminder
from remindee.messaging.telegram import TelegramClientError
from remindee.scheduling.dispatcher import DispatchStats
from testing.database.fixtures import DatabaseTestCase


def _settings(error_bot_token: str | None = None, error_chat_id: str | None = None) -> MagicMock:
    return MagicMock(
        bot_token="test-token",
        request_timeout=30,
        error_bot_token=error_bot_token,
        error_chat_id=error_chat_id,
    )


class TestDispatchRemindersOp(unittest.TestCase):
    """Tests for dispatch_reminders_op."""

    @patch("remindee.dagster.reminders.ops.get_dispatch_settings")
    @patch("remindee.dagster.reminders.ops.get_telegram_settings")
    @patch("remindee.dagster.reminders.ops.TelegramClient")
    @patch("remindee.dagster.reminders.ops.ReminderDispatcher")
    def test_runs_one_cycle_and_returns_stats(
        self,
        mock_dispatcher_cls: MagicMock,
        mock_telegram_client: MagicMock,
        mock_settings: MagicMock,
        mock_dispatch_settings: MagicMock,
    ) -> None:
        """Test op runs a single dispatch cycle and returns its stats."""
        mock_settings.return_value = _settings()
        mock_dispatch_settings.return_value = MagicMock(max_delivery_attempts=3)
        stats = DispatchStats(one_shot_due=2, reminders_sent=2)
        mock_dispatcher_cls.return_value.run_cycle.return_value = stats

        context = build_op_context()
        result = dispatch_reminders_op(context)

        self.assertIs(result, stats)
        mock_dispatcher_cls.return_value.run_cycle.assert_called_once_with()
        self.assertEqual(mock_dispatcher_cls.call_args.kwargs["max_delivery_attempts"], 3)
        mock_telegram_client.assert_called_once_with(bot_token="test-token", request_timeout=30)

    @patch("remindee.dagster.reminders.ops.get_dispatch_settings")
    @patch("remindee.dagster.reminders.ops.get_telegram_settings")
    @patch("remindee.dagster.reminders.ops.TelegramClient")
    @patch("remindee.dagster.reminders.ops.ReminderDispatcher")
    def test_errors_are_sent_to_error_chat(
        self,
        mock_dispatcher_cls: MagicMock,
        mock_telegram_client: MagicMock,
        mock_settings: MagicMock,
        mock_dispatch_settings: MagicMock,
    ) -> None:
        """Test that cycle errors trigger a notification to the error bot."""
        mock_settings.return_value = _settings("error-token", "999")
        mock_dispatch_settings.return_value = MagicMock(max_delivery_attempts=None)
        mock_dispatcher_cls.return_value.run_cycle.return_value = DispatchStats(
            errors=["Froze cron reminder 3"]
        )

        dispatch_reminders_op(build_op_context())

        mock_telegram_client.assert_any_call(bot_token="error-token", chat_id="999")
        error_client = mock_telegram_client.return_value
        error_client.send_message.assert_called_once()
        self.assertIn("Froze cron reminder 3", error_client.send_message.call_args.args[0])


class TestDispatchRemindersOpAgainstDatabase(DatabaseTestCase):
    """Tests for dispatch_reminders_op across separate runs."""

    @patch("remindee.dagster.reminders.ops.get_dispatch_settings")
    @patch("remindee.dagster.reminders.ops.get_telegram_settings")
    @patch("remindee.dagster.reminders.ops.TelegramClient")
    def test_gives_up_after_max_attempts_over_runs(
        self,
        mock_telegram_client: MagicMock,
        mock_settings: MagicMock,
        mock_dispatch_settings: MagicMock,
    ) -> None:
        """Test that failures from earlier runs count towards the attempt limit."""
        mock_settings.return_value = _settings()
        mock_dispatch_settings.return_value = MagicMock(max_delivery_attempts=2)
        mock_telegram_client.return_value.send_message.side_effect = TelegramClientError(
            "Bad Gateway"
        )
        with get_session() as session:
            reminder = create_reminder(
                session, 1, datetime.now(UTC) - timedelta(minutes=1), "never arrives"
            )

        first = dispatch_reminders_op(build_op_context())
        second = dispatch_reminders_op(build_op_context())
        third = dispatch_reminders_op(build_op_context())

        self.assertEqual(first.delivery_failures, 1)
        self.assertEqual(first.abandoned, 0)
        self.assertEqual(second.abandoned, 1)
        self.assertEqual(third.one_shot_due, 0)
        with get_session() as session:
            stored = get_reminder(session, OneShotReminder, reminder.id)
            assert stored is not None
            self.assertTrue(stored.sent)

class TestNotifyErrors(unittest.TestCase):
    """Tests for _notify_errors function."""

    @patch("remindee.dagster.reminders.ops.get_telegram_settings")
    @patch("remindee.dagster.reminders.ops.TelegramClient")
    def test_no_errors_sends_nothing(
        self, mock_telegram_client: MagicMock, mock_settings: MagicMock
    ) -> None:
        """Test that an error-free cycle is silent."""
        _notify_errors(build_op_context(), [])

        mock_settings.assert_not_called()
        mock_telegram_client.assert_not_called()

    @patch("remindee.dagster.reminders.ops.get_telegram_settings")
    @patch("remindee.dagster.reminders.ops.TelegramClient")
    def test_skipped_without_error_bot(
        self, mock_telegram_client: MagicMock, mock_settings: MagicMock
    ) -> None:
        """Test that notification is skipped when the error bot is not configured."""
        mock_settings.return_value = _settings()

        _notify_errors(build_op_context(), ["boom"])

        mock_telegram_client.assert_not_called()

    @patch("remindee.dagster.reminders.ops.get_telegram_settings")
    @patch("remindee.dagster.reminders.ops.TelegramClient")
    def test_truncates_long_error_lists(
        self, mock_telegram_client: MagicMock, mock_settings: MagicMock
    ) -> None:
        """Test that only the first few errors are listed."""
        mock_settings.return_value = _settings("error-token", "999")
        errors = [f"error {i}" for i in range(MAX_ERRORS_IN_NOTIFICATION + 3)]

        _notify_errors(build_op_context(), errors)

        text = mock_telegram_client.return_value.send_message.call_args.args[0]
        self.assertIn("error 0", text)
        self.assertNotIn(f"error {MAX_ERRORS_IN_NOTIFICATION}", text)
        self.assertIn("... and 3 more", text)

    @patch("remindee.dagster.reminders.ops.get_telegram_settings")
    @patch("remindee.dagster.reminders.ops.TelegramClient")
    def test_send_failure_is_logged_not_raised(
        self, mock_telegram_client: MagicMock, mock_settings: MagicMock
    ) -> None:
        """Test that a broken error bot does not fail the op."""
        mock_settings.return_value = _settings("error-token", "999")
        mock_telegram_client.return_value.send_message.side_effect = RuntimeError("down")

        _notify_errors(build_op_context(), ["boom"])


class TestHasRunInProgress(unittest.TestCase):
    """Tests for has_run_in_progress function."""

    def test_true_when_runs_found(self) -> None:
        """Test that a queued or running run is detected."""
        instance = MagicMock()
        instance.get_runs.return_value = [MagicMock()]

        self.assertTrue(has_run_in_progress(instance, "dispatch_reminders_job"))
        filters = instance.get_runs.call_args.kwargs["filters"]
        self.assertEqual(filters.job_name, "dispatch_reminders_job")
        self.assertEqual(list(filters.statuses), IN_PROGRESS_STATUSES)

    def test_false_when_no_runs(self) -> None:
        """Test that an idle job is not in progress."""
        instance = MagicMock()
        instance.get_runs.return_value = []

        self.assertFalse(has_run_in_progress(instance, "dispatch_reminders_job"))


class TestDispatchRemindersSchedule(unittest.TestCase):
    """Tests for dispatch_reminders_schedule."""

    def test_requests_run_when_idle(self) -> None:
        """Test that the schedule requests a run when nothing is in flight."""
        with instance_for_test() as instance:
            context = build_schedule_context(instance=instance)
            result = dispatch_reminders_schedule(context)

        self.assertIsInstance(result, RunRequest)

    @patch("remindee.dagster.reminders.schedules.has_run_in_progress", return_value=True)
    def test_skips_when_previous_run_in_progress(self, mock_in_progress: MagicMock) -> None:
        """Test that overlapping runs are skipped rather than queued."""
        with instance_for_test() as instance:
            context = build_schedule_context(instance=instance)
            result = dispatch_reminders_schedule(context)

        self.assertIsInstance(result, SkipReason)


if __name__ == "__main__":
    unittest.main()
