"""Periodic runner for the reminder dispatch scheduler."""

from __future__ import annotations

import asyncio
import logging
import math
import signal
import sys
import time

from dotenv import load_dotenv

from remindee.exceptions import RemindeeError
from remindee.messaging.telegram import TelegramClient, TelegramNotifier, get_telegram_settings
from remindee.observability.sentry import init_sentry
from remindee.paths import PROJECT_ROOT
from remindee.scheduling.config import get_dispatch_settings
from remindee.scheduling.dispatcher import ReminderDispatcher
from remindee.utils.logging import configure_logging

logger = logging.getLogger(__name__)


def next_tick(started_at: float, interval: float, now: float) -> float:
    """Get the first tick of a fixed-interval schedule that is still in the future.

    Ticks that passed while a cycle was running are dropped, not queued.

    :param started_at: Monotonic time of the first tick.
    :param interval: Seconds between ticks.
    :param now: Current monotonic time.
    :returns: Monotonic time of the next tick.
    """
    elapsed = max(now - started_at, 0.0)
    ticks = math.floor(elapsed / interval) + 1
    return started_at + ticks * interval


class DispatchRunner:
    """Async loop running one dispatch cycle per interval.

    The cycle runs in a worker thread and is awaited before the next tick is
    scheduled, so cycles never overlap.
    """

    def __init__(self, dispatcher: ReminderDispatcher, interval_seconds: float) -> None:
        """Initialise the runner.

        :param dispatcher: Dispatcher that runs each cycle.
        :param interval_seconds: Seconds between the starts of two cycles.
        """
        self._dispatcher = dispatcher
        self._interval = interval_seconds
        self._stop_event = asyncio.Event()
        self._skipped_ticks = 0

    @property
    def skipped_ticks(self) -> int:
        """Number of ticks dropped because a cycle overran its interval."""
        return self._skipped_ticks

    async def run(self) -> None:
        """Run cycles until stop() is called or a shutdown signal arrives."""
        self._setup_signal_handlers()
        logger.info(f"Starting dispatch runner: interval={self._interval}s")

        started_at = time.monotonic()
        scheduled = started_at
        try:
            while not self._stop_event.is_set():
                await self._run_once()

                now = time.monotonic()
                upcoming = next_tick(started_at, self._interval, now)
                missed = round((upcoming - scheduled) / self._interval) - 1
                if missed > 0:
                    self._skipped_ticks += missed
                    logger.warning(f"Dispatch cycle overran, skipped {missed} tick(s)")
                scheduled = upcoming

                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=upcoming - now)
                except TimeoutError:
                    pass
        except asyncio.CancelledError:
            logger.info("Dispatch runner cancelled")
        finally:
            logger.info("Dispatch runner stopped")

    def stop(self) -> None:
        """Signal the loop to stop after the current cycle."""
        logger.info("Stopping dispatch runner...")
        self._stop_event.set()

    async def _run_once(self) -> None:
        try:
            await asyncio.to_thread(self._dispatcher.run_cycle)
        except RemindeeError as e:
            # The due query itself failed; the next tick starts from scratch.
            logger.error(f"Dispatch cycle failed: {e}")

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown on Unix systems."""
        if sys.platform == "win32":
            logger.warning("Signal handlers not supported on Windows, use Ctrl+C")
            return

        try:
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, self.stop)
        except (RuntimeError, NotImplementedError):
            logger.warning("Could not set up signal handlers")


def main() -> None:
    """Entry point for running the dispatch loop."""
    load_dotenv(PROJECT_ROOT / ".env")
    configure_logging()
    init_sentry()

    dispatch_settings = get_dispatch_settings()
    telegram_settings = get_telegram_settings()
    client = TelegramClient(
        bot_token=telegram_settings.bot_token,
        request_timeout=telegram_settings.request_timeout,
    )
    dispatcher = ReminderDispatcher(
        TelegramNotifier(client),
        max_delivery_attempts=dispatch_settings.max_delivery_attempts,
    )
    runner = DispatchRunner(dispatcher, dispatch_settings.interval_seconds)
    asyncio.run(runner.run())
