"""Cron adaptor, dispatch scheduler and periodic runner.

Run the dispatch loop with: python -m remindee.scheduling
"""

from remindee.scheduling.cron import is_valid_cron, next_occurrence
from remindee.scheduling.dispatcher import (
    DispatchStats,
    ReminderDispatcher,
    build_notification,
)

__all__ = [
    "DispatchStats",
    "ReminderDispatcher",
    "build_notification",
    "is_valid_cron",
    "next_occurrence",
]
