"""Dagster jobs and schedules for reminder dispatch."""

from remindee.dagster.reminders.definitions import defs
from remindee.dagster.reminders.jobs import dispatch_reminders_job
from remindee.dagster.reminders.ops import dispatch_reminders_op
from remindee.dagster.reminders.schedules import dispatch_reminders_schedule

__all__ = [
    "defs",
    "dispatch_reminders_job",
    "dispatch_reminders_op",
    "dispatch_reminders_schedule",
]
