"""Dagster definitions for reminder jobs and schedules."""

from dagster import Definitions
from remindee.dagster.reminders.jobs import dispatch_reminders_job
from remindee.dagster.reminders.schedules import dispatch_reminders_schedule

defs = Definitions(
    jobs=[dispatch_reminders_job],
    schedules=[dispatch_reminders_schedule],
)
