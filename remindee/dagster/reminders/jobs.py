"""Dagster jobs for dispatching reminders."""

from dagster import job
from remindee.dagster.reminders.ops import dispatch_reminders_op


@job(
    name="dispatch_reminders_job",
    description="Deliver due reminders (runs every minute).",
)
def dispatch_reminders_job() -> None:
    """Dispatch reminders job."""
    dispatch_reminders_op()
