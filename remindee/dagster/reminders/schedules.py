"""Dagster schedules for dispatching reminders."""

from dagster import (
    DagsterInstance,
    DagsterRunStatus,
    RunRequest,
    RunsFilter,
    ScheduleEvaluationContext,
    SkipReason,
    schedule,
)
from remindee.dagster.reminders.jobs import dispatch_reminders_job

IN_PROGRESS_STATUSES = [
    DagsterRunStatus.QUEUED,
    DagsterRunStatus.NOT_STARTED,
    DagsterRunStatus.STARTING,
    DagsterRunStatus.STARTED,
]


def has_run_in_progress(instance: DagsterInstance, job_name: str) -> bool:
    """Check whether a run of the job is queued or still executing.

    :param instance: Dagster instance to query.
    :param job_name: Name of the job.
    :returns: True if a run is in progress.
    """
    runs = instance.get_runs(
        filters=RunsFilter(job_name=job_name, statuses=IN_PROGRESS_STATUSES),
        limit=1,
    )
    return len(runs) > 0


@schedule(
    job=dispatch_reminders_job,
    cron_schedule="* * * * *",
    execution_timezone="UTC",
)
def dispatch_reminders_schedule(context: ScheduleEvaluationContext) -> RunRequest | SkipReason:
    """Request a dispatch run every minute unless the previous one is still going."""
    if has_run_in_progress(context.instance, dispatch_reminders_job.name):
        return SkipReason("Previous dispatch run still in progress")
    return RunRequest()
