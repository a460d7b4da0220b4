"""Combine all dagster definitions."""

from dotenv import load_dotenv

from dagster import Definitions
from remindee.dagster.reminders.definitions import defs as reminders_defs
from remindee.dagster.utils.sensors import util_sensor_defs
from remindee.observability.sentry import init_sentry
from remindee.utils.logging import configure_logging

load_dotenv()
configure_logging()
init_sentry()

defs = Definitions.merge(reminders_defs, util_sensor_defs)
