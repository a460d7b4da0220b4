"""Database model and operations for user timezones."""

from remindee.database.timezones.models import UserTimezone
from remindee.database.timezones.operations import get_user_timezone, set_user_timezone

__all__ = [
    "UserTimezone",
    "get_user_timezone",
    "set_user_timezone",
]
