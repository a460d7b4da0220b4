"""Database operations for per-user timezones."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from remindee.database.timezones.models import UserTimezone

logger = logging.getLogger(__name__)


def get_user_timezone(session: Session, user_id: int) -> str | None:
    """Get a user's timezone name.

    :param session: Database session.
    :param user_id: User (chat) ID.
    :returns: The IANA timezone name, or None if the user has not set one.
    """
    row = session.query(UserTimezone).filter(UserTimezone.user_id == user_id).one_or_none()
    return row.timezone if row is not None else None


def set_user_timezone(session: Session, user_id: int, timezone: str) -> UserTimezone:
    """Insert or update a user's timezone.

    :param session: Database session.
    :param user_id: User (chat) ID.
    :param timezone: IANA timezone name, validated by the caller.
    :returns: The stored row.
    """
    row = (
        session.query(UserTimezone)
        .filter(UserTimezone.user_id == user_id)
        .with_for_update()
        .one_or_none()
    )
    if row is None:
        row = UserTimezone(user_id=user_id, timezone=timezone)
        session.add(row)
        logger.info(f"Created user timezone: user_id={user_id}, timezone={timezone}")
    else:
        row.timezone = timezone
        logger.info(f"Updated user timezone: user_id={user_id}, timezone={timezone}")
    session.flush()
    return row
