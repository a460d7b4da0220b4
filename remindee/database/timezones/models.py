"""SQLAlchemy ORM model for per-user timezones."""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from remindee.database.core import Base


class UserTimezone(Base):
    """ORM model holding a user's IANA timezone name. One row per user."""

    __tablename__ = "user_timezone"

    user_id: Mapped[int] = mapped_column(
        BigInteger,
        primary_key=True,
        autoincrement=False,
    )
    timezone: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )

    def __repr__(self) -> str:
        """Return string representation of the timezone row."""
        return f"UserTimezone(user_id={self.user_id}, timezone={self.timezone})"
