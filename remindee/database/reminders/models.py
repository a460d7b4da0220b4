"""SQLAlchemy ORM models for one-shot and cron reminders."""

from datetime import datetime
from enum import StrEnum

from sqlalchemy import BigInteger, Boolean, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from remindee.database.core import Base, UTCDateTime

# Maximum length of description to show in repr
REPR_DESCRIPTION_MAX_LENGTH = 50


class EditMode(StrEnum):
    """Which field the next user input of an edit session replaces."""

    NONE = "none"
    DESCRIPTION = "description"
    TIME = "time"
    CRON_EXPR = "cron_expr"


def _preview(description: str) -> str:
    if len(description) > REPR_DESCRIPTION_MAX_LENGTH:
        return description[:REPR_DESCRIPTION_MAX_LENGTH] + "..."
    return description


class OneShotReminder(Base):
    """ORM model for reminders that fire exactly once at ``time``."""

    __tablename__ = "reminder"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    chat_id: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )
    time: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    sent: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    paused: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    edit: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    edit_mode: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=EditMode.NONE.value,
    )
    msg_id: Mapped[int | None] = mapped_column(
        BigInteger,
        nullable=True,
    )
    reply_id: Mapped[int | None] = mapped_column(
        BigInteger,
        nullable=True,
    )
    delivery_attempts: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    __table_args__ = (
        Index("idx_reminder_due", "sent", "paused", "time"),
        Index("idx_reminder_chat_id", "chat_id"),
    )

    @property
    def is_cron(self) -> bool:
        """One-shot reminders never recur."""
        return False

    def __repr__(self) -> str:
        """Return string representation of the reminder."""
        return (
            f"<OneShotReminder(id={self.id}, chat_id={self.chat_id}, "
            f"time={self.time}, description={_preview(self.description)!r})>"
        )


class CronReminder(Base):
    """ORM model for recurring reminders.

    ``time`` holds the next scheduled occurrence and is moved forward after
    every firing; the row itself is reused for all occurrences.
    """

    __tablename__ = "cron_reminder"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    chat_id: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )
    cron_expr: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    time: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    sent: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    paused: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    edit: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    edit_mode: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=EditMode.NONE.value,
    )
    msg_id: Mapped[int | None] = mapped_column(
        BigInteger,
        nullable=True,
    )
    reply_id: Mapped[int | None] = mapped_column(
        BigInteger,
        nullable=True,
    )
    delivery_attempts: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    __table_args__ = (
        Index("idx_cron_reminder_due", "sent", "paused", "time"),
        Index("idx_cron_reminder_chat_id", "chat_id"),
    )

    @property
    def is_cron(self) -> bool:
        """Cron reminders always recur."""
        return True

    def __repr__(self) -> str:
        """Return string representation of the reminder."""
        return (
            f"<CronReminder(id={self.id}, chat_id={self.chat_id}, cron={self.cron_expr}, "
            f"time={self.time}, description={_preview(self.description)!r})>"
        )


type ReminderModel = type[OneShotReminder] | type[CronReminder]
type AnyReminder = OneShotReminder | CronReminder

REMINDER_MODELS: tuple[type[OneShotReminder], type[CronReminder]] = (OneShotReminder, CronReminder)
