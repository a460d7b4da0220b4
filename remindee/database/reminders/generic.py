"""Kind-agnostic view over one-shot and cron reminders for listing and sorting."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from remindee.database.reminders.models import CronReminder, OneShotReminder


@dataclass(frozen=True, eq=False)
class GenericReminder:
    """Wraps a concrete reminder row behind the fields shared by both kinds.

    Ordering is by due time, then kind (one-shot before cron), then ID, which
    is a strict total order over rows with distinct (kind, id).
    """

    reminder: OneShotReminder | CronReminder

    @property
    def id(self) -> int:
        """Surrogate key of the wrapped row."""
        return self.reminder.id

    @property
    def due_time(self) -> datetime:
        """When the reminder fires next."""
        return self.reminder.time

    @property
    def chat_id(self) -> int:
        """Chat that owns the reminder."""
        return self.reminder.chat_id

    @property
    def description(self) -> str:
        """The reminder text."""
        return self.reminder.description

    @property
    def is_cron(self) -> bool:
        """Whether the reminder recurs."""
        return isinstance(self.reminder, CronReminder)

    @property
    def cron_expr(self) -> str | None:
        """The recurrence rule, or None for one-shot reminders."""
        if isinstance(self.reminder, CronReminder):
            return self.reminder.cron_expr
        return None

    @property
    def paused(self) -> bool:
        """Whether the reminder is paused."""
        return self.reminder.paused

    @property
    def sort_key(self) -> tuple[datetime, int, int]:
        """Key used to order reminders of mixed kinds."""
        return (self.due_time, int(self.is_cron), self.id)

    def __lt__(self, other: GenericReminder) -> bool:
        """Compare by due time, kind and ID."""
        return self.sort_key < other.sort_key

    def __eq__(self, other: object) -> bool:
        """Two wrappers are equal when they point at the same row."""
        if not isinstance(other, GenericReminder):
            return NotImplemented
        return self.is_cron == other.is_cron and self.id == other.id

    def __hash__(self) -> int:
        """Hash by kind and ID."""
        return hash((self.is_cron, self.id))


def sort_reminders(reminders: Iterable[GenericReminder]) -> list[GenericReminder]:
    """Sort reminders of both kinds into display order.

    :param reminders: Wrapped reminders.
    :returns: A new sorted list.
    """
    return sorted(reminders, key=lambda r: r.sort_key)


def wrap_reminders(
    one_shot: Iterable[OneShotReminder] = (),
    cron: Iterable[CronReminder] = (),
) -> list[GenericReminder]:
    """Wrap and sort concrete rows of both kinds.

    :param one_shot: One-shot reminder rows.
    :param cron: Cron reminder rows.
    :returns: Sorted wrapped reminders.
    """
    return sort_reminders([*map(GenericReminder, one_shot), *map(GenericReminder, cron)])
