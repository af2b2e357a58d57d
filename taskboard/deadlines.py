"""Deadline and status engine: pure functions.

Turns a task's stored due-date/due-time strings and completion state into:
- a precise deadline instant (aware UTC datetime), and
- a categorical status (pending / complete / incomplete / late).

Due dates are wall-clock values in a fixed target timezone given as a UTC
offset in hours. The offset is always passed in (or bound on a
DeadlineEngine instance); nothing here reads a global.

These functions never raise for malformed records: a bad date degrades to
"no deadline", so one broken row cannot block rendering a whole task list.
Status is derived on every read and never persisted.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Any

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_PATTERN = re.compile(r"^\d{2}:\d{2}$")

_END_OF_DAY = time(23, 59, 59, 999000)


class TaskStatus(str, Enum):
    """Derived task status."""

    PENDING = "pending"
    COMPLETE = "complete"
    INCOMPLETE = "incomplete"
    LATE = "late"


# Display order used by board listings.
STATUS_ORDER = {
    TaskStatus.PENDING: 1,
    TaskStatus.INCOMPLETE: 2,
    TaskStatus.LATE: 3,
    TaskStatus.COMPLETE: 4,
}


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_due_date(value: str | None) -> date | None:
    """Parse a `YYYY-MM-DD` string. Returns None if missing or malformed."""
    if not value or not DATE_PATTERN.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def parse_due_time(value: str | None) -> time | None:
    """Parse an `HH:MM` 24-hour string. Returns None if missing or out of range."""
    if not value or not TIME_PATTERN.match(value):
        return None
    hours, minutes = int(value[:2]), int(value[3:])
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        return None
    return time(hours, minutes)


def target_timezone(offset_hours: float) -> timezone:
    return timezone(timedelta(hours=offset_hours))


# ---------------------------------------------------------------------------
# Core computations
# ---------------------------------------------------------------------------

def compute_deadline_instant(
    due_date: str | None,
    due_time: str | None,
    offset_hours: float,
) -> datetime | None:
    """Absolute deadline for a due date/time given in the target timezone.

    - Valid time: that wall-clock minute, zero seconds.
    - Missing/malformed time: end of the day (23:59:59.999).
    - Missing/malformed date: None (the task has no deadline).
    """
    day = parse_due_date(due_date)
    if day is None:
        return None
    wall_time = parse_due_time(due_time) or _END_OF_DAY
    local = datetime.combine(day, wall_time, tzinfo=target_timezone(offset_hours))
    return local.astimezone(timezone.utc)


def compute_status(
    is_completed: bool,
    completed_at: datetime | None,
    deadline: datetime | None,
    now: datetime,
) -> TaskStatus:
    """Categorical status at instant `now`.

    Completed tasks are late only when both the completion instant and the
    deadline are known and completion came after the deadline.
    """
    if is_completed:
        if completed_at is not None and deadline is not None and completed_at > deadline:
            return TaskStatus.LATE
        return TaskStatus.COMPLETE
    if deadline is not None and now > deadline:
        return TaskStatus.INCOMPLETE
    return TaskStatus.PENDING


def hours_until(deadline: datetime, now: datetime) -> float:
    return (deadline - now).total_seconds() / 3600


# ---------------------------------------------------------------------------
# Engine bound to a target timezone
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DeadlineEngine:
    """Deadline/status computations bound to one target UTC offset.

    Usage::

        engine = DeadlineEngine(offset_hours=config.deadlines.timezone_offset_hours)
        status = engine.status_for(task)
    """

    offset_hours: float = 8

    @property
    def tz(self) -> timezone:
        return target_timezone(self.offset_hours)

    def deadline(self, due_date: str | None, due_time: str | None) -> datetime | None:
        return compute_deadline_instant(due_date, due_time, self.offset_hours)

    def deadline_for(self, task: Any) -> datetime | None:
        """Deadline of any record exposing `due_date` and `due_time`."""
        return self.deadline(
            getattr(task, "due_date", None),
            getattr(task, "due_time", None),
        )

    def status_for(self, task: Any, now: datetime | None = None) -> TaskStatus:
        """Status of any record exposing due/completion attributes."""
        return compute_status(
            bool(getattr(task, "is_completed", False)),
            getattr(task, "completed_at", None),
            self.deadline_for(task),
            now or datetime.now(timezone.utc),
        )

    def local_date(self, instant: datetime) -> date:
        """Calendar date of an instant in the target timezone."""
        return instant.astimezone(self.tz).date()

    def today(self, now: datetime | None = None) -> date:
        return self.local_date(now or datetime.now(timezone.utc))
