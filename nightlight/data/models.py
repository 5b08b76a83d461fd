"""
Nightlight — Data Models.

Plain dataclasses shared by the calendar engine and the chore scheduler.
Calendar sources and chore periods come from configuration; raw events and
chore tasks come from the source facade; everything else is derived.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum

from nightlight.core.instants import Instant, instant_sort_key, is_timed


class ViewMode(str, Enum):
    MONTH = "month"
    WEEK = "week"
    DAY = "day"
    AGENDA = "agenda"


class TaskStatus(str, Enum):
    """Task status as understood by todo-list backends."""

    PENDING = "needs_action"
    COMPLETED = "completed"

    def toggled(self) -> TaskStatus:
        if self is TaskStatus.COMPLETED:
            return TaskStatus.PENDING
        return TaskStatus.COMPLETED


class AgendaEntryKind(str, Enum):
    START = "start"
    END = "end"


@dataclass
class CalendarSource:
    """A named calendar the dashboard can show.

    Everything but `visible` is fixed for the session; visibility is toggled
    from the UI.
    """

    id: str                    # e.g. "calendar.family"
    display_name: str          # e.g. "Family"
    color: str                 # e.g. "#6366f1"
    icon: str | None = None
    visible: bool = True


@dataclass
class RawEvent:
    """An event as returned by a calendar source.

    `start`/`end` are either both timed (datetime) or both date-only (date).
    A date-only `end` is an exclusive day boundary, so an event on a single
    day may have `end == start` or `end == start + 1 day`.
    """

    source_id: str
    summary: str
    start: Instant
    end: Instant
    location: str | None = None
    description: str | None = None
    uid: str | None = None
    # Filled in by the aggregator from the owning CalendarSource
    source_name: str = ""
    color: str = ""

    def __post_init__(self) -> None:
        if instant_sort_key(self.end) < instant_sort_key(self.start):
            raise ValueError(
                f"Event '{self.summary}' ends before it starts "
                f"({self.start!r} > {self.end!r})"
            )

    @property
    def is_all_day(self) -> bool:
        return not is_timed(self.start)

    @property
    def event_id(self) -> str:
        if self.uid:
            return self.uid
        return f"{self.source_id}:{self.start.isoformat()}:{self.summary}"


@dataclass
class Fragment:
    """One calendar day's worth of an event, ready to place in a view."""

    source_event_id: str
    display_date: date
    is_all_day: bool
    is_continuation: bool
    event: RawEvent
    start: Instant | None = None
    end: Instant | None = None


@dataclass(frozen=True)
class ViewWindow:
    """The half-open `[start, end)` range a view renders."""

    mode: ViewMode
    start: datetime
    end: datetime

    @property
    def first_day(self) -> date:
        return self.start.date()

    @property
    def last_day(self) -> date:
        return (self.end - timedelta(microseconds=1)).date()

    @property
    def day_count(self) -> int:
        return (self.last_day - self.first_day).days + 1

    def days(self) -> list[date]:
        return [self.first_day + timedelta(days=i) for i in range(self.day_count)]

    def contains_day(self, day: date) -> bool:
        return self.first_day <= day <= self.last_day


@dataclass(frozen=True)
class ChorePeriod:
    """A named time-of-day interval, inclusive at both ends."""

    name: str                  # e.g. "Morning"
    start_of_day: time         # e.g. 06:00
    end_of_day: time           # e.g. 09:00


@dataclass
class ChoreTask:
    """A task in an external todo list.

    `period_index` is the 1-based position of the ChorePeriod the task belongs
    to, 0 when unassigned.
    """

    label: str
    period_index: int
    list_id: str
    status: TaskStatus = TaskStatus.PENDING
    uid: str | None = None

    @property
    def identifier(self) -> str:
        # Labels are not unique within a list; uids are.
        return self.uid or self.label

    @property
    def is_completed(self) -> bool:
        return self.status is TaskStatus.COMPLETED


@dataclass(frozen=True)
class AgendaEntry:
    kind: AgendaEntryKind
    at: datetime
    event: RawEvent
    is_all_day: bool


@dataclass(frozen=True)
class TimeBlock:
    """Vertical placement on a 1440-minute day column."""

    top: int
    height: int


@dataclass
class ResetReport:
    """Outcome of one completed→pending sweep."""

    day: str
    lists_swept: int = 0
    lists_failed: list[str] = field(default_factory=list)
    items_reset: int = 0
    items_failed: int = 0
