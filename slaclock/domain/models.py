"""
Domain models for business hours, calendars and SLA rules.

All models are immutable snapshots: services replace them in the store
instead of mutating them, so the engine never sees a half-updated calendar.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from functools import cached_property
from typing import FrozenSet, Optional, Tuple

MILLIS_PER_SECOND = 1000
MILLIS_PER_MINUTE = 60 * MILLIS_PER_SECOND
MILLIS_PER_HOUR = 60 * MILLIS_PER_MINUTE
MILLIS_PER_DAY = 24 * MILLIS_PER_HOUR

DEFAULT_TIMEZONE = "Europe/Paris"


@dataclass(frozen=True, order=True)
class TimeRange:
    """
    Business hours within one day, as millisecond offsets from local midnight.

    ``start`` is inclusive, ``end`` exclusive. Ranges order by ``start``.
    Bounds are checked by ``BusinessHoursValidator`` before a range is stored,
    not here, so that a rejected candidate can still be reported on.
    """
    start: int
    end: int
    id: Optional[int] = field(default=None, compare=False)

    @classmethod
    def from_hours(cls, start_hour: float, end_hour: float) -> "TimeRange":
        """Build a range from hour numbers, e.g. ``from_hours(8, 18)``."""
        return cls(start=int(start_hour * MILLIS_PER_HOUR), end=int(end_hour * MILLIS_PER_HOUR))

    def duration_millis(self) -> int:
        """Return the length of the range in milliseconds."""
        return self.end - self.start

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another (exclusive ends)."""
        return self.start < other.end and other.start < self.end

    def __str__(self) -> str:
        return f"{_format_offset(self.start)} - {_format_offset(self.end)}"


def _format_offset(offset: int) -> str:
    hours, rest = divmod(offset, MILLIS_PER_HOUR)
    return f"{hours:02d}:{rest // MILLIS_PER_MINUTE:02d}"


@dataclass(frozen=True, order=True)
class Holiday:
    """A day on which no business time is counted."""
    date: date
    name: str = field(default="", compare=False)


@dataclass(frozen=True)
class Calendar:
    """
    A named business-time profile: daily working ranges plus holidays.

    The same ranges apply to every day that is neither a holiday nor one of
    ``non_business_weekdays`` (``date.weekday()`` numbers, 0=Monday).
    """
    id: int
    name: str
    ranges: Tuple[TimeRange, ...] = ()
    holidays: Tuple[Holiday, ...] = ()
    timezone: str = DEFAULT_TIMEZONE
    non_business_weekdays: Tuple[int, ...] = ()
    is_default: bool = False

    @cached_property
    def holiday_dates(self) -> FrozenSet[date]:
        return frozenset(holiday.date for holiday in self.holidays)

    def find_range(self, range_id: int) -> Optional[TimeRange]:
        for time_range in self.ranges:
            if time_range.id == range_id:
                return time_range
        return None


@dataclass(frozen=True)
class SlaRule:
    """
    A named commitment: which statuses start, pause and stop the clock, and
    the allowed business-time budget in milliseconds (0 means tracking only).

    The optional ``types``, ``priorities`` and ``resolutions`` filters restrict
    the issues the rule applies to; an empty filter matches every issue.
    """
    id: int
    name: str
    start: FrozenSet[str]
    stop: FrozenSet[str]
    pause: FrozenSet[str] = frozenset()
    threshold: int = 0
    description: Optional[str] = None
    types: Tuple[str, ...] = ()
    priorities: Tuple[str, ...] = ()
    resolutions: Tuple[str, ...] = ()

    def applies_to(self, issue: "TrackedIssue") -> bool:
        """Check the issue against the type, priority and resolution filters."""
        return (
            _matches(self.types, issue.type)
            and _matches(self.priorities, issue.priority)
            and _matches(self.resolutions, issue.resolution)
        )


def _matches(allowed: Tuple[str, ...], value: Optional[str]) -> bool:
    if not allowed:
        return True
    return value is not None and value.strip().lower() in {item.lower() for item in allowed}


@dataclass(frozen=True)
class Event:
    """An observed status transition of a tracked issue."""
    status: str
    timestamp: datetime


@dataclass(frozen=True)
class TrackedIssue:
    """An issue together with its status history, as read from the tracker."""
    key: str
    events: Tuple[Event, ...] = ()
    type: Optional[str] = None
    priority: Optional[str] = None
    resolution: Optional[str] = None


class SlaStatus(str, Enum):
    """Lifecycle of an SLA clock."""
    NOT_STARTED = "not_started"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


@dataclass(frozen=True)
class SlaState:
    """
    Business time consumed by an SLA rule over an event history.

    Derived on every query; while the clock has not stopped the figures are
    provisional and include the open segment up to the evaluation time.
    """
    elapsed_millis: int
    status: SlaStatus
    breached: bool
    threshold: int = 0

    @property
    def provisional(self) -> bool:
        return self.status is not SlaStatus.STOPPED

    @property
    def remaining_millis(self) -> Optional[int]:
        """Budget left before breach, or None for tracking-only rules."""
        if self.threshold <= 0:
            return None
        return max(self.threshold - self.elapsed_millis, 0)


@dataclass(frozen=True)
class SubscriptionConfiguration:
    """Links a subscription to its calendar and SLA rules by identifier."""
    subscription: int
    calendar_id: int
    sla_ids: Tuple[int, ...] = ()
