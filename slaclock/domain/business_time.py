"""
Business time computations.

This is the heart of the application - pure domain logic without any
external dependencies (no store, no event source, no I/O). Every call works
on immutable snapshots and returns a value, so evaluations of different
subscriptions can run side by side without locking.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional, Union

import pendulum
from pendulum import DateTime, Duration

from .models import (
    MILLIS_PER_DAY,
    MILLIS_PER_SECOND,
    Calendar,
    Event,
    SlaRule,
    SlaState,
    SlaStatus,
)
from .validator import normalize_status

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Running:
    """Clock state while a segment is open, carrying the segment start."""
    since: DateTime

    status = SlaStatus.RUNNING


Clock = Union[SlaStatus, Running]


def _epoch_millis(instant: DateTime) -> int:
    return instant.int_timestamp * 1000 + instant.microsecond // 1000


class BusinessTimeEngine:
    """
    Measures business time against a calendar and folds event histories
    into SLA states.

    Algorithm for a span:
    1. Walk the local days of the calendar from the first to the last day
    2. Skip holidays and non-business weekdays
    3. Intersect each business hours range of the day with the span
    4. Sum the intersections

    The cost is ``O(days x ranges)``, never proportional to the duration.
    """

    def business_millis_between(
        self,
        calendar: Calendar,
        from_: datetime,
        to: datetime,
    ) -> int:
        """
        Compute the business milliseconds within ``[from_, to)``.

        Args:
            calendar: Calendar snapshot providing ranges, holidays and zone
            from_: Start of the span; naive values are read in the calendar zone
            to: End of the span

        Returns:
            Business time in milliseconds, 0 when ``to <= from_``
        """
        start = self._to_instant(from_, calendar.timezone)
        end = self._to_instant(to, calendar.timezone)
        if end <= start:
            return 0

        start_ms = _epoch_millis(start)
        end_ms = _epoch_millis(end)
        last_day = end.date()
        total = 0

        day = start.start_of("day")
        while day.date() <= last_day:
            next_day = day.add(days=1)
            if self.is_business_day(calendar, day):
                day_end_ms = min(_epoch_millis(next_day), end_ms)
                for time_range in calendar.ranges:
                    segment_start = max(self._clock_millis(day, next_day, time_range.start), start_ms)
                    segment_end = min(self._clock_millis(day, next_day, time_range.end), day_end_ms)
                    if segment_end > segment_start:
                        total += segment_end - segment_start
            day = next_day

        return total

    def business_duration(self, calendar: Calendar, from_: datetime, to: datetime) -> Duration:
        """Same as ``business_millis_between`` but as a pendulum duration."""
        return pendulum.duration(milliseconds=self.business_millis_between(calendar, from_, to))

    @staticmethod
    def is_business_day(calendar: Calendar, day: date) -> bool:
        """Check whether business time is counted at all on a given day."""
        plain_day = date(day.year, day.month, day.day)
        if plain_day in calendar.holiday_dates:
            return False
        return plain_day.weekday() not in calendar.non_business_weekdays

    def evaluate(
        self,
        calendar: Calendar,
        rule: SlaRule,
        events: Iterable[Event],
        now: Optional[datetime] = None,
    ) -> SlaState:
        """
        Fold an event history into the SLA state of one rule.

        The state is rebuilt from scratch on every call: the same events always
        yield the same result. Events are taken in timestamp order, ties keep
        their input order.

        Args:
            calendar: Calendar snapshot used to measure running segments
            rule: The SLA rule snapshot
            events: Status transitions of the tracked issue
            now: Evaluation time for a still open segment, defaults to now

        Returns:
            SlaState with elapsed business time and breach status
        """
        timeline = sorted(
            (
                (self._to_instant(event.timestamp, calendar.timezone), normalize_status(event.status))
                for event in events
            ),
            key=lambda item: item[0],
        )

        clock: Clock = SlaStatus.NOT_STARTED
        elapsed = 0

        for at, status in timeline:
            if clock is SlaStatus.STOPPED:
                break
            if isinstance(clock, Running):
                if status in rule.pause:
                    elapsed += self.business_millis_between(calendar, clock.since, at)
                    clock = SlaStatus.PAUSED
                elif status in rule.stop:
                    elapsed += self.business_millis_between(calendar, clock.since, at)
                    clock = SlaStatus.STOPPED
            elif status in rule.start:
                clock = Running(since=at)
            elif clock is SlaStatus.PAUSED and status in rule.stop:
                clock = SlaStatus.STOPPED

        if isinstance(clock, Running):
            until = self._to_instant(now, calendar.timezone) if now is not None else pendulum.now(calendar.timezone)
            elapsed += self.business_millis_between(calendar, clock.since, until)

        state = SlaState(
            elapsed_millis=elapsed,
            status=clock.status if isinstance(clock, Running) else clock,
            breached=rule.threshold > 0 and elapsed > rule.threshold,
            threshold=rule.threshold,
        )
        logger.debug(
            "SLA %s on calendar %s: %s after %s events, %s ms elapsed",
            rule.name, calendar.name, state.status.value, len(timeline), elapsed,
        )
        return state

    @staticmethod
    def _clock_millis(day: DateTime, next_day: DateTime, offset: int) -> int:
        """
        Epoch milliseconds of a wall clock time on a local day.

        Offsets are read as clock times, so 08:00 stays 08:00 on DST days;
        24:00 is the next local midnight.
        """
        if offset >= MILLIS_PER_DAY:
            return _epoch_millis(next_day)
        seconds, millis = divmod(offset, MILLIS_PER_SECOND)
        minutes, second = divmod(seconds, 60)
        hour, minute = divmod(minutes, 60)
        local = pendulum.datetime(
            day.year, day.month, day.day, hour, minute, second, millis * 1000, tz=day.tzinfo
        )
        return _epoch_millis(local)

    @staticmethod
    def _to_instant(value: datetime, timezone: str) -> DateTime:
        """Turn any datetime into a pendulum instant in the calendar zone."""
        if not isinstance(value, DateTime):
            value = pendulum.instance(value, tz=timezone)
        return value.in_timezone(timezone)
