"""
Calendar administration: business hours ranges and holidays.

Every range goes through ``BusinessHoursValidator`` before it is stored; this
is the only place where calendars change, always by replacing the snapshot.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Iterable, List, Optional, Sequence

from ..adapters.memory_store import InMemoryStore
from ..domain.business_time import BusinessTimeEngine
from ..domain.exceptions import (
    LastRangeRemovalError,
    NotFoundError,
    ReferencedError,
    ValidationError,
)
from ..domain.models import DEFAULT_TIMEZONE, Calendar, Holiday, TimeRange
from ..domain.validator import BusinessHoursValidator

logger = logging.getLogger(__name__)


class CalendarService:
    """Creates calendars and keeps their business hours consistent."""

    def __init__(
        self,
        store: InMemoryStore,
        validator: Optional[BusinessHoursValidator] = None,
    ) -> None:
        self._store = store
        self._validator = validator or BusinessHoursValidator()

    def create_calendar(
        self,
        name: str,
        *,
        timezone: Optional[str] = None,
        ranges: Iterable[TimeRange] = (),
        holidays: Iterable[Holiday] = (),
        non_business_weekdays: Sequence[int] = (),
        is_default: bool = False,
    ) -> Calendar:
        """
        Create and store a calendar.

        Ranges are validated one by one against the ranges accepted before
        them, so a configuration with overlapping hours is rejected as a whole.

        Raises:
            ValidationError: If no range is given, or a range is invalid or
                overlaps another one
        """
        accepted: List[TimeRange] = []
        for time_range in ranges:
            self._validator.validate(time_range, accepted)
            accepted.append(replace(time_range, id=self._store.next_id()))
        if not accepted:
            logger.warning("Rejected calendar %s without business hours", name)
            raise ValidationError("ranges", "A calendar needs at least one business hours range")

        calendar = Calendar(
            id=self._store.next_id(),
            name=name,
            ranges=tuple(sorted(accepted)),
            holidays=tuple(sorted(set(holidays))),
            timezone=timezone or DEFAULT_TIMEZONE,
            non_business_weekdays=tuple(sorted(set(non_business_weekdays))),
            is_default=is_default,
        )
        logger.info("Created calendar %s (%s) with %s ranges", calendar.name, calendar.id, len(accepted))
        return self._store.save_calendar(calendar)

    def get_calendar(self, calendar_id: int) -> Calendar:
        return self._store.get_calendar(calendar_id)

    def list_calendars(self) -> List[Calendar]:
        """Return all calendars ordered by name."""
        return sorted(self._store.list_calendars(), key=lambda calendar: calendar.name.lower())

    def add_range(self, calendar_id: int, time_range: TimeRange) -> int:
        """
        Validate and insert business hours into a calendar.

        Returns:
            The identifier of the stored range

        Raises:
            NotFoundError: If the calendar does not exist
            ValidationError: If the range is invalid or overlaps another one
        """
        calendar = self._store.get_calendar(calendar_id)
        self._checked(calendar, time_range, calendar.ranges)

        stored = replace(time_range, id=self._store.next_id())
        self._store.save_calendar(replace(calendar, ranges=tuple(sorted(calendar.ranges + (stored,)))))
        logger.info("Added business hours %s to calendar %s", stored, calendar.name)
        return stored.id

    def update_range(self, calendar_id: int, range_id: int, time_range: TimeRange) -> None:
        """
        Replace the bounds of an existing range.

        The candidate is validated against every other range of the calendar.
        """
        calendar = self._store.get_calendar(calendar_id)
        self._require_range(calendar, range_id)
        others = tuple(r for r in calendar.ranges if r.id != range_id)
        self._checked(calendar, time_range, others)

        updated = replace(time_range, id=range_id)
        self._store.save_calendar(replace(calendar, ranges=tuple(sorted(others + (updated,)))))
        logger.info("Updated business hours %s of calendar %s", updated, calendar.name)

    def remove_range(self, calendar_id: int, range_id: int) -> None:
        """
        Remove business hours from a calendar.

        Raises:
            NotFoundError: If the calendar or range does not exist
            LastRangeRemovalError: If it is the last range of the calendar
        """
        calendar = self._store.get_calendar(calendar_id)
        self._require_range(calendar, range_id)
        if len(calendar.ranges) == 1:
            logger.warning("Refused to remove the last business hours of calendar %s", calendar.name)
            raise LastRangeRemovalError(
                f"Calendar '{calendar.name}' must keep at least one business hours range"
            )

        self._store.save_calendar(
            replace(calendar, ranges=tuple(r for r in calendar.ranges if r.id != range_id))
        )
        logger.info("Removed business hours %s from calendar %s", range_id, calendar.name)

    def add_holiday(self, calendar_id: int, day: date, name: str = "") -> Calendar:
        """Mark a date as holiday, renaming it if it already is one."""
        calendar = self._store.get_calendar(calendar_id)
        holidays = {holiday.date: holiday for holiday in calendar.holidays}
        holidays[day] = Holiday(date=day, name=name)
        logger.info("Added holiday %s (%s) to calendar %s", day, name, calendar.name)
        return self._store.save_calendar(replace(calendar, holidays=tuple(sorted(holidays.values()))))

    def remove_holiday(self, calendar_id: int, day: date) -> Calendar:
        calendar = self._store.get_calendar(calendar_id)
        if day not in calendar.holiday_dates:
            raise NotFoundError("Holiday", day.isoformat())
        remaining = tuple(holiday for holiday in calendar.holidays if holiday.date != day)
        logger.info("Removed holiday %s from calendar %s", day, calendar.name)
        return self._store.save_calendar(replace(calendar, holidays=remaining))

    def is_business_day(self, calendar_id: int, day: date) -> bool:
        return BusinessTimeEngine.is_business_day(self._store.get_calendar(calendar_id), day)

    def delete_calendar(self, calendar_id: int) -> None:
        """
        Delete a calendar nobody uses.

        Raises:
            ReferencedError: If a subscription configuration still uses it
        """
        calendar = self._store.get_calendar(calendar_id)
        subscriptions = self._store.calendar_references(calendar_id)
        if subscriptions:
            logger.warning(
                "Refused to delete calendar %s used by subscriptions %s", calendar.name, subscriptions
            )
            raise ReferencedError(
                f"Calendar '{calendar.name}' is used by {len(subscriptions)} subscription(s)"
            )
        self._store.delete_calendar(calendar_id)
        logger.info("Deleted calendar %s", calendar.name)

    def _checked(self, calendar: Calendar, time_range: TimeRange, existing: Iterable[TimeRange]) -> None:
        try:
            self._validator.validate(time_range, existing)
        except ValidationError as exc:
            logger.warning("Rejected business hours %s for calendar %s: %s", time_range, calendar.name, exc)
            raise

    @staticmethod
    def _require_range(calendar: Calendar, range_id: int) -> TimeRange:
        time_range = calendar.find_range(range_id)
        if time_range is None:
            raise NotFoundError("Business hours", range_id)
        return time_range
