"""
Tests for calendar administration.
"""

from datetime import date

import pytest

from slaclock.adapters.memory_store import InMemoryStore
from slaclock.domain.exceptions import (
    Boundary,
    InvalidRangeError,
    LastRangeRemovalError,
    NotFoundError,
    OverlapError,
    ReferencedError,
    ValidationError,
)
from slaclock.domain.models import Holiday, SubscriptionConfiguration, TimeRange
from slaclock.services.calendar_service import CalendarService


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def service(store):
    return CalendarService(store)


@pytest.fixture
def france(service):
    return service.create_calendar(
        "France",
        ranges=[TimeRange.from_hours(13, 18), TimeRange.from_hours(9, 12)],
        holidays=[Holiday(date(2024, 12, 25), "Noël")],
    )


class TestCreateCalendar:
    """Tests for calendar creation."""

    def test_ranges_sorted_with_identifiers(self, france):
        """Ranges are stored in start order and get identifiers."""
        assert [str(r) for r in france.ranges] == ["09:00 - 12:00", "13:00 - 18:00"]
        assert all(r.id is not None for r in france.ranges)

    def test_overlapping_ranges_rejected(self, service, store):
        """Creation fails as a whole when ranges overlap."""
        with pytest.raises(OverlapError):
            service.create_calendar("Bad", ranges=[TimeRange.from_hours(9, 12), TimeRange.from_hours(11, 14)])

        assert store.find_calendar_by_name("Bad") is None

    def test_calendar_without_ranges_rejected(self, service, store):
        """A calendar starts with at least one business hours range."""
        with pytest.raises(ValidationError, match="at least one business hours range") as exc_info:
            service.create_calendar("Empty")

        assert exc_info.value.field == "ranges"
        assert store.find_calendar_by_name("Empty") is None

    def test_list_sorted_by_name(self, service):
        """Calendars list alphabetically."""
        service.create_calendar("Any2", ranges=[TimeRange.from_hours(8, 18)])
        service.create_calendar("any1", ranges=[TimeRange.from_hours(8, 18)])

        assert [c.name for c in service.list_calendars()] == ["any1", "Any2"]

    def test_unknown_calendar(self, service):
        """Unknown identifiers raise NotFoundError."""
        with pytest.raises(NotFoundError, match="Calendar '404' not found"):
            service.get_calendar(404)


class TestRanges:
    """Tests for business hours mutations."""

    def test_add_range(self, service, france):
        """A valid range is inserted in order."""
        range_id = service.add_range(france.id, TimeRange.from_hours(6, 8))

        calendar = service.get_calendar(france.id)
        assert calendar.ranges[0].id == range_id
        assert len(calendar.ranges) == 3

    def test_add_overlapping_range(self, service, france):
        """An overlapping range is rejected and the calendar stays unchanged."""
        with pytest.raises(OverlapError) as exc_info:
            service.add_range(france.id, TimeRange.from_hours(10, 23))

        assert exc_info.value.boundary is Boundary.START
        assert service.get_calendar(france.id) == france

    def test_add_inverted_range(self, service, france):
        """An inverted range is rejected."""
        with pytest.raises(InvalidRangeError):
            service.add_range(france.id, TimeRange.from_hours(2, 1))

    def test_update_range_ignores_itself(self, service, france):
        """Widening a range is validated against the other ranges only."""
        morning = france.ranges[0]

        service.update_range(france.id, morning.id, TimeRange.from_hours(8, 12.5))

        updated = service.get_calendar(france.id).find_range(morning.id)
        assert str(updated) == "08:00 - 12:30"

    def test_update_range_into_overlap(self, service, france):
        """Updating into another range is rejected."""
        morning = france.ranges[0]

        with pytest.raises(OverlapError) as exc_info:
            service.update_range(france.id, morning.id, TimeRange.from_hours(8, 14))

        assert exc_info.value.boundary is Boundary.END

    def test_update_unknown_range(self, service, france):
        with pytest.raises(NotFoundError):
            service.update_range(france.id, 999, TimeRange.from_hours(1, 2))

    def test_remove_range(self, service, france):
        """Removing one of two ranges works."""
        service.remove_range(france.id, france.ranges[0].id)

        assert [str(r) for r in service.get_calendar(france.id).ranges] == ["13:00 - 18:00"]

    def test_remove_last_range(self, service, france):
        """The last range cannot be removed."""
        service.remove_range(france.id, france.ranges[0].id)
        last = service.get_calendar(france.id)

        with pytest.raises(LastRangeRemovalError):
            service.remove_range(france.id, last.ranges[0].id)

        assert service.get_calendar(france.id) == last

    def test_snapshots_are_not_mutated(self, service, france):
        """A calendar held by a reader does not change under it."""
        service.add_range(france.id, TimeRange.from_hours(19, 20))

        assert len(france.ranges) == 2


class TestHolidays:
    """Tests for holidays and business days."""

    def test_add_and_remove_holiday(self, service, france):
        """Holidays toggle business days."""
        assert service.is_business_day(france.id, date(2024, 11, 1))

        service.add_holiday(france.id, date(2024, 11, 1), "Toussaint")
        assert not service.is_business_day(france.id, date(2024, 11, 1))

        service.remove_holiday(france.id, date(2024, 11, 1))
        assert service.is_business_day(france.id, date(2024, 11, 1))

    def test_add_existing_holiday_renames(self, service, france):
        calendar = service.add_holiday(france.id, date(2024, 12, 25), "Christmas")

        assert [h.name for h in calendar.holidays] == ["Christmas"]

    def test_remove_unknown_holiday(self, service, france):
        with pytest.raises(NotFoundError):
            service.remove_holiday(france.id, date(2024, 1, 2))

    def test_weekend_not_business_day(self, service):
        """Excluded weekdays are not business days."""
        calendar = service.create_calendar(
            "Office", ranges=[TimeRange.from_hours(8, 18)], non_business_weekdays=[5, 6]
        )

        assert not service.is_business_day(calendar.id, date(2024, 11, 23))
        assert service.is_business_day(calendar.id, date(2024, 11, 25))


class TestDeleteCalendar:
    """Tests for calendar deletion."""

    def test_delete_unused(self, service, france):
        service.delete_calendar(france.id)

        with pytest.raises(NotFoundError):
            service.get_calendar(france.id)

    def test_delete_referenced(self, service, store, france):
        """A calendar used by a subscription cannot be deleted."""
        store.save_configuration(SubscriptionConfiguration(subscription=1, calendar_id=france.id))

        with pytest.raises(ReferencedError):
            service.delete_calendar(france.id)

        assert service.get_calendar(france.id) == france
