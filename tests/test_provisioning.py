"""
Tests for default provisioning of subscriptions.
"""

from datetime import date

import pytest

from slaclock.adapters.memory_store import InMemoryStore
from slaclock.domain.exceptions import NotFoundError, ReferencedError
from slaclock.domain.models import MILLIS_PER_HOUR, TimeRange
from slaclock.services.calendar_service import CalendarService
from slaclock.services.provisioning import ProvisioningService, default_holidays
from slaclock.services.sla_service import SlaRuleService


def test_default_holidays():
    """The standard list has four fixed dates."""
    holidays = default_holidays(2024)

    assert [h.date for h in holidays] == [
        date(2024, 1, 1),
        date(2024, 5, 1),
        date(2024, 7, 14),
        date(2024, 12, 25),
    ]
    assert all(h.name for h in holidays)


class TestEnsureConfiguration:
    """Tests for first-use seeding."""

    def test_seeds_default_calendar_and_rule(self):
        """An empty store gets the Default calendar and the Closing rule."""
        store = InMemoryStore()

        configuration = ProvisioningService(store).ensure_configuration(1, year=2024)

        calendar = store.get_calendar(configuration.calendar_id)
        assert calendar.name == "Default"
        assert calendar.is_default
        assert len(calendar.holidays) == 4
        assert len(calendar.ranges) == 1
        assert calendar.ranges[0].start == 8 * MILLIS_PER_HOUR
        assert calendar.ranges[0].end == 18 * MILLIS_PER_HOUR

        rules = SlaRuleService(store).list_rules(1)
        assert len(rules) == 1
        rule = rules[0]
        assert rule.name == "Closing"
        assert rule.description == "Closing : Open->Closed"
        assert rule.threshold == 0
        assert rule.start == {"OPEN"}
        assert rule.stop == {"CLOSED"}
        assert rule.pause == frozenset()

    def test_default_calendar_timezone(self):
        store = InMemoryStore()

        configuration = ProvisioningService(store).ensure_configuration(1, timezone="Asia/Tokyo")

        assert store.get_calendar(configuration.calendar_id).timezone == "Asia/Tokyo"

    def test_second_call_returns_existing(self):
        """Seeding happens once per subscription."""
        store = InMemoryStore()
        service = ProvisioningService(store)

        first = service.ensure_configuration(1)
        second = service.ensure_configuration(1)

        assert first == second
        assert len(SlaRuleService(store).list_rules(1)) == 1

    def test_reuses_existing_default_calendar(self):
        """Subscriptions share the default calendar already in the store."""
        store = InMemoryStore()
        france = CalendarService(store).create_calendar(
            "France", ranges=[TimeRange.from_hours(8, 18)], is_default=True
        )
        service = ProvisioningService(store)

        assert service.ensure_configuration(1).calendar_id == france.id
        assert service.ensure_configuration(2).calendar_id == france.id
        assert len(store.list_calendars()) == 1


class TestConfigurationLifecycle:
    """Tests for calendar switching and configuration removal."""

    def test_set_calendar(self):
        store = InMemoryStore()
        service = ProvisioningService(store)
        service.ensure_configuration(1)
        other = CalendarService(store).create_calendar("Any", ranges=[TimeRange.from_hours(9, 17)])

        configuration = service.set_calendar(1, other.id)

        assert configuration.calendar_id == other.id
        assert store.get_configuration(1).calendar_id == other.id

    def test_set_unknown_calendar(self):
        store = InMemoryStore()
        service = ProvisioningService(store)
        service.ensure_configuration(1)

        with pytest.raises(NotFoundError):
            service.set_calendar(1, 404)

    def test_delete_configuration_frees_calendar(self):
        """Once unused, the default calendar can be deleted."""
        store = InMemoryStore()
        service = ProvisioningService(store)
        calendars = CalendarService(store)
        configuration = service.ensure_configuration(1)

        with pytest.raises(ReferencedError):
            calendars.delete_calendar(configuration.calendar_id)

        service.delete_configuration(1)
        calendars.delete_calendar(configuration.calendar_id)

        assert store.find_configuration(1) is None
        with pytest.raises(NotFoundError):
            store.get_rule(configuration.sla_ids[0])
