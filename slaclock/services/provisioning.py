"""
One-time seeding of a subscription's SLA configuration.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import List, Optional

import pendulum

from ..adapters.memory_store import InMemoryStore
from ..domain.models import Holiday, SubscriptionConfiguration, TimeRange
from .calendar_service import CalendarService
from .sla_service import SlaRuleService

logger = logging.getLogger(__name__)

DEFAULT_CALENDAR_NAME = "Default"
DEFAULT_RANGE = TimeRange.from_hours(8, 18)
DEFAULT_SLA_NAME = "Closing"
DEFAULT_SLA_DESCRIPTION = "Closing : Open->Closed"

# (month, day, name)
STANDARD_HOLIDAYS = (
    (1, 1, "New Year's Day"),
    (5, 1, "Labour Day"),
    (7, 14, "National Day"),
    (12, 25, "Christmas Day"),
)


def default_holidays(year: int) -> List[Holiday]:
    """Return the standard fixed-date national holidays of a year."""
    return [Holiday(date=date(year, month, day), name=name) for month, day, name in STANDARD_HOLIDAYS]


class ProvisioningService:
    """
    Creates the default calendar and SLA rule on first use of a subscription.

    An existing default calendar is shared between subscriptions; a new one
    is only created when the store has none.
    """

    def __init__(
        self,
        store: InMemoryStore,
        calendar_service: Optional[CalendarService] = None,
        sla_service: Optional[SlaRuleService] = None,
    ) -> None:
        self._store = store
        self._calendars = calendar_service or CalendarService(store)
        self._slas = sla_service or SlaRuleService(store)

    def ensure_configuration(
        self,
        subscription: int,
        year: Optional[int] = None,
        timezone: Optional[str] = None,
    ) -> SubscriptionConfiguration:
        """
        Return the configuration of a subscription, seeding it if missing.

        Args:
            subscription: Subscription identifier
            year: Year of the default holidays, defaults to the current year
            timezone: Zone of a newly created Default calendar

        Returns:
            The existing or newly created configuration
        """
        existing = self._store.find_configuration(subscription)
        if existing is not None:
            return existing

        calendar = self._store.find_default_calendar()
        if calendar is None:
            calendar = self._calendars.create_calendar(
                DEFAULT_CALENDAR_NAME,
                timezone=timezone,
                ranges=[DEFAULT_RANGE],
                holidays=default_holidays(year or pendulum.now().year),
                is_default=True,
            )

        self._store.save_configuration(
            SubscriptionConfiguration(subscription=subscription, calendar_id=calendar.id)
        )
        self._slas.add_rule(
            subscription,
            name=DEFAULT_SLA_NAME,
            description=DEFAULT_SLA_DESCRIPTION,
            start=["OPEN"],
            stop=["CLOSED"],
        )
        logger.info("Provisioned subscription %s with calendar %s", subscription, calendar.name)
        return self._store.get_configuration(subscription)

    def set_calendar(self, subscription: int, calendar_id: int) -> SubscriptionConfiguration:
        """Point a subscription at another calendar."""
        configuration = self._store.get_configuration(subscription)
        calendar = self._store.get_calendar(calendar_id)
        logger.info("Subscription %s now uses calendar %s", subscription, calendar.name)
        return self._store.save_configuration(replace(configuration, calendar_id=calendar.id))

    def delete_configuration(self, subscription: int) -> None:
        """Drop a subscription's configuration together with its SLA rules."""
        configuration = self._store.get_configuration(subscription)
        for rule_id in configuration.sla_ids:
            self._store.delete_rule(rule_id)
        self._store.delete_configuration(subscription)
        logger.info("Deleted configuration of subscription %s", subscription)
