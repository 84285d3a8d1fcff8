"""
In-memory store for calendars, SLA rules and subscription configurations.

Associations are plain identifier lookups: a configuration names its calendar
and rules by id, and nothing holds a back-reference. Stored values are
immutable snapshots replaced as a whole on every write.
"""

import itertools
from typing import Dict, List, Optional

from ..domain.exceptions import NotFoundError
from ..domain.models import Calendar, SlaRule, SubscriptionConfiguration


class InMemoryStore:
    """Identifier-keyed tables with a shared id sequence."""

    def __init__(self) -> None:
        self._calendars: Dict[int, Calendar] = {}
        self._rules: Dict[int, SlaRule] = {}
        self._configurations: Dict[int, SubscriptionConfiguration] = {}
        self._ids = itertools.count(1)

    def next_id(self) -> int:
        return next(self._ids)

    # Calendars

    def get_calendar(self, calendar_id: int) -> Calendar:
        try:
            return self._calendars[calendar_id]
        except KeyError:
            raise NotFoundError("Calendar", calendar_id) from None

    def save_calendar(self, calendar: Calendar) -> Calendar:
        self._calendars[calendar.id] = calendar
        return calendar

    def delete_calendar(self, calendar_id: int) -> None:
        self.get_calendar(calendar_id)
        del self._calendars[calendar_id]

    def list_calendars(self) -> List[Calendar]:
        return list(self._calendars.values())

    def find_default_calendar(self) -> Optional[Calendar]:
        for calendar in self._calendars.values():
            if calendar.is_default:
                return calendar
        return None

    def find_calendar_by_name(self, name: str) -> Optional[Calendar]:
        for calendar in self._calendars.values():
            if calendar.name.lower() == name.lower():
                return calendar
        return None

    def calendar_references(self, calendar_id: int) -> List[int]:
        """Return the subscriptions whose configuration uses the calendar."""
        return [
            configuration.subscription
            for configuration in self._configurations.values()
            if configuration.calendar_id == calendar_id
        ]

    # SLA rules

    def get_rule(self, rule_id: int) -> SlaRule:
        try:
            return self._rules[rule_id]
        except KeyError:
            raise NotFoundError("SLA rule", rule_id) from None

    def save_rule(self, rule: SlaRule) -> SlaRule:
        self._rules[rule.id] = rule
        return rule

    def delete_rule(self, rule_id: int) -> None:
        self.get_rule(rule_id)
        del self._rules[rule_id]

    def find_rule_owner(self, rule_id: int) -> Optional[SubscriptionConfiguration]:
        for configuration in self._configurations.values():
            if rule_id in configuration.sla_ids:
                return configuration
        return None

    # Subscription configurations

    def find_configuration(self, subscription: int) -> Optional[SubscriptionConfiguration]:
        return self._configurations.get(subscription)

    def get_configuration(self, subscription: int) -> SubscriptionConfiguration:
        configuration = self.find_configuration(subscription)
        if configuration is None:
            raise NotFoundError("Subscription configuration", subscription)
        return configuration

    def save_configuration(self, configuration: SubscriptionConfiguration) -> SubscriptionConfiguration:
        self._configurations[configuration.subscription] = configuration
        return configuration

    def delete_configuration(self, subscription: int) -> None:
        self.get_configuration(subscription)
        del self._configurations[subscription]
