"""
Application service evaluating the SLAs of a tracked issue.

The service fetches the issue history through an event source adapter and
delegates the actual computation to the domain-level ``BusinessTimeEngine``.
The event source is a simple protocol so tests can plug in a stub.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional, Protocol

import pendulum

from ..adapters.memory_store import InMemoryStore
from ..domain.business_time import BusinessTimeEngine
from ..domain.models import SlaState, TrackedIssue


class EventSourceProtocol(Protocol):
    """Protocol describing the event source behaviour needed by the service."""

    async def get_issue(self, issue_key: str) -> TrackedIssue:
        """Return the issue with its status history."""


class SlaEvaluationService:
    """
    Orchestrates history retrieval and SLA evaluation for a subscription.

    Snapshots of the calendar and rules are read once per evaluation, so a
    concurrent change to the configuration never shows up half-applied.
    """

    def __init__(
        self,
        store: InMemoryStore,
        event_source: Optional[EventSourceProtocol] = None,
        engine: Optional[BusinessTimeEngine] = None,
    ) -> None:
        self._store = store
        self._event_source = event_source
        self._engine = engine or BusinessTimeEngine()

    async def evaluate_issue(
        self,
        subscription: int,
        issue_key: str,
        now: Optional[datetime] = None,
    ) -> Dict[str, SlaState]:
        """Fetch an issue history and evaluate the subscription's SLAs on it."""
        if self._event_source is None:
            raise RuntimeError("No event source configured")
        issue = await self._event_source.get_issue(issue_key)
        return self.evaluate(subscription, issue, now=now)

    def evaluate(
        self,
        subscription: int,
        issue: TrackedIssue,
        now: Optional[datetime] = None,
    ) -> Dict[str, SlaState]:
        """
        Evaluate every SLA rule of a subscription that applies to the issue.

        Running clocks of all rules are measured up to the same instant.
        Rule names are unique within a subscription, so no state is lost.

        Returns:
            SLA states keyed by rule name, in rule creation order
        """
        configuration = self._store.get_configuration(subscription)
        calendar = self._store.get_calendar(configuration.calendar_id)
        rules = [self._store.get_rule(rule_id) for rule_id in configuration.sla_ids]
        if now is None:
            now = pendulum.now(calendar.timezone)

        return {
            rule.name: self._engine.evaluate(calendar, rule, issue.events, now=now)
            for rule in rules
            if rule.applies_to(issue)
        }
