"""
SLA rule administration, scoped to a subscription configuration.

Status labels are normalized (trimmed, uppercased, sorted) before storing so
that membership tests during evaluation do not depend on input casing.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, List, Optional

from ..adapters.memory_store import InMemoryStore
from ..domain.exceptions import ValidationError
from ..domain.models import SlaRule, SubscriptionConfiguration
from ..domain.validator import normalize_labels, normalize_statuses, validate_sla_statuses

logger = logging.getLogger(__name__)


class SlaRuleService:
    """CRUD of SLA rules owned by subscription configurations."""

    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def add_rule(
        self,
        subscription: int,
        *,
        name: str,
        start: Iterable[str],
        stop: Iterable[str],
        pause: Iterable[str] = (),
        description: Optional[str] = None,
        threshold: int = 0,
        types: Iterable[str] = (),
        priorities: Iterable[str] = (),
        resolutions: Iterable[str] = (),
    ) -> int:
        """
        Create an SLA rule for a subscription.

        Args:
            subscription: Subscription owning the rule
            name: Display name of the rule
            start: Statuses starting (or resuming) the clock
            stop: Statuses stopping the clock for good
            pause: Statuses suspending the clock
            description: Optional free text
            threshold: Business time budget in milliseconds, 0 for tracking only
            types: Issue types the rule applies to, empty for all
            priorities: Issue priorities the rule applies to, empty for all
            resolutions: Issue resolutions the rule applies to, empty for all

        Returns:
            The identifier of the new rule

        Raises:
            NotFoundError: If the subscription has no configuration
            SlaBoundError: If a pause status also starts or stops the clock
            ValidationError: If the threshold is negative or the name is taken
        """
        configuration = self._store.get_configuration(subscription)
        self._check_unique_name(configuration, name)
        rule = self._build_rule(
            self._store.next_id(),
            name=name,
            start=start,
            stop=stop,
            pause=pause,
            description=description,
            threshold=threshold,
            types=types,
            priorities=priorities,
            resolutions=resolutions,
        )
        self._store.save_rule(rule)
        self._store.save_configuration(
            replace(configuration, sla_ids=configuration.sla_ids + (rule.id,))
        )
        logger.info("Added SLA %s (%s) to subscription %s", rule.name, rule.id, subscription)
        return rule.id

    def update_rule(
        self,
        rule_id: int,
        *,
        name: str,
        start: Iterable[str],
        stop: Iterable[str],
        pause: Iterable[str] = (),
        description: Optional[str] = None,
        threshold: int = 0,
        types: Iterable[str] = (),
        priorities: Iterable[str] = (),
        resolutions: Iterable[str] = (),
    ) -> SlaRule:
        """Replace every attribute of an existing rule, keeping its identifier."""
        self._store.get_rule(rule_id)
        owner = self._store.find_rule_owner(rule_id)
        if owner is not None:
            self._check_unique_name(owner, name, rule_id=rule_id)
        rule = self._build_rule(
            rule_id,
            name=name,
            start=start,
            stop=stop,
            pause=pause,
            description=description,
            threshold=threshold,
            types=types,
            priorities=priorities,
            resolutions=resolutions,
        )
        logger.info("Updated SLA %s (%s)", rule.name, rule.id)
        return self._store.save_rule(rule)

    def delete_rule(self, rule_id: int) -> None:
        rule = self._store.get_rule(rule_id)
        owner = self._store.find_rule_owner(rule_id)
        if owner is not None:
            self._store.save_configuration(
                replace(owner, sla_ids=tuple(i for i in owner.sla_ids if i != rule_id))
            )
        self._store.delete_rule(rule_id)
        logger.info("Deleted SLA %s (%s)", rule.name, rule_id)

    def get_rule(self, rule_id: int) -> SlaRule:
        return self._store.get_rule(rule_id)

    def list_rules(self, subscription: int) -> List[SlaRule]:
        """Return the rules of a subscription in creation order."""
        configuration = self._store.get_configuration(subscription)
        return [self._store.get_rule(rule_id) for rule_id in configuration.sla_ids]

    def _check_unique_name(
        self,
        configuration: SubscriptionConfiguration,
        name: str,
        rule_id: Optional[int] = None,
    ) -> None:
        """Reject a name already used by another rule of the subscription, ignoring case."""
        wanted = name.strip().lower()
        for other_id in configuration.sla_ids:
            if other_id != rule_id and self._store.get_rule(other_id).name.lower() == wanted:
                logger.warning("Rejected SLA %s: name already used in subscription %s", name, configuration.subscription)
                raise ValidationError("name", f"SLA '{name.strip()}' already exists")

    @staticmethod
    def _build_rule(
        rule_id: int,
        *,
        name: str,
        start: Iterable[str],
        stop: Iterable[str],
        pause: Iterable[str],
        description: Optional[str],
        threshold: int,
        types: Iterable[str],
        priorities: Iterable[str],
        resolutions: Iterable[str],
    ) -> SlaRule:
        if threshold < 0:
            raise ValidationError("threshold", f"Threshold must not be negative, got {threshold}")

        start_statuses = normalize_statuses(start)
        stop_statuses = normalize_statuses(stop)
        pause_statuses = normalize_statuses(pause)
        try:
            validate_sla_statuses(start_statuses, stop_statuses, pause_statuses)
        except ValidationError as exc:
            logger.warning("Rejected SLA %s: %s", name, exc)
            raise

        return SlaRule(
            id=rule_id,
            name=name.strip(),
            description=description,
            start=frozenset(start_statuses),
            stop=frozenset(stop_statuses),
            pause=frozenset(pause_statuses),
            threshold=threshold,
            types=normalize_labels(types),
            priorities=normalize_labels(priorities),
            resolutions=normalize_labels(resolutions),
        )
