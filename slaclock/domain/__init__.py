"""
Domain layer - Pure business logic without external dependencies.
"""

from .business_time import BusinessTimeEngine
from .models import (
    Calendar,
    Event,
    Holiday,
    SlaRule,
    SlaState,
    SlaStatus,
    SubscriptionConfiguration,
    TimeRange,
    TrackedIssue,
)
from .validator import BusinessHoursValidator

__all__ = [
    "BusinessHoursValidator",
    "BusinessTimeEngine",
    "Calendar",
    "Event",
    "Holiday",
    "SlaRule",
    "SlaState",
    "SlaStatus",
    "SubscriptionConfiguration",
    "TimeRange",
    "TrackedIssue",
]
