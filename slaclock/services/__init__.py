"""
Service layer helpers that orchestrate the store, adapters and domain logic.
"""

from .calendar_service import CalendarService
from .evaluation import EventSourceProtocol, SlaEvaluationService
from .provisioning import ProvisioningService, default_holidays
from .sla_service import SlaRuleService

__all__ = [
    "CalendarService",
    "EventSourceProtocol",
    "ProvisioningService",
    "SlaEvaluationService",
    "SlaRuleService",
    "default_holidays",
]
