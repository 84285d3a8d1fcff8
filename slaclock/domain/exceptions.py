"""
Domain-specific exception hierarchy for the SLA clock.

Validation errors carry the name of the offending field so that callers can
surface a field-specific message ("start overlaps" vs "end overlaps").
"""

from enum import Enum


class Boundary(str, Enum):
    """Which end of a candidate range triggered an overlap."""

    START = "start"
    END = "end"


class SlaClockError(Exception):
    """Base class for all application-level errors."""


class ConfigurationError(SlaClockError, ValueError):
    """Raised when a configuration file cannot be turned into a store."""


class ValidationError(SlaClockError):
    """Raised when a candidate value is rejected before being stored."""

    rule = "Invalid"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


class InvalidRangeError(ValidationError):
    """Raised for inverted, degenerate or out-of-day business hours."""

    rule = "InvalidRange"


class OverlapError(ValidationError):
    """Raised when business hours would overlap an existing range."""

    rule = "Overlap"

    def __init__(self, boundary: Boundary, message: str):
        self.boundary = boundary
        super().__init__(boundary.value, message)


class SlaBoundError(ValidationError):
    """Raised when a pause status is also a start or stop status."""

    rule = "SlaBound"


class DomainError(SlaClockError):
    """Raised when a mutation would break a domain invariant."""


class LastRangeRemovalError(DomainError):
    """Raised when removing the only business hours range of a calendar."""


class ReferencedError(DomainError):
    """Raised when deleting something that is still referenced."""


class NotFoundError(DomainError, LookupError):
    """Raised when a calendar, range or SLA rule identifier is unknown."""

    def __init__(self, resource_type: str, resource_id: object):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} '{resource_id}' not found")
