"""
Configuration management using Pydantic models loaded from YAML.
"""

import datetime
from pathlib import Path
from typing import List, Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .adapters.memory_store import InMemoryStore
from .domain.exceptions import ConfigurationError, ValidationError
from .domain.models import (
    DEFAULT_TIMEZONE,
    MILLIS_PER_DAY,
    MILLIS_PER_HOUR,
    MILLIS_PER_MINUTE,
    Holiday,
    TimeRange,
)
from .services.calendar_service import CalendarService
from .services.provisioning import ProvisioningService
from .services.sla_service import SlaRuleService

# Subscription holding the SLA rules declared in the configuration file
CONFIG_SUBSCRIPTION = 0


def parse_clock(value: str) -> int:
    """
    Parse an ``HH:MM`` clock string into milliseconds from midnight.

    ``24:00`` is accepted as the end of the day.
    """
    try:
        hours, minutes = (int(part) for part in value.strip().split(":"))
    except ValueError:
        raise ValueError(f"Time must look like HH:MM, got '{value}'") from None
    if not 0 <= minutes <= 59 or not 0 <= hours <= 24:
        raise ValueError(f"Time out of range: '{value}'")
    offset = hours * MILLIS_PER_HOUR + minutes * MILLIS_PER_MINUTE
    if offset > MILLIS_PER_DAY:
        raise ValueError(f"Time out of range: '{value}'")
    return offset


class RangeConfig(BaseModel):
    """Business hours range, e.g. ``{start: "08:00", end: "12:00"}``."""
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def validate_clock(cls, v: str) -> str:
        parse_clock(v)
        return v

    def to_time_range(self) -> TimeRange:
        return TimeRange(start=parse_clock(self.start), end=parse_clock(self.end))


class HolidayConfig(BaseModel):
    """A single holiday date."""
    date: datetime.date
    name: str = ""


class CalendarConfig(BaseModel):
    """Calendar definition."""
    name: str
    timezone: Optional[str] = None
    ranges: List[RangeConfig] = Field(default_factory=lambda: [RangeConfig(start="08:00", end="18:00")])
    holidays: List[HolidayConfig] = Field(default_factory=list)
    non_business_weekdays: List[int] = Field(default_factory=list)  # 0=Monday, 6=Sunday

    @field_validator("non_business_weekdays")
    @classmethod
    def validate_weekdays(cls, value: List[int]) -> List[int]:
        """Ensure weekdays are in valid range and deduplicated."""
        invalid_days = [day for day in value if day not in range(7)]
        if invalid_days:
            raise ValueError(f"non_business_weekdays must be between 0 and 6, got {invalid_days}")
        return sorted(set(value))

    @field_validator("ranges")
    @classmethod
    def validate_ranges(cls, value: List[RangeConfig]) -> List[RangeConfig]:
        if not value:
            raise ValueError("A calendar needs at least one business hours range")
        return value


class SlaConfig(BaseModel):
    """SLA rule definition."""
    name: str
    description: Optional[str] = None
    start: List[str]
    stop: List[str]
    pause: List[str] = Field(default_factory=list)
    threshold_minutes: int = 0
    types: List[str] = Field(default_factory=list)
    priorities: List[str] = Field(default_factory=list)
    resolutions: List[str] = Field(default_factory=list)

    @field_validator("threshold_minutes")
    @classmethod
    def validate_threshold(cls, value: int) -> int:
        if value < 0:
            raise ValueError("threshold_minutes must not be negative")
        return value

    @property
    def threshold_millis(self) -> int:
        return self.threshold_minutes * MILLIS_PER_MINUTE


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = DEFAULT_TIMEZONE
    log_level: str = "WARNING"
    default_calendar: Optional[str] = None
    calendars: List[CalendarConfig] = Field(default_factory=list)
    slas: List[SlaConfig] = Field(default_factory=list)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone '{value}'") from exc
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level '{value}'")
        return level

    @field_validator("calendars")
    @classmethod
    def validate_calendars(cls, value: List[CalendarConfig]) -> List[CalendarConfig]:
        """Ensure calendar names are unique."""
        seen_names: set[str] = set()
        for calendar in value:
            name_key = calendar.name.lower()
            if name_key in seen_names:
                raise ValueError(f"Duplicate calendar name detected: {calendar.name}")
            seen_names.add(name_key)
        return value

    @model_validator(mode="after")
    def validate_default_calendar(self) -> "AppConfig":
        """Ensure the default calendar is one of the declared calendars."""
        if self.default_calendar and self.find_calendar(self.default_calendar) is None:
            raise ValueError(f"default_calendar '{self.default_calendar}' is not declared")
        return self

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)

    def find_calendar(self, name: str) -> CalendarConfig | None:
        """Find a calendar by name, ignoring case."""
        for calendar in self.calendars:
            if calendar.name.lower() == name.lower():
                return calendar
        return None

    def build_store(self) -> InMemoryStore:
        """
        Load the configured calendars and SLA rules into a fresh store.

        Calendars and rules go through the same services as administrative
        changes, so overlapping hours or conflicting statuses are rejected.
        The rules are attached to ``CONFIG_SUBSCRIPTION``, which uses the
        default calendar (or the provisioned one when none is declared).

        Raises:
            ConfigurationError: If a calendar or rule is rejected
        """
        store = InMemoryStore()
        calendars = CalendarService(store)
        slas = SlaRuleService(store)
        default_name = self.default_calendar or (self.calendars[0].name if self.calendars else None)

        for calendar in self.calendars:
            try:
                calendars.create_calendar(
                    calendar.name,
                    timezone=calendar.timezone or self.timezone,
                    ranges=[r.to_time_range() for r in calendar.ranges],
                    holidays=[Holiday(date=h.date, name=h.name) for h in calendar.holidays],
                    non_business_weekdays=calendar.non_business_weekdays,
                    is_default=calendar.name.lower() == default_name.lower(),
                )
            except ValidationError as exc:
                raise ConfigurationError(f"Calendar '{calendar.name}': {exc}") from exc

        provisioning = ProvisioningService(store, calendars, slas)
        configuration = provisioning.ensure_configuration(CONFIG_SUBSCRIPTION, timezone=self.timezone)
        if self.slas:
            for rule_id in configuration.sla_ids:
                slas.delete_rule(rule_id)

        for sla in self.slas:
            try:
                slas.add_rule(
                    CONFIG_SUBSCRIPTION,
                    name=sla.name,
                    description=sla.description,
                    start=sla.start,
                    stop=sla.stop,
                    pause=sla.pause,
                    threshold=sla.threshold_millis,
                    types=sla.types,
                    priorities=sla.priorities,
                    resolutions=sla.resolutions,
                )
            except ValidationError as exc:
                raise ConfigurationError(f"SLA '{sla.name}': {exc}") from exc

        return store


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
