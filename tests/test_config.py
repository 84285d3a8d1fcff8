"""
Tests for configuration loading.
"""

from datetime import date
from pathlib import Path

import pytest

from slaclock.config import CONFIG_SUBSCRIPTION, AppConfig, parse_clock
from slaclock.domain.exceptions import ConfigurationError
from slaclock.domain.models import MILLIS_PER_DAY, MILLIS_PER_HOUR, MILLIS_PER_MINUTE

CONFIG_YAML = """
timezone: Europe/Paris
log_level: info
default_calendar: France
calendars:
  - name: France
    ranges:
      - {start: "09:00", end: "12:00"}
      - {start: "13:00", end: "18:00"}
    non_business_weekdays: [6, 5, 5]
    holidays:
      - {date: 2024-12-25, name: "Noël"}
  - name: Support
    timezone: Europe/Berlin
    ranges:
      - {start: "00:00", end: "24:00"}
slas:
  - name: Livraison
    description: Délais de fermeture
    start: [Open]
    pause: [Resolved]
    stop: [Closed]
    threshold_minutes: 600
"""


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")
    return path


class TestParseClock:
    """Tests for HH:MM parsing."""

    def test_parse(self):
        assert parse_clock("08:30") == 8 * MILLIS_PER_HOUR + 30 * MILLIS_PER_MINUTE
        assert parse_clock("24:00") == MILLIS_PER_DAY

    @pytest.mark.parametrize("value", ["8h", "24:01", "12:60", "25:00"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_clock(value)


class TestAppConfig:
    """Tests for AppConfig."""

    def test_load_from_yaml(self, tmp_path):
        """A full configuration loads and normalizes."""
        config = AppConfig.load_from_yaml(_write(tmp_path, CONFIG_YAML))

        assert config.log_level == "INFO"
        assert config.find_calendar("france").non_business_weekdays == [5, 6]
        assert config.slas[0].threshold_millis == 10 * MILLIS_PER_HOUR

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            AppConfig.load_from_yaml(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ValueError, match="Invalid YAML"):
            AppConfig.load_from_yaml(_write(tmp_path, "calendars: [unclosed"))

    def test_root_must_be_mapping(self, tmp_path):
        with pytest.raises(ValueError, match="mapping at the root"):
            AppConfig.load_from_yaml(_write(tmp_path, "- a\n- b\n"))

    def test_duplicate_calendar_names(self):
        with pytest.raises(ValueError, match="Duplicate calendar name"):
            AppConfig(calendars=[{"name": "France"}, {"name": "france"}])

    def test_unknown_default_calendar(self):
        with pytest.raises(ValueError, match="is not declared"):
            AppConfig(default_calendar="Nowhere")

    def test_invalid_weekday(self):
        with pytest.raises(ValueError, match="between 0 and 6"):
            AppConfig(calendars=[{"name": "France", "non_business_weekdays": [7]}])


class TestBuildStore:
    """Tests for turning a configuration into a store."""

    def test_build_store(self, tmp_path):
        """Calendars and rules are loaded through the services."""
        store = AppConfig.load_from_yaml(_write(tmp_path, CONFIG_YAML)).build_store()

        configuration = store.get_configuration(CONFIG_SUBSCRIPTION)
        france = store.get_calendar(configuration.calendar_id)
        assert france.name == "France"
        assert france.is_default
        assert france.holiday_dates == {date(2024, 12, 25)}
        assert france.non_business_weekdays == (5, 6)
        assert store.find_calendar_by_name("Support").timezone == "Europe/Berlin"

        rules = [store.get_rule(rule_id) for rule_id in configuration.sla_ids]
        assert [rule.name for rule in rules] == ["Livraison"]
        assert rules[0].pause == {"RESOLVED"}
        assert rules[0].threshold == 36_000_000

    def test_defaults_without_calendars(self):
        """An empty configuration falls back to the provisioned defaults."""
        store = AppConfig().build_store()

        configuration = store.get_configuration(CONFIG_SUBSCRIPTION)
        assert store.get_calendar(configuration.calendar_id).name == "Default"
        assert [store.get_rule(i).name for i in configuration.sla_ids] == ["Closing"]

    def test_default_calendar_uses_configured_timezone(self):
        """The provisioned calendar follows the top-level timezone."""
        store = AppConfig(timezone="America/New_York").build_store()

        configuration = store.get_configuration(CONFIG_SUBSCRIPTION)
        assert store.get_calendar(configuration.calendar_id).timezone == "America/New_York"

    def test_overlapping_ranges_rejected(self):
        config = AppConfig(
            calendars=[
                {"name": "Bad", "ranges": [{"start": "09:00", "end": "12:00"}, {"start": "11:00", "end": "14:00"}]}
            ]
        )

        with pytest.raises(ConfigurationError, match="Calendar 'Bad'"):
            config.build_store()

    def test_conflicting_statuses_rejected(self):
        config = AppConfig(slas=[{"name": "AA", "start": ["Open"], "stop": ["Closed"], "pause": ["open"]}])

        with pytest.raises(ConfigurationError, match="SLA 'AA'"):
            config.build_store()
