"""
Event source reading issue histories from a JSON export.

Expected layout::

    {"issues": [{"key": "PRJ-1", "type": "Bug", "priority": "Major",
                 "resolution": null,
                 "events": [{"status": "Open", "timestamp": "2024-11-25 09:00"}]}]}
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

import pendulum
from pendulum import DateTime

from ..domain.exceptions import NotFoundError
from ..domain.models import DEFAULT_TIMEZONE, Event, TrackedIssue

logger = logging.getLogger(__name__)


class JsonEventSource:
    """
    Loads tracked issues and their status transitions from a JSON file.

    Timestamps without an offset are read in ``timezone``. Malformed events
    are skipped with a warning so one bad line does not hide a whole history.
    """

    def __init__(self, data_file: Path, timezone: str = DEFAULT_TIMEZONE):
        """
        Initialize the event source.

        Args:
            data_file: Path to the JSON export
            timezone: IANA timezone for timestamps without offset

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the file is not valid JSON
        """
        self.data_file = data_file
        self.timezone = timezone
        self._issues = self._load_issues()

    def _load_issues(self) -> Dict[str, Dict[str, Any]]:
        if not self.data_file.exists():
            raise FileNotFoundError(f"History file not found: {self.data_file}")

        try:
            with open(self.data_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in {self.data_file}: {exc}") from exc

        issues = data.get("issues", []) if isinstance(data, dict) else data
        return {str(issue["key"]): issue for issue in issues if "key" in issue}

    def issue_keys(self) -> List[str]:
        return sorted(self._issues)

    async def get_issue(self, issue_key: str) -> TrackedIssue:
        """
        Return an issue and its history.

        Raises:
            NotFoundError: If the issue is not in the export
        """
        raw = self._issues.get(issue_key)
        if raw is None:
            raise NotFoundError("Issue", issue_key)

        events: List[Event] = []
        for entry in raw.get("events", []):
            try:
                timestamp = pendulum.parse(entry["timestamp"], tz=self.timezone)
                status = str(entry["status"])
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed event of %s: %s", issue_key, exc)
                continue
            # Bare times and durations parse too, but are not instants
            if not isinstance(timestamp, DateTime):
                logger.warning("Skipping malformed event of %s: '%s' is not a date and time", issue_key, entry["timestamp"])
                continue
            events.append(Event(status=status, timestamp=timestamp))

        return TrackedIssue(
            key=issue_key,
            events=tuple(events),
            type=raw.get("type"),
            priority=raw.get("priority"),
            resolution=raw.get("resolution"),
        )
