"""
Guards for business hours and SLA status sets.

These checks run at the mutation boundary, before anything reaches the store.
The business time engine relies on them and does not re-check its inputs.
"""

from typing import Iterable, Tuple

from .exceptions import Boundary, InvalidRangeError, OverlapError, SlaBoundError
from .models import MILLIS_PER_DAY, TimeRange


class BusinessHoursValidator:
    """
    Enforces bounds and non-overlap over the ranges of one calendar.

    Overlaps are tagged with the boundary that caused them: ``START`` when the
    candidate starts inside an existing range or swallows it whole, ``END``
    when only the candidate's end reaches into an existing range.
    """

    @staticmethod
    def validate(candidate: TimeRange, existing: Iterable[TimeRange] = ()) -> None:
        """
        Validate a candidate range against the other ranges of its calendar.

        Args:
            candidate: The range about to be inserted or updated
            existing: Ranges already stored, excluding the one being updated

        Raises:
            InvalidRangeError: If the candidate is degenerate, inverted or
                outside ``[0, MILLIS_PER_DAY]``
            OverlapError: If the candidate overlaps an existing range
        """
        if not 0 <= candidate.start <= MILLIS_PER_DAY:
            raise InvalidRangeError(
                "start", f"Start {candidate.start} must be within 0 and {MILLIS_PER_DAY}"
            )
        if not 0 <= candidate.end <= MILLIS_PER_DAY:
            raise InvalidRangeError(
                "end", f"End {candidate.end} must be within 0 and {MILLIS_PER_DAY}"
            )
        if candidate.start >= candidate.end:
            raise InvalidRangeError(
                "end", f"End {candidate.end} must be after start {candidate.start}"
            )

        for other in sorted(existing):
            if not candidate.overlaps(other):
                continue
            if candidate.start < other.start and candidate.end <= other.end:
                raise OverlapError(Boundary.END, f"End of {candidate} overlaps {other}")
            raise OverlapError(Boundary.START, f"Start of {candidate} overlaps {other}")


def normalize_status(status: str) -> str:
    return status.strip().upper()


def normalize_statuses(statuses: Iterable[str]) -> Tuple[str, ...]:
    """Trim, uppercase, deduplicate and sort status labels."""
    return tuple(sorted({normalize_status(status) for status in statuses if status and status.strip()}))


def normalize_labels(labels: Iterable[str]) -> Tuple[str, ...]:
    """Trim, deduplicate and sort filter labels, keeping their casing."""
    return tuple(sorted({label.strip() for label in labels if label and label.strip()}))


def validate_sla_statuses(
    start: Iterable[str],
    stop: Iterable[str],
    pause: Iterable[str],
) -> None:
    """
    Ensure a pause status never also starts or stops the same clock.

    Statuses are expected to be normalized already.

    Raises:
        SlaBoundError: Tagged ``start`` or ``stop`` depending on the conflict
    """
    pause_set = set(pause)
    conflict = pause_set.intersection(start)
    if conflict:
        raise SlaBoundError("start", f"Statuses {sorted(conflict)} cannot both start and pause")
    conflict = pause_set.intersection(stop)
    if conflict:
        raise SlaBoundError("stop", f"Statuses {sorted(conflict)} cannot both stop and pause")
