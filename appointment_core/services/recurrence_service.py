"""Recurrence expansion for repeating appointments.

Pure date arithmetic, no I/O. Series materialization (parent + children rows)
lives in appointment_service.create_appointment.
"""

import logging
from datetime import date, datetime, timedelta
from typing import NamedTuple, TypeVar

from dateutil.relativedelta import relativedelta

from appointment_core.core.constants import MAX_RECURRENCE_OCCURRENCES
from appointment_core.db.enums import RecurrencePattern

logger = logging.getLogger(__name__)

D = TypeVar("D", date, datetime)


class RecurrenceExpansion(NamedTuple):
    """Expanded occurrence dates. truncated=True when the safety cap cut the series short."""
    dates: list
    truncated: bool

    @property
    def count(self) -> int:
        return len(self.dates)


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def _step(current: D, pattern: RecurrencePattern) -> D:
    if pattern == RecurrencePattern.DAILY:
        return current + timedelta(days=1)
    if pattern == RecurrencePattern.WEEKLY:
        return current + timedelta(weeks=1)
    if pattern == RecurrencePattern.MONTHLY:
        # Same day-of-month, clamped at month end (Jan 31 -> Feb 29 -> Mar 29)
        return current + relativedelta(months=1)
    raise ValueError(f"Unsupported recurrence pattern: {pattern}")


def expand(
    start: D,
    pattern: RecurrencePattern | str,
    end_date: date | datetime | None,
    max_occurrences: int = MAX_RECURRENCE_OCCURRENCES,
) -> RecurrenceExpansion:
    """
    Occurrence dates from start through end_date (inclusive).

    pattern=none always yields [start]. Each next date is computed from the
    previous occurrence. Expansion stops once the next candidate falls after
    end_date, or unconditionally at max_occurrences.
    """
    pattern = RecurrencePattern(pattern)
    if pattern == RecurrencePattern.NONE:
        return RecurrenceExpansion([start], False)
    if end_date is None:
        raise ValueError("end_date is required for recurring appointments")
    if max_occurrences < 1:
        raise ValueError("max_occurrences must be at least 1")

    last_day = _as_date(end_date)
    dates = [start]
    current = start
    while len(dates) < max_occurrences:
        candidate = _step(current, pattern)
        if _as_date(candidate) > last_day:
            return RecurrenceExpansion(dates, False)
        dates.append(candidate)
        current = candidate

    truncated = _as_date(_step(current, pattern)) <= last_day
    if truncated:
        logger.warning(
            "recurrence_truncated",
            extra={
                "event": "recurrence_truncated",
                "pattern": pattern.value,
                "count": len(dates),
                "end_date": last_day.isoformat(),
            },
        )
    return RecurrenceExpansion(dates, truncated)


def expand_dates(
    start: D,
    pattern: RecurrencePattern | str,
    end_date: date | datetime | None,
) -> list:
    """Occurrence dates only (see expand)."""
    return expand(start, pattern, end_date).dates


def validate_recurrence(
    scheduled_at: date | datetime,
    pattern: RecurrencePattern | str,
    end_date: date | None,
) -> None:
    """Raise ValueError when a repeating booking has no usable end date."""
    pattern = RecurrencePattern(pattern)
    if pattern == RecurrencePattern.NONE:
        return
    if end_date is None:
        raise ValueError("Please select an end date for recurring appointments")
    if _as_date(end_date) < _as_date(scheduled_at):
        raise ValueError("Recurrence end date must be on or after the appointment date")
