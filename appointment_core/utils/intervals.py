"""Half-open time intervals and business-day helpers.

All datetimes here are naive business-local wall-clock values.
"""

import re
from datetime import date, datetime, time, timedelta
from typing import NamedTuple

from appointment_core.core.constants import DEFAULT_DURATION_MINUTES

_HHMM_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


class Interval(NamedTuple):
    """`[start, end)` time span. Back-to-back intervals do not overlap."""
    start: datetime
    end: datetime

    @classmethod
    def from_start(cls, start: datetime, duration_minutes: int) -> "Interval":
        if duration_minutes <= 0:
            raise ValueError("duration_minutes must be positive")
        return cls(start, start + timedelta(minutes=duration_minutes))

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def overlaps(self, other: "Interval") -> bool:
        return intervals_overlap(self, other)

    def overlap_minutes(self, other: "Interval") -> int:
        """Minutes shared by both intervals (0 when disjoint)."""
        start = max(self.start, other.start)
        end = min(self.end, other.end)
        if end <= start:
            return 0
        return int((end - start).total_seconds() // 60)


def intervals_overlap(a: Interval, b: Interval) -> bool:
    """True iff a.start < b.end and b.start < a.end."""
    return a.start < b.end and b.start < a.end


def appointment_interval(scheduled_at: datetime, duration_minutes: int | None) -> Interval:
    """Interval of a stored appointment; missing durations count as the default hour."""
    return Interval.from_start(scheduled_at, duration_minutes or DEFAULT_DURATION_MINUTES)


# =============================================================================
# Day / clock helpers
# =============================================================================

def day_bounds(day: date | datetime) -> tuple[datetime, datetime]:
    """Return [00:00 of day, 00:00 of next day)."""
    if isinstance(day, datetime):
        day = day.date()
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def parse_hhmm(value: str) -> time:
    """Parse a 24h "HH:MM" string."""
    match = _HHMM_RE.match(value or "")
    if not match:
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    return time(int(match.group(1)), int(match.group(2)))


def format_hhmm(value: time | datetime) -> str:
    return value.strftime("%H:%M")


def at_time(day: date | datetime, hhmm: str) -> datetime:
    """Combine a calendar day with an "HH:MM" clock time."""
    if isinstance(day, datetime):
        day = day.date()
    return datetime.combine(day, parse_hhmm(hhmm))


def ends_by_midnight(scheduled_at: datetime, duration_minutes: int) -> bool:
    """True when the appointment finishes no later than 00:00 of the next day."""
    return scheduled_at + timedelta(minutes=duration_minutes) <= day_bounds(scheduled_at)[1]


def slot_times(start_hour: int, end_hour: int, interval_minutes: int) -> list[str]:
    """
    "HH:MM" labels for every slot start in [start_hour, end_hour).

    Each hour restarts at :00, so 7..21 by 30 gives 07:00 … 20:30 and a
    45 minute step gives 07:00, 07:45, 08:00, 08:45, ...
    """
    if not 0 < interval_minutes <= 60:
        raise ValueError("interval_minutes must be between 1 and 60")
    if not 0 <= start_hour < end_hour <= 24:
        raise ValueError("working window must satisfy 0 <= start_hour < end_hour <= 24")
    return [
        f"{hour:02d}:{minute:02d}"
        for hour in range(start_hour, end_hour)
        for minute in range(0, 60, interval_minutes)
    ]


def same_day(a: datetime | date, b: datetime | date) -> bool:
    a_day = a.date() if isinstance(a, datetime) else a
    b_day = b.date() if isinstance(b, datetime) else b
    return a_day == b_day


def business_now() -> datetime:
    """Current wall-clock time in the configured business timezone (naive)."""
    from appointment_core.core.config import settings

    return datetime.now(settings.business_tz).replace(tzinfo=None, microsecond=0)
