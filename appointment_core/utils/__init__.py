"""Utility modules."""

from appointment_core.utils.appointment_list import (
    AppointmentListQuery,
    get_list_query,
)
from appointment_core.utils.intervals import (
    Interval,
    at_time,
    business_now,
    day_bounds,
    ends_by_midnight,
    format_hhmm,
    intervals_overlap,
    parse_hhmm,
    slot_times,
)

__all__ = [
    # Intervals
    "Interval",
    "at_time",
    "business_now",
    "day_bounds",
    "ends_by_midnight",
    "format_hhmm",
    "intervals_overlap",
    "parse_hhmm",
    "slot_times",
    # Appointment list
    "AppointmentListQuery",
    "get_list_query",
]
