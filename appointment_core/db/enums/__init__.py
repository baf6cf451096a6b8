"""Enum definitions for application constants."""

from appointment_core.db.enums.appointments import (
    ACTIVE_STATUSES,
    AppointmentStatus,
    BatchAction,
    DayLoad,
    DEFAULT_APPOINTMENT_STATUS,
    DEFAULT_RECURRENCE_PATTERN,
    RecurrencePattern,
    RescheduleSlotState,
    SlotStatus,
)

__all__ = [
    "ACTIVE_STATUSES",
    "AppointmentStatus",
    "BatchAction",
    "DayLoad",
    "DEFAULT_APPOINTMENT_STATUS",
    "DEFAULT_RECURRENCE_PATTERN",
    "RecurrencePattern",
    "RescheduleSlotState",
    "SlotStatus",
]
