"""Appointment and scheduling enums."""

from enum import Enum


class AppointmentStatus(str, Enum):
    """
    Appointment lifecycle status.

    Flow: pending → confirmed → completed
              ↘ cancelled
    """

    PENDING = "pending"  # Booked, awaiting confirmation
    CONFIRMED = "confirmed"  # Confirmed by staff or an auto-confirm template
    COMPLETED = "completed"  # Appointment took place
    CANCELLED = "cancelled"  # Never blocks a slot


class RecurrencePattern(str, Enum):
    """Repeat rule for a recurring series."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class SlotStatus(str, Enum):
    """Availability of a slot in the visual time picker."""

    AVAILABLE = "available"  # No overlapping appointments
    PARTIAL = "partial"  # Some overlap, booking may still fit
    BUSY = "busy"  # Overlapping durations cover the candidate duration


class RescheduleSlotState(str, Enum):
    """State of a (day, slot) cell in the quick reschedule picker."""

    DISABLED_BUSY = "disabled-busy"
    DISABLED_PAST = "disabled-past"
    CURRENT = "current"
    SELECTABLE = "selectable"


class DayLoad(str, Enum):
    """Coarse booked-time level for a day."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class BatchAction(str, Enum):
    """Actions offered by the batch toolbar."""

    CONFIRM = "confirm"
    CANCEL = "cancel"
    COMPLETE = "complete"
    DELETE = "delete"


# Statuses that occupy time on the calendar
ACTIVE_STATUSES = (
    AppointmentStatus.PENDING,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.COMPLETED,
)

# Default appointment status
DEFAULT_APPOINTMENT_STATUS = AppointmentStatus.PENDING
DEFAULT_RECURRENCE_PATTERN = RecurrencePattern.NONE
