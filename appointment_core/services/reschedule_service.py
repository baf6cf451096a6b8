"""Quick reschedule - multi-day alternate slot picker for an existing appointment.

Handles:
- Paging a rolling N-day window forward/backward (never before today)
- Classifying each (day, slot) as past / current / busy / selectable
- Per-day openness counts
- Moving the appointment to a picked slot (scheduled_at only)
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from appointment_core.core.constants import (
    OPEN_SLOTS_MANY,
    OPEN_SLOTS_SOME,
    QUICK_RESCHEDULE_DAYS,
    QUICK_RESCHEDULE_FIRST_SLOT,
    QUICK_RESCHEDULE_LAST_SLOT,
    SLOT_INTERVAL_MINUTES,
)
from appointment_core.core.structured_logging import build_log_context
from appointment_core.db.enums import RescheduleSlotState
from appointment_core.db.models import Appointment
from appointment_core.services import appointment_store
from appointment_core.services.conflict_service import find_overlapping
from appointment_core.services.exceptions import (
    AppointmentNotFoundError,
    AppointmentStoreError,
    AppointmentValidationError,
    SlotUnavailableError,
)
from appointment_core.utils.intervals import (
    Interval,
    at_time,
    ends_by_midnight,
    format_hhmm,
    parse_hhmm,
    same_day,
    slot_times,
)

logger = logging.getLogger(__name__)


def _quick_slots() -> list[str]:
    first = parse_hhmm(QUICK_RESCHEDULE_FIRST_SLOT)
    last = parse_hhmm(QUICK_RESCHEDULE_LAST_SLOT)
    # slot_times excludes end_hour, so stop one interval past the last slot
    slots = slot_times(first.hour, last.hour + 1, SLOT_INTERVAL_MINUTES)
    return [s for s in slots if parse_hhmm(s) <= last]


# 07:00 … 20:00 every 30 minutes
QUICK_RESCHEDULE_SLOTS: tuple[str, ...] = tuple(_quick_slots())


# =============================================================================
# Types
# =============================================================================

@dataclass(frozen=True)
class RescheduleCell:
    """One (day, slot) pair of the picker."""
    time: str
    start: datetime
    state: RescheduleSlotState

    @property
    def selectable(self) -> bool:
        return self.state == RescheduleSlotState.SELECTABLE


@dataclass
class RescheduleDay:
    """A picker column: one day and its slot cells."""
    day: date
    cells: list[RescheduleCell] = field(default_factory=list)

    @property
    def open_count(self) -> int:
        return sum(1 for cell in self.cells if cell.selectable)

    @property
    def open_level(self) -> str:
        """Color hint for the openness badge."""
        if self.open_count > OPEN_SLOTS_MANY:
            return "many"
        if self.open_count > OPEN_SLOTS_SOME:
            return "some"
        return "few"

    def cell(self, hhmm: str) -> RescheduleCell | None:
        for cell in self.cells:
            if cell.time == hhmm:
                return cell
        return None


@dataclass
class RescheduleGrid:
    """The full N-day picker for one appointment."""
    appointment_id: UUID
    offset: int
    days: list[RescheduleDay] = field(default_factory=list)

    @property
    def can_page_back(self) -> bool:
        return self.offset > 0

    def day(self, value: date) -> RescheduleDay | None:
        for column in self.days:
            if column.day == value:
                return column
        return None


# =============================================================================
# Window paging
# =============================================================================

def window_days(today: date, offset: int = 0, days: int = QUICK_RESCHEDULE_DAYS) -> list[date]:
    """The days shown for a page; offset is clamped so the window never starts before today."""
    if days <= 0:
        raise ValueError("days must be positive")
    offset = max(0, offset)
    return [today + timedelta(days=offset + i) for i in range(days)]


def next_offset(offset: int, days: int = QUICK_RESCHEDULE_DAYS) -> int:
    return max(0, offset) + days


def previous_offset(offset: int, days: int = QUICK_RESCHEDULE_DAYS) -> int:
    return max(0, offset - days)


# =============================================================================
# Classification
# =============================================================================

def classify_cell(
    slot_start: datetime,
    appointment_id: UUID,
    current_scheduled_at: datetime,
    duration_minutes: int,
    appointments: Sequence[Appointment],
    now: datetime,
) -> RescheduleSlotState:
    """
    State of one (day, slot) pair.

    Precedence: past, then the appointment's current slot, then busy.
    The appointment itself never makes a slot busy.
    """
    if slot_start < now:
        return RescheduleSlotState.DISABLED_PAST
    if same_day(slot_start, current_scheduled_at) and (
        format_hhmm(slot_start) == format_hhmm(current_scheduled_at)
    ):
        return RescheduleSlotState.CURRENT
    candidate = Interval.from_start(slot_start, duration_minutes)
    if find_overlapping(candidate, appointments, exclude_appointment_id=appointment_id):
        return RescheduleSlotState.DISABLED_BUSY
    return RescheduleSlotState.SELECTABLE


def build_reschedule_grid(
    appointment_id: UUID,
    current_scheduled_at: datetime,
    duration_minutes: int,
    days: Sequence[date],
    appointments: Sequence[Appointment],
    now: datetime,
    slots: Sequence[str] = QUICK_RESCHEDULE_SLOTS,
    offset: int = 0,
) -> RescheduleGrid:
    """Classify every (day, slot) pair of the window."""
    if duration_minutes <= 0:
        raise ValueError("duration_minutes must be positive")
    grid = RescheduleGrid(appointment_id=appointment_id, offset=offset)
    for day in days:
        column = RescheduleDay(day=day)
        for hhmm in slots:
            start = at_time(day, hhmm)
            column.cells.append(
                RescheduleCell(
                    time=hhmm,
                    start=start,
                    state=classify_cell(
                        start,
                        appointment_id,
                        current_scheduled_at,
                        duration_minutes,
                        appointments,
                        now,
                    ),
                )
            )
        grid.days.append(column)
    return grid


def load_reschedule_grid(
    db: Session,
    business_id: UUID,
    appointment: Appointment,
    now: datetime,
    offset: int = 0,
    days: int = QUICK_RESCHEDULE_DAYS,
) -> RescheduleGrid:
    """Read the window's non-cancelled appointments and build the picker."""
    offset = max(0, offset)
    window = window_days(now.date(), offset, days)
    range_start = datetime.combine(window[0], datetime.min.time())
    range_end = datetime.combine(window[-1] + timedelta(days=1), datetime.min.time())
    appointments = appointment_store.query_active_appointments(db, business_id, range_start, range_end)
    return build_reschedule_grid(
        appointment_id=appointment.id,
        current_scheduled_at=appointment.scheduled_at,
        duration_minutes=appointment.duration_minutes,
        days=window,
        appointments=appointments,
        now=now,
        offset=offset,
    )


# =============================================================================
# Apply
# =============================================================================

def apply_reschedule(
    db: Session,
    business_id: UUID,
    appointment_id: UUID,
    day: date,
    hhmm: str,
    now: datetime,
) -> Appointment:
    """
    Move an appointment to a picked (day, slot).

    Re-reads that day and refuses anything but a selectable cell. Only
    scheduled_at changes; duration, status and the rest are untouched.
    """
    appointment = appointment_store.get_appointment(db, business_id, appointment_id)
    if not appointment:
        raise AppointmentNotFoundError("Appointment not found")
    if hhmm not in QUICK_RESCHEDULE_SLOTS:
        raise SlotUnavailableError(f"{hhmm} is not a reschedule slot")

    new_start = at_time(day, hhmm)
    if not ends_by_midnight(new_start, appointment.duration_minutes):
        raise AppointmentValidationError("Appointments cannot run past midnight")
    day_start = datetime.combine(day, datetime.min.time())
    try:
        day_appointments = appointment_store.query_active_appointments(
            db, business_id, day_start, day_start + timedelta(days=1)
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "reschedule_load_failed",
            extra=build_log_context(business_id=business_id, appointment_id=appointment_id),
        )
        raise AppointmentStoreError("Failed to load appointments") from exc

    state = classify_cell(
        new_start,
        appointment.id,
        appointment.scheduled_at,
        appointment.duration_minutes,
        day_appointments,
        now,
    )
    if state != RescheduleSlotState.SELECTABLE:
        raise SlotUnavailableError(f"Slot {day.isoformat()} {hhmm} is {state.value}")

    try:
        appointment_store.update_appointment(db, appointment.id, {"scheduled_at": new_start})
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "reschedule_failed",
            extra=build_log_context(
                business_id=business_id, appointment_id=appointment_id, action="reschedule"
            ),
        )
        raise AppointmentStoreError("Failed to reschedule appointment") from exc

    db.refresh(appointment)
    logger.info(
        "appointment_rescheduled",
        extra=build_log_context(
            business_id=business_id, appointment_id=appointment_id, action="reschedule"
        ),
    )
    return appointment
