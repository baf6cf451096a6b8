"""Slot availability grid and day load indicators.

Read-only views over a day's appointments, using the same overlap rule as
conflict detection. Handles:
- Classifying every working-window slot as available / partial / busy
- Slot selection rules for the visual time picker
- Busy minutes per hour and total day load for calendar badges
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from appointment_core.core.constants import (
    DAY_LOAD_HIGH_MINUTES,
    DAY_LOAD_MEDIUM_MINUTES,
    SLOT_END_HOUR,
    SLOT_INTERVAL_MINUTES,
    SLOT_START_HOUR,
)
from appointment_core.db.enums import DayLoad, SlotStatus
from appointment_core.db.models import Appointment
from appointment_core.services import appointment_store
from appointment_core.services.exceptions import SlotUnavailableError
from appointment_core.services.conflict_service import ConflictingAppointment, find_overlapping
from appointment_core.utils.intervals import (
    Interval,
    appointment_interval,
    at_time,
    day_bounds,
    same_day,
    slot_times,
)


# =============================================================================
# Types
# =============================================================================

@dataclass(frozen=True)
class SlotAvailability:
    """One picker slot and what it collides with."""
    time: str
    start: datetime
    end: datetime
    status: SlotStatus
    conflicts: tuple[ConflictingAppointment, ...] = ()

    @property
    def selectable(self) -> bool:
        return self.status != SlotStatus.BUSY

    @property
    def requires_confirmation(self) -> bool:
        return self.status == SlotStatus.PARTIAL


@dataclass(frozen=True)
class DayLoadSummary:
    """Total booked time of a day, for calendar badges."""
    day: date
    appointment_count: int
    total_minutes: int
    level: DayLoad

    @property
    def hours(self) -> int:
        return self.total_minutes // 60

    @property
    def minutes(self) -> int:
        return self.total_minutes % 60


@dataclass(frozen=True)
class BusyBar:
    """Position of an appointment on a working-window timeline strip (percentages)."""
    appointment_id: UUID
    left: float
    width: float
    start: datetime
    end: datetime
    status: str


@dataclass
class SlotGrid:
    """Classified slots of one day for one candidate duration."""
    day: date
    duration_minutes: int
    slots: list[SlotAvailability] = field(default_factory=list)

    def by_time(self) -> dict[str, SlotAvailability]:
        return {slot.time: slot for slot in self.slots}

    def status_map(self) -> dict[str, SlotStatus]:
        return {slot.time: slot.status for slot in self.slots}

    def by_hour(self) -> dict[int, list[SlotAvailability]]:
        grouped: dict[int, list[SlotAvailability]] = {}
        for slot in self.slots:
            grouped.setdefault(slot.start.hour, []).append(slot)
        return grouped


# =============================================================================
# Slot classification
# =============================================================================

def classify_slot(
    slot_start: datetime,
    duration_minutes: int,
    appointments: Iterable[Appointment],
    exclude_appointment_id: UUID | None = None,
) -> tuple[SlotStatus, list[Appointment]]:
    """
    Status of a candidate [slot_start, +duration) against existing appointments.

    busy when the overlapping appointments' durations add up to at least the
    candidate duration, partial for any smaller overlap.
    """
    candidate = Interval.from_start(slot_start, duration_minutes)
    overlapping = find_overlapping(candidate, appointments, exclude_appointment_id)
    if not overlapping:
        return SlotStatus.AVAILABLE, []

    conflict_minutes = sum(
        appointment_interval(a.scheduled_at, a.duration_minutes).duration_minutes
        for a in overlapping
    )
    if conflict_minutes >= duration_minutes:
        return SlotStatus.BUSY, overlapping
    return SlotStatus.PARTIAL, overlapping


def classify_slots(
    day: date | datetime,
    duration_minutes: int,
    appointments: Sequence[Appointment],
    start_hour: int = SLOT_START_HOUR,
    end_hour: int = SLOT_END_HOUR,
    slot_minutes: int = SLOT_INTERVAL_MINUTES,
    exclude_appointment_id: UUID | None = None,
) -> SlotGrid:
    """Classify every slot of the working window for a candidate duration."""
    if duration_minutes <= 0:
        raise ValueError("duration_minutes must be positive")
    if isinstance(day, datetime):
        day = day.date()

    day_appointments = [a for a in appointments if same_day(a.scheduled_at, day)]
    grid = SlotGrid(day=day, duration_minutes=duration_minutes)
    for hhmm in slot_times(start_hour, end_hour, slot_minutes):
        start = at_time(day, hhmm)
        status, overlapping = classify_slot(
            start, duration_minutes, day_appointments, exclude_appointment_id
        )
        grid.slots.append(
            SlotAvailability(
                time=hhmm,
                start=start,
                end=Interval.from_start(start, duration_minutes).end,
                status=status,
                conflicts=tuple(ConflictingAppointment.from_appointment(a) for a in overlapping),
            )
        )
    return grid


def slot_status_map(
    day: date | datetime,
    duration_minutes: int,
    appointments: Sequence[Appointment],
    start_hour: int = SLOT_START_HOUR,
    end_hour: int = SLOT_END_HOUR,
    slot_minutes: int = SLOT_INTERVAL_MINUTES,
) -> dict[str, SlotStatus]:
    """Mapping of "HH:MM" slot start to status."""
    return classify_slots(
        day, duration_minutes, appointments, start_hour, end_hour, slot_minutes
    ).status_map()


def select_slot(grid: SlotGrid, hhmm: str) -> SlotAvailability:
    """
    Pick a slot as the candidate start time.

    available and partial slots can be picked (partial needs confirmation by
    the caller), busy slots cannot.
    """
    slot = grid.by_time().get(hhmm)
    if slot is None:
        raise SlotUnavailableError(f"{hhmm} is outside the working window")
    if not slot.selectable:
        raise SlotUnavailableError(f"{hhmm} is fully booked")
    return slot


def load_day_grid(
    db: Session,
    business_id: UUID,
    day: date,
    duration_minutes: int,
    start_hour: int = SLOT_START_HOUR,
    end_hour: int = SLOT_END_HOUR,
    slot_minutes: int = SLOT_INTERVAL_MINUTES,
    exclude_appointment_id: UUID | None = None,
) -> SlotGrid:
    """Read the day's appointments and classify the grid (fresh read every call)."""
    day_start, day_end = day_bounds(day)
    appointments = appointment_store.query_active_appointments(db, business_id, day_start, day_end)
    return classify_slots(
        day,
        duration_minutes,
        appointments,
        start_hour=start_hour,
        end_hour=end_hour,
        slot_minutes=slot_minutes,
        exclude_appointment_id=exclude_appointment_id,
    )


# =============================================================================
# Day load indicators
# =============================================================================

def busy_minutes_in_hour(day: date, hour: int, appointments: Iterable[Appointment]) -> int:
    """Minutes of [hour:00, hour+1:00) on day covered by appointments, capped at 60."""
    hour_window = Interval.from_start(at_time(day, f"{hour:02d}:00"), 60)
    total = 0
    for appt in appointments:
        if appt.is_cancelled:
            continue
        interval = appointment_interval(appt.scheduled_at, appt.duration_minutes)
        total += interval.overlap_minutes(hour_window)
    return min(total, 60)


def day_load(day: date, appointments: Iterable[Appointment]) -> DayLoadSummary:
    """Total booked minutes of a day and its load level."""
    active = [a for a in appointments if not a.is_cancelled and same_day(a.scheduled_at, day)]
    total = sum(appointment_interval(a.scheduled_at, a.duration_minutes).duration_minutes for a in active)
    if total >= DAY_LOAD_HIGH_MINUTES:
        level = DayLoad.HIGH
    elif total >= DAY_LOAD_MEDIUM_MINUTES:
        level = DayLoad.MEDIUM
    else:
        level = DayLoad.LOW
    return DayLoadSummary(day=day, appointment_count=len(active), total_minutes=total, level=level)


def busy_bars(
    day: date,
    appointments: Iterable[Appointment],
    start_hour: int = SLOT_START_HOUR,
    end_hour: int = SLOT_END_HOUR,
) -> list[BusyBar]:
    """Timeline bars for the day's appointments, clipped to the working window."""
    window_minutes = (end_hour - start_hour) * 60
    bars = []
    for appt in sorted(appointments, key=lambda a: a.scheduled_at):
        if appt.is_cancelled or not same_day(appt.scheduled_at, day):
            continue
        interval = appointment_interval(appt.scheduled_at, appt.duration_minutes)
        offset = (appt.scheduled_at.hour - start_hour) * 60 + appt.scheduled_at.minute
        left = max(0.0, offset / window_minutes * 100)
        if offset < 0 or left >= 100:
            continue
        width = min(interval.duration_minutes / window_minutes * 100, 100 - left)
        bars.append(
            BusyBar(
                appointment_id=appt.id,
                left=round(left, 2),
                width=round(width, 2),
                start=interval.start,
                end=interval.end,
                status=appt.status,
            )
        )
    return bars
