"""Conflict detection for candidate appointments.

Advisory only: the result is a snapshot read at call time. A booking made by
another client between this read and the caller's write is not detected.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from appointment_core.core.structured_logging import build_log_context
from appointment_core.db.models import Appointment
from appointment_core.services import appointment_store
from appointment_core.utils.intervals import Interval, appointment_interval, day_bounds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConflictingAppointment:
    """Summary of an existing appointment that overlaps a candidate."""
    id: UUID
    scheduled_at: datetime
    duration_minutes: int
    service_type: str | None
    contact_name: str | None
    contact_phone: str | None

    @property
    def end(self) -> datetime:
        return appointment_interval(self.scheduled_at, self.duration_minutes).end

    @classmethod
    def from_appointment(cls, appointment: Appointment) -> "ConflictingAppointment":
        contact = appointment.contact
        return cls(
            id=appointment.id,
            scheduled_at=appointment.scheduled_at,
            duration_minutes=appointment.duration_minutes,
            service_type=appointment.service_type,
            contact_name=contact.name if contact else None,
            contact_phone=contact.phone_number if contact else None,
        )


def find_overlapping(
    candidate: Interval,
    appointments: Iterable[Appointment],
    exclude_appointment_id: UUID | None = None,
) -> list[Appointment]:
    """
    Existing appointments whose interval overlaps the candidate.

    Cancelled appointments never overlap anything.
    """
    overlapping = []
    for appt in appointments:
        if appt.is_cancelled:
            continue
        if exclude_appointment_id is not None and appt.id == exclude_appointment_id:
            continue
        if candidate.overlaps(appointment_interval(appt.scheduled_at, appt.duration_minutes)):
            overlapping.append(appt)
    return overlapping


def check_conflicts(
    db: Session,
    business_id: UUID,
    scheduled_at: datetime,
    duration_minutes: int,
    exclude_appointment_id: UUID | None = None,
) -> list[ConflictingAppointment]:
    """
    Non-cancelled appointments of the same day overlapping [scheduled_at, +duration).

    Fails open: a read error is logged and an empty list is returned, so a
    storage hiccup never blocks the user from saving.
    """
    if not isinstance(scheduled_at, datetime):
        raise ValueError("scheduled_at must be a datetime")
    candidate = Interval.from_start(scheduled_at, duration_minutes)

    day_start, day_end = day_bounds(scheduled_at)
    try:
        existing = appointment_store.query_active_appointments(db, business_id, day_start, day_end)
    except SQLAlchemyError:
        logger.exception(
            "conflict_check_failed",
            extra=build_log_context(
                business_id=business_id,
                appointment_id=exclude_appointment_id,
                action="check_conflicts",
            ),
        )
        db.rollback()
        return []

    overlapping = find_overlapping(candidate, existing, exclude_appointment_id)
    if overlapping:
        logger.info(
            "conflicts_detected",
            extra=build_log_context(
                business_id=business_id,
                appointment_id=exclude_appointment_id,
                action="check_conflicts",
                count=len(overlapping),
            ),
        )
    return [ConflictingAppointment.from_appointment(a) for a in overlapping]


@dataclass
class ConflictAcknowledgment:
    """
    Explicit user confirmation to save despite a conflict warning.

    Bound to the candidate it was given for; any change of start or
    duration invalidates it and forces a fresh confirmation.
    """
    scheduled_at: datetime | None = None
    duration_minutes: int | None = None

    def acknowledge(self, scheduled_at: datetime, duration_minutes: int) -> None:
        self.scheduled_at = scheduled_at
        self.duration_minutes = duration_minutes

    def reset(self) -> None:
        self.scheduled_at = None
        self.duration_minutes = None

    def is_valid_for(self, scheduled_at: datetime, duration_minutes: int) -> bool:
        return (
            self.scheduled_at is not None
            and self.scheduled_at == scheduled_at
            and self.duration_minutes == duration_minutes
        )
