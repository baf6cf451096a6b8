"""Appointment record store - the only module that reads and writes appointment rows.

Every scheduling component reaches storage through these calls:
range queries by business, single/bulk inserts, single/bulk updates by id,
and single/bulk deletes by id. Writes commit immediately; callers own
rollback on failure.
"""

from datetime import datetime
from typing import Any, Iterable, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from appointment_core.db.enums import ACTIVE_STATUSES, AppointmentStatus
from appointment_core.db.models import Appointment


def _status_values(statuses: Iterable[AppointmentStatus | str]) -> list[str]:
    return [AppointmentStatus(s).value for s in statuses]


# =============================================================================
# Reads
# =============================================================================

def query_appointments(
    db: Session,
    business_id: UUID,
    range_start: datetime,
    range_end: datetime,
    statuses: Iterable[AppointmentStatus | str] | None = None,
) -> list[Appointment]:
    """
    Appointments of a business starting in [range_start, range_end).

    statuses=None returns every status.
    """
    query = db.query(Appointment).filter(
        Appointment.business_id == business_id,
        Appointment.scheduled_at >= range_start,
        Appointment.scheduled_at < range_end,
    )
    if statuses is not None:
        query = query.filter(Appointment.status.in_(_status_values(statuses)))
    return query.order_by(Appointment.scheduled_at.asc()).all()


def query_active_appointments(
    db: Session,
    business_id: UUID,
    range_start: datetime,
    range_end: datetime,
) -> list[Appointment]:
    """Non-cancelled appointments in [range_start, range_end)."""
    return query_appointments(db, business_id, range_start, range_end, statuses=ACTIVE_STATUSES)


def get_appointment(
    db: Session,
    business_id: UUID,
    appointment_id: UUID,
) -> Appointment | None:
    """Get appointment by ID within a business."""
    return db.query(Appointment).filter(
        Appointment.id == appointment_id,
        Appointment.business_id == business_id,
    ).first()


def get_series_children(db: Session, parent_id: UUID) -> list[Appointment]:
    """Generated occurrences of a recurring parent, in date order."""
    return db.query(Appointment).filter(
        Appointment.recurrence_parent_id == parent_id,
    ).order_by(Appointment.scheduled_at.asc()).all()


# =============================================================================
# Writes
# =============================================================================

def insert_appointment(db: Session, fields: dict[str, Any]) -> Appointment:
    """Insert one appointment and return the stored row."""
    appointment = Appointment(**fields)
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment


def insert_appointments(db: Session, rows: Sequence[dict[str, Any]]) -> list[Appointment]:
    """Insert many appointments in one commit."""
    if not rows:
        return []
    appointments = [Appointment(**fields) for fields in rows]
    db.add_all(appointments)
    db.commit()
    for appointment in appointments:
        db.refresh(appointment)
    return appointments


def update_appointment(db: Session, appointment_id: UUID, fields: dict[str, Any]) -> None:
    """Update fields of a single appointment by id."""
    update_appointments(db, [appointment_id], fields)


def update_appointments(db: Session, ids: Sequence[UUID], fields: dict[str, Any]) -> int:
    """
    Bulk update by id; returns the number of rows actually changed.

    The count can be lower than len(ids) when some ids no longer exist.
    """
    if not ids:
        return 0
    values = {getattr(Appointment, key): value for key, value in fields.items()}
    updated = db.query(Appointment).filter(
        Appointment.id.in_(list(ids)),
    ).update(values, synchronize_session="fetch")
    db.commit()
    return updated


def delete_appointment(db: Session, appointment_id: UUID) -> None:
    """Delete one appointment by id."""
    delete_appointments(db, [appointment_id])


def delete_appointments(db: Session, ids: Sequence[UUID]) -> int:
    """Bulk delete by id; returns the number of rows removed."""
    if not ids:
        return 0
    id_list = list(ids)
    # Children of a deleted parent become standalone rows
    db.query(Appointment).filter(
        Appointment.recurrence_parent_id.in_(id_list),
        Appointment.id.notin_(id_list),
    ).update({Appointment.recurrence_parent_id: None}, synchronize_session="fetch")
    deleted = db.query(Appointment).filter(
        Appointment.id.in_(id_list),
    ).delete(synchronize_session="fetch")
    db.commit()
    return deleted
