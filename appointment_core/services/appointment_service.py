"""Appointment service - business logic for booking and editing appointments.

Handles:
- Creation with conflict acknowledgment, new contacts and template defaults
- Recurring series materialization (parent + children)
- Edits, status changes, deletes
- Duplication and drag-to-day moves
- Listing and status counts
"""

import logging
from datetime import date, datetime, timedelta
from typing import NamedTuple
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from appointment_core.core.config import settings
from appointment_core.core.constants import (
    DEFAULT_DURATION_MINUTES,
    MAX_DURATION_MINUTES,
    NOTES_MAX_LENGTH,
    SERVICE_TYPE_MAX_LENGTH,
)
from appointment_core.core.structured_logging import build_log_context
from appointment_core.db.enums import AppointmentStatus, RecurrencePattern
from appointment_core.db.models import Appointment, AppointmentTemplate, Contact
from appointment_core.services import appointment_store, calendar_sync, recurrence_service
from appointment_core.services.conflict_service import ConflictingAppointment, check_conflicts
from appointment_core.services.exceptions import (
    AppointmentNotFoundError,
    AppointmentStoreError,
    AppointmentValidationError,
    ConflictNotAcknowledgedError,
    ContactNotFoundError,
    PartialSeriesError,
)
from appointment_core.services.template_service import get_active_template
from appointment_core.utils.intervals import at_time, business_now, ends_by_midnight, format_hhmm
from appointment_core.utils.appointment_list import AppointmentListQuery

logger = logging.getLogger(__name__)


# =============================================================================
# Types
# =============================================================================

class BookingResult(NamedTuple):
    """Rows written by one create action (parent first for a series)."""
    appointments: list[Appointment]
    conflicts: list[ConflictingAppointment]
    truncated: bool = False

    @property
    def appointment(self) -> Appointment:
        return self.appointments[0]

    @property
    def ids(self) -> list[UUID]:
        return [a.id for a in self.appointments]


class DuplicateTarget(NamedTuple):
    """Day and "HH:MM" a duplicate lands on."""
    day: date
    time: str


# =============================================================================
# Validation helpers
# =============================================================================

def _clean_text(value: str | None) -> str | None:
    """Trim free text; blank becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def _validate_fields(
    duration_minutes: int | None = None,
    service_type: str | None = None,
    notes: str | None = None,
) -> None:
    if duration_minutes is not None and not 0 < duration_minutes <= MAX_DURATION_MINUTES:
        raise AppointmentValidationError(
            f"Duration must be between 1 and {MAX_DURATION_MINUTES} minutes"
        )
    if service_type and len(service_type) > SERVICE_TYPE_MAX_LENGTH:
        raise AppointmentValidationError(
            f"Service type must be {SERVICE_TYPE_MAX_LENGTH} characters or less"
        )
    if notes and len(notes) > NOTES_MAX_LENGTH:
        raise AppointmentValidationError(f"Notes must be {NOTES_MAX_LENGTH} characters or less")


def _validate_same_day(scheduled_at: datetime, duration_minutes: int) -> None:
    """Appointments end by 00:00 of the day they start on."""
    if not ends_by_midnight(scheduled_at, duration_minutes):
        raise AppointmentValidationError("Appointments cannot run past midnight")


def _require_appointment(db: Session, business_id: UUID, appointment_id: UUID) -> Appointment:
    appointment = appointment_store.get_appointment(db, business_id, appointment_id)
    if not appointment:
        raise AppointmentNotFoundError("Appointment not found")
    return appointment


def _guard_conflicts(
    db: Session,
    business_id: UUID,
    scheduled_at: datetime,
    duration_minutes: int,
    acknowledge_conflicts: bool,
    exclude_appointment_id: UUID | None = None,
) -> list[ConflictingAppointment]:
    """Run the advisory check; unacknowledged conflicts stop the write."""
    conflicts = check_conflicts(
        db, business_id, scheduled_at, duration_minutes, exclude_appointment_id
    )
    if conflicts and not acknowledge_conflicts:
        raise ConflictNotAcknowledgedError(conflicts)
    return conflicts


def _resolve_contact(
    db: Session,
    business_id: UUID,
    contact_id: UUID | None,
    new_contact_phone: str | None,
) -> None:
    """Check that the booking names a contact before anything is written."""
    if contact_id is not None:
        contact = db.query(Contact).filter(
            Contact.id == contact_id,
            Contact.business_id == business_id,
        ).first()
        if not contact:
            raise ContactNotFoundError("Contact not found")
        return
    if not _clean_text(new_contact_phone):
        raise AppointmentValidationError("Please select or create a contact")


def _create_contact(
    db: Session,
    business_id: UUID,
    phone_number: str,
    name: str | None,
) -> Contact:
    contact = Contact(
        business_id=business_id,
        phone_number=phone_number.strip(),
        name=_clean_text(name),
    )
    db.add(contact)
    db.commit()
    db.refresh(contact)
    return contact


# =============================================================================
# Create
# =============================================================================

def create_appointment(
    db: Session,
    business_id: UUID,
    scheduled_at: datetime,
    duration_minutes: int | None = None,
    contact_id: UUID | None = None,
    new_contact_phone: str | None = None,
    new_contact_name: str | None = None,
    service_type: str | None = None,
    notes: str | None = None,
    template_id: UUID | None = None,
    recurrence_pattern: RecurrencePattern | str | None = None,
    recurrence_end_date: date | None = None,
    acknowledge_conflicts: bool = False,
) -> BookingResult:
    """
    Book a single appointment or a recurring series.

    Values not given fall back to the template (when one is chosen), then to
    defaults. Only the first occurrence is conflict-checked. Every created
    row is handed to the external calendar hook afterwards.
    """
    template: AppointmentTemplate | None = None
    if template_id is not None:
        template = get_active_template(db, business_id, template_id)

    if template:
        if duration_minutes is None:
            duration_minutes = template.duration_minutes
        service_type = service_type if service_type is not None else template.service_type
        notes = notes if notes is not None else template.notes
        if recurrence_pattern is None:
            recurrence_pattern = template.default_recurrence_pattern
    if duration_minutes is None:
        duration_minutes = DEFAULT_DURATION_MINUTES
    pattern = RecurrencePattern(recurrence_pattern or RecurrencePattern.NONE)
    service_type = _clean_text(service_type)
    notes = _clean_text(notes)

    _validate_fields(duration_minutes, service_type, notes)
    _validate_same_day(scheduled_at, duration_minutes)
    _resolve_contact(db, business_id, contact_id, new_contact_phone)
    try:
        recurrence_service.validate_recurrence(scheduled_at, pattern, recurrence_end_date)
    except ValueError as exc:
        raise AppointmentValidationError(str(exc)) from exc

    conflicts = _guard_conflicts(
        db, business_id, scheduled_at, duration_minutes, acknowledge_conflicts
    )

    try:
        if contact_id is None:
            contact_id = _create_contact(db, business_id, new_contact_phone, new_contact_name).id
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "contact_create_failed",
            extra=build_log_context(business_id=business_id, action="create_contact"),
        )
        raise AppointmentStoreError("Failed to create contact") from exc

    status = AppointmentStatus.CONFIRMED if template and template.auto_confirm else AppointmentStatus.PENDING
    base_fields = {
        "business_id": business_id,
        "contact_id": contact_id,
        "template_id": template.id if template else None,
        "duration_minutes": duration_minutes,
        "service_type": service_type,
        "notes": notes,
        "status": status.value,
        "recurrence_pattern": pattern.value,
        "recurrence_end_date": recurrence_end_date if pattern != RecurrencePattern.NONE else None,
    }

    if pattern == RecurrencePattern.NONE:
        try:
            appointment = appointment_store.insert_appointment(
                db, {**base_fields, "scheduled_at": scheduled_at}
            )
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception(
                "appointment_create_failed",
                extra=build_log_context(business_id=business_id, action="create"),
            )
            raise AppointmentStoreError("Failed to create appointment") from exc
        result = BookingResult([appointment], conflicts)
    else:
        result = _create_series(db, base_fields, scheduled_at, pattern, recurrence_end_date, conflicts)

    logger.info(
        "appointment_created",
        extra=build_log_context(
            business_id=business_id,
            appointment_id=result.appointment.id,
            action="create",
            count=len(result.appointments),
        ),
    )
    calendar_sync.notify_many(result.ids)
    return result


def _create_series(
    db: Session,
    base_fields: dict,
    scheduled_at: datetime,
    pattern: RecurrencePattern,
    end_date: date,
    conflicts: list[ConflictingAppointment],
) -> BookingResult:
    """
    Parent row first, then all children in one insert.

    When the children fail the parent normally stays behind and the error
    says so; RECURRENCE_COMPENSATING_CLEANUP removes it instead.
    """
    expansion = recurrence_service.expand(
        scheduled_at, pattern, end_date, max_occurrences=settings.recurrence_occurrence_cap
    )
    business_id = base_fields["business_id"]

    try:
        parent = appointment_store.insert_appointment(
            db, {**base_fields, "scheduled_at": expansion.dates[0]}
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "series_parent_create_failed",
            extra=build_log_context(business_id=business_id, action="create_series"),
        )
        raise AppointmentStoreError("Failed to create appointment") from exc

    child_rows = [
        {**base_fields, "scheduled_at": occurrence, "recurrence_parent_id": parent.id}
        for occurrence in expansion.dates[1:]
    ]
    try:
        children = appointment_store.insert_appointments(db, child_rows)
    except SQLAlchemyError as exc:
        db.rollback()
        parent_removed = False
        if settings.RECURRENCE_COMPENSATING_CLEANUP:
            try:
                appointment_store.delete_appointment(db, parent.id)
                parent_removed = True
            except SQLAlchemyError:
                db.rollback()
                logger.exception(
                    "series_cleanup_failed",
                    extra=build_log_context(
                        business_id=business_id, appointment_id=parent.id, action="create_series"
                    ),
                )
        logger.error(
            "series_children_create_failed",
            extra={
                **build_log_context(
                    business_id=business_id,
                    appointment_id=parent.id,
                    action="create_series",
                    count=0 if parent_removed else 1,
                ),
                "expected_count": expansion.count,
                "parent_removed": parent_removed,
            },
            exc_info=True,
        )
        raise PartialSeriesError(
            parent_id=parent.id,
            created_count=0 if parent_removed else 1,
            expected_count=expansion.count,
            parent_removed=parent_removed,
        ) from exc

    return BookingResult([parent, *children], conflicts, expansion.truncated)


# =============================================================================
# Edit / status / delete
# =============================================================================

def update_appointment(
    db: Session,
    business_id: UUID,
    appointment_id: UUID,
    scheduled_at: datetime | None = None,
    duration_minutes: int | None = None,
    service_type: str | None = None,
    notes: str | None = None,
    status: AppointmentStatus | str | None = None,
    acknowledge_conflicts: bool = False,
) -> tuple[Appointment, list[ConflictingAppointment]]:
    """
    Edit an appointment. Only given fields change.

    A new start or duration, or a cancelled appointment made active again,
    is conflict-checked against everything except the appointment itself.
    """
    appointment = _require_appointment(db, business_id, appointment_id)

    fields: dict = {}
    if scheduled_at is not None:
        fields["scheduled_at"] = scheduled_at
    if duration_minutes is not None:
        fields["duration_minutes"] = duration_minutes
    if service_type is not None:
        fields["service_type"] = _clean_text(service_type)
    if notes is not None:
        fields["notes"] = _clean_text(notes)
    if status is not None:
        fields["status"] = AppointmentStatus(status).value
    _validate_fields(duration_minutes, fields.get("service_type"), fields.get("notes"))

    conflicts: list[ConflictingAppointment] = []
    new_start = fields.get("scheduled_at", appointment.scheduled_at)
    new_duration = fields.get("duration_minutes", appointment.duration_minutes)
    new_status = fields.get("status", appointment.status)
    timing_changed = (
        new_start != appointment.scheduled_at or new_duration != appointment.duration_minutes
    )
    if timing_changed:
        _validate_same_day(new_start, new_duration)
    reactivated = (
        appointment.status == AppointmentStatus.CANCELLED.value
        and new_status != AppointmentStatus.CANCELLED.value
    )
    if (timing_changed or reactivated) and new_status != AppointmentStatus.CANCELLED.value:
        conflicts = _guard_conflicts(
            db, business_id, new_start, new_duration, acknowledge_conflicts, appointment.id
        )

    if not fields:
        return appointment, conflicts

    try:
        appointment_store.update_appointment(db, appointment.id, fields)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "appointment_update_failed",
            extra=build_log_context(
                business_id=business_id, appointment_id=appointment_id, action="update"
            ),
        )
        raise AppointmentStoreError("Failed to update appointment") from exc

    db.refresh(appointment)
    logger.info(
        "appointment_updated",
        extra=build_log_context(business_id=business_id, appointment_id=appointment_id, action="update"),
    )
    calendar_sync.notify_many([appointment.id])
    return appointment, conflicts


def change_status(
    db: Session,
    business_id: UUID,
    appointment_id: UUID,
    status: AppointmentStatus | str,
) -> Appointment:
    """Set the status of one appointment (no conflict check)."""
    appointment = _require_appointment(db, business_id, appointment_id)
    new_status = AppointmentStatus(status)
    try:
        appointment_store.update_appointment(db, appointment.id, {"status": new_status.value})
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "appointment_status_failed",
            extra=build_log_context(
                business_id=business_id, appointment_id=appointment_id, action=f"status:{new_status.value}"
            ),
        )
        raise AppointmentStoreError("Failed to update appointment") from exc
    db.refresh(appointment)
    return appointment


def delete_appointment(db: Session, business_id: UUID, appointment_id: UUID) -> None:
    """Hard-delete one appointment; its generated children become standalone."""
    appointment = _require_appointment(db, business_id, appointment_id)
    try:
        appointment_store.delete_appointment(db, appointment.id)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "appointment_delete_failed",
            extra=build_log_context(
                business_id=business_id, appointment_id=appointment_id, action="delete"
            ),
        )
        raise AppointmentStoreError("Failed to delete appointment") from exc
    logger.info(
        "appointment_deleted",
        extra=build_log_context(business_id=business_id, appointment_id=appointment_id, action="delete"),
    )


# =============================================================================
# Duplicate / move
# =============================================================================

def default_duplicate_target(appointment: Appointment, now: datetime | None = None) -> DuplicateTarget:
    """Tomorrow at the original time of day."""
    today = (now or business_now()).date()
    return DuplicateTarget(today + timedelta(days=1), format_hhmm(appointment.scheduled_at))


def duplicate_appointment(
    db: Session,
    business_id: UUID,
    appointment_id: UUID,
    day: date | None = None,
    hhmm: str | None = None,
    acknowledge_conflicts: bool = False,
    now: datetime | None = None,
) -> BookingResult:
    """
    Copy an appointment to another day/time as a new pending booking.

    Contact, duration, service type and notes carry over; the copy is never
    part of a series.
    """
    source = _require_appointment(db, business_id, appointment_id)
    target = default_duplicate_target(source, now)
    try:
        scheduled_at = at_time(day or target.day, hhmm or target.time)
    except ValueError as exc:
        raise AppointmentValidationError(str(exc)) from exc
    _validate_same_day(scheduled_at, source.duration_minutes)

    conflicts = _guard_conflicts(
        db, business_id, scheduled_at, source.duration_minutes, acknowledge_conflicts
    )

    try:
        copy = appointment_store.insert_appointment(
            db,
            {
                "business_id": business_id,
                "contact_id": source.contact_id,
                "template_id": source.template_id,
                "scheduled_at": scheduled_at,
                "duration_minutes": source.duration_minutes,
                "service_type": source.service_type,
                "notes": source.notes,
                "status": AppointmentStatus.PENDING.value,
                "recurrence_pattern": RecurrencePattern.NONE.value,
            },
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "appointment_duplicate_failed",
            extra=build_log_context(
                business_id=business_id, appointment_id=appointment_id, action="duplicate"
            ),
        )
        raise AppointmentStoreError("Failed to duplicate appointment") from exc

    logger.info(
        "appointment_duplicated",
        extra=build_log_context(business_id=business_id, appointment_id=copy.id, action="duplicate"),
    )
    calendar_sync.notify_many([copy.id])
    return BookingResult([copy], conflicts)


def move_appointment(
    db: Session,
    business_id: UUID,
    appointment_id: UUID,
    new_day: date,
    acknowledge_conflicts: bool = False,
) -> tuple[Appointment, list[ConflictingAppointment]]:
    """Drag-to-day: same time of day on another date."""
    appointment = _require_appointment(db, business_id, appointment_id)
    scheduled_at = datetime.combine(new_day, appointment.scheduled_at.time())
    return update_appointment(
        db,
        business_id,
        appointment.id,
        scheduled_at=scheduled_at,
        acknowledge_conflicts=acknowledge_conflicts,
    )


# =============================================================================
# Queries
# =============================================================================

def get_appointment(db: Session, business_id: UUID, appointment_id: UUID) -> Appointment | None:
    """Get appointment by ID."""
    return appointment_store.get_appointment(db, business_id, appointment_id)


def list_appointments(
    db: Session,
    business_id: UUID,
    list_query: AppointmentListQuery,
) -> tuple[list[Appointment], int]:
    """One page of the business's appointments plus the filtered total."""
    if list_query.inverted:
        raise AppointmentValidationError("date_end must be on or after date_start")
    query = db.query(Appointment).filter(Appointment.business_id == business_id)
    return list_query.fetch(query)


def status_counts(db: Session, business_id: UUID) -> dict[str, int]:
    """Number of appointments per status; every status is present."""
    counts = {status.value: 0 for status in AppointmentStatus}
    rows = db.query(Appointment.status, func.count(Appointment.id)).filter(
        Appointment.business_id == business_id,
    ).group_by(Appointment.status).all()
    for status, count in rows:
        counts[status] = count
    return counts
