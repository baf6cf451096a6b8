"""Appointments router - API endpoints for scheduling within a business.

Endpoints for staff to:
- Book single and recurring appointments (with conflict acknowledgment)
- Edit, move, duplicate, reschedule and delete appointments
- Run batch status changes
- Read slot availability and day load
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from appointment_core.core.config import settings
from appointment_core.core.deps import get_business, get_db
from appointment_core.db.models import Appointment, Business
from appointment_core.schemas.appointment import (
    AppointmentCreate,
    AppointmentDuplicate,
    AppointmentListResponse,
    AppointmentMove,
    AppointmentRead,
    AppointmentReschedule,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    AppointmentUpdateResponse,
    BatchActionRequest,
    BatchActionResponse,
    BookingResponse,
    BusyBarRead,
    ConflictCheckRequest,
    ConflictCheckResponse,
    ConflictRead,
    ContactSummary,
    DayLoadResponse,
    RescheduleCellRead,
    RescheduleDayRead,
    RescheduleGridResponse,
    SlotGridResponse,
    SlotRead,
    StatusCountsRead,
)
from appointment_core.services import (
    appointment_service,
    appointment_store,
    batch_service,
    conflict_service,
    reschedule_service,
    slot_service,
)
from appointment_core.services.conflict_service import ConflictingAppointment
from appointment_core.utils.intervals import business_now, day_bounds
from appointment_core.utils.appointment_list import AppointmentListQuery, get_list_query

router = APIRouter()


# =============================================================================
# Helper Functions
# =============================================================================

def _appointment_to_read(appt: Appointment) -> AppointmentRead:
    """Convert Appointment model to read schema."""
    contact = appt.contact
    return AppointmentRead(
        id=appt.id,
        business_id=appt.business_id,
        contact_id=appt.contact_id,
        contact=ContactSummary(
            id=contact.id, name=contact.name, phone_number=contact.phone_number
        ) if contact else None,
        template_id=appt.template_id,
        scheduled_at=appt.scheduled_at,
        scheduled_end=appt.scheduled_end,
        duration_minutes=appt.duration_minutes,
        service_type=appt.service_type,
        notes=appt.notes,
        status=appt.status,
        recurrence_pattern=appt.recurrence_pattern,
        recurrence_end_date=appt.recurrence_end_date,
        recurrence_parent_id=appt.recurrence_parent_id,
        created_at=appt.created_at,
        updated_at=appt.updated_at,
    )


def conflict_to_read(conflict: ConflictingAppointment) -> ConflictRead:
    """Convert a conflict summary to read schema."""
    return ConflictRead(
        id=conflict.id,
        scheduled_at=conflict.scheduled_at,
        end=conflict.end,
        duration_minutes=conflict.duration_minutes,
        service_type=conflict.service_type,
        contact_name=conflict.contact_name,
        contact_phone=conflict.contact_phone,
    )


def _require_appointment(db: Session, business_id: UUID, appointment_id: UUID) -> Appointment:
    appt = appointment_store.get_appointment(db, business_id, appointment_id)
    if not appt:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return appt


# =============================================================================
# Collection endpoints (declared before /{appointment_id})
# =============================================================================

@router.get("/appointments", response_model=AppointmentListResponse)
def list_appointments(
    business: Business = Depends(get_business),
    db: Session = Depends(get_db),
    list_query: AppointmentListQuery = Depends(get_list_query),
):
    """List appointments of the business by start time."""
    appointments, total = appointment_service.list_appointments(db, business.id, list_query)
    return AppointmentListResponse(
        items=[_appointment_to_read(a) for a in appointments],
        total=total,
        page=list_query.page,
        per_page=list_query.per_page,
        pages=list_query.page_count(total),
    )


@router.get("/appointments/status-counts", response_model=StatusCountsRead)
def get_status_counts(
    business: Business = Depends(get_business),
    db: Session = Depends(get_db),
):
    """Appointment counts per status for the filter tabs."""
    return StatusCountsRead(**appointment_service.status_counts(db, business.id))


@router.post("/appointments", response_model=BookingResponse, status_code=201)
def create_appointment(
    data: AppointmentCreate,
    business: Business = Depends(get_business),
    db: Session = Depends(get_db),
):
    """
    Book a single appointment or a recurring series.

    Returns 409 with the conflicting appointments unless acknowledge_conflicts is set.
    """
    result = appointment_service.create_appointment(
        db=db,
        business_id=business.id,
        scheduled_at=data.scheduled_at,
        duration_minutes=data.duration_minutes,
        contact_id=data.contact_id,
        new_contact_phone=data.new_contact_phone,
        new_contact_name=data.new_contact_name,
        service_type=data.service_type,
        notes=data.notes,
        template_id=data.template_id,
        recurrence_pattern=data.recurrence_pattern,
        recurrence_end_date=data.recurrence_end_date,
        acknowledge_conflicts=data.acknowledge_conflicts,
    )
    return BookingResponse(
        appointments=[_appointment_to_read(a) for a in result.appointments],
        count=len(result.appointments),
        truncated=result.truncated,
        conflicts=[conflict_to_read(c) for c in result.conflicts],
    )


@router.post("/appointments/conflicts", response_model=ConflictCheckResponse)
def check_conflicts(
    data: ConflictCheckRequest,
    business: Business = Depends(get_business),
    db: Session = Depends(get_db),
):
    """Advisory overlap check for a candidate start and duration."""
    conflicts = conflict_service.check_conflicts(
        db,
        business.id,
        data.scheduled_at,
        data.duration_minutes,
        data.exclude_appointment_id,
    )
    return ConflictCheckResponse(
        has_conflicts=bool(conflicts),
        conflicts=[conflict_to_read(c) for c in conflicts],
    )


@router.post("/appointments/batch", response_model=BatchActionResponse)
def run_batch_action(
    data: BatchActionRequest,
    business: Business = Depends(get_business),
    db: Session = Depends(get_db),
):
    """Apply a toolbar action to the selected appointments of this business."""
    # Only ids that belong to this business are touched
    owned_ids = []
    if data.ids:
        owned_ids = [
            row.id for row in db.query(Appointment.id).filter(
                Appointment.business_id == business.id,
                Appointment.id.in_(data.ids),
            ).all()
        ]
    selection = batch_service.SelectionSet(owned_ids)
    affected = batch_service.run_batch_action(db, selection, data.action)
    return BatchActionResponse(action=data.action, requested=len(data.ids), affected=affected)


# =============================================================================
# Single appointment endpoints
# =============================================================================

@router.get("/appointments/{appointment_id}", response_model=AppointmentRead)
def get_appointment(
    appointment_id: UUID,
    business: Business = Depends(get_business),
    db: Session = Depends(get_db),
):
    """Get appointment details."""
    return _appointment_to_read(_require_appointment(db, business.id, appointment_id))


@router.patch("/appointments/{appointment_id}", response_model=AppointmentUpdateResponse)
def update_appointment(
    appointment_id: UUID,
    data: AppointmentUpdate,
    business: Business = Depends(get_business),
    db: Session = Depends(get_db),
):
    """Edit date/time, duration, service, notes or status."""
    appt, conflicts = appointment_service.update_appointment(
        db=db,
        business_id=business.id,
        appointment_id=appointment_id,
        scheduled_at=data.scheduled_at,
        duration_minutes=data.duration_minutes,
        service_type=data.service_type,
        notes=data.notes,
        status=data.status,
        acknowledge_conflicts=data.acknowledge_conflicts,
    )
    return AppointmentUpdateResponse(
        appointment=_appointment_to_read(appt),
        conflicts=[conflict_to_read(c) for c in conflicts],
    )


@router.post("/appointments/{appointment_id}/status", response_model=AppointmentRead)
def change_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    business: Business = Depends(get_business),
    db: Session = Depends(get_db),
):
    """Confirm, complete or cancel one appointment."""
    appt = appointment_service.change_status(db, business.id, appointment_id, data.status)
    return _appointment_to_read(appt)


@router.delete("/appointments/{appointment_id}", status_code=204)
def delete_appointment(
    appointment_id: UUID,
    business: Business = Depends(get_business),
    db: Session = Depends(get_db),
):
    """Delete an appointment permanently."""
    appointment_service.delete_appointment(db, business.id, appointment_id)


@router.post("/appointments/{appointment_id}/duplicate", response_model=BookingResponse, status_code=201)
def duplicate_appointment(
    appointment_id: UUID,
    data: AppointmentDuplicate,
    business: Business = Depends(get_business),
    db: Session = Depends(get_db),
):
    """Copy an appointment to another day and time (default: tomorrow, same time)."""
    result = appointment_service.duplicate_appointment(
        db=db,
        business_id=business.id,
        appointment_id=appointment_id,
        day=data.day,
        hhmm=data.time,
        acknowledge_conflicts=data.acknowledge_conflicts,
    )
    return BookingResponse(
        appointments=[_appointment_to_read(a) for a in result.appointments],
        count=len(result.appointments),
        conflicts=[conflict_to_read(c) for c in result.conflicts],
    )


@router.post("/appointments/{appointment_id}/move", response_model=AppointmentUpdateResponse)
def move_appointment(
    appointment_id: UUID,
    data: AppointmentMove,
    business: Business = Depends(get_business),
    db: Session = Depends(get_db),
):
    """Move an appointment to another day, keeping its time of day."""
    appt, conflicts = appointment_service.move_appointment(
        db=db,
        business_id=business.id,
        appointment_id=appointment_id,
        new_day=data.day,
        acknowledge_conflicts=data.acknowledge_conflicts,
    )
    return AppointmentUpdateResponse(
        appointment=_appointment_to_read(appt),
        conflicts=[conflict_to_read(c) for c in conflicts],
    )


@router.get("/appointments/{appointment_id}/reschedule-grid", response_model=RescheduleGridResponse)
def get_reschedule_grid(
    appointment_id: UUID,
    offset: int = Query(0, ge=0),
    days: int = Query(settings.QUICK_RESCHEDULE_DAYS, ge=1, le=14),
    business: Business = Depends(get_business),
    db: Session = Depends(get_db),
):
    """Quick reschedule picker for the next `days` days starting `offset` days from today."""
    appt = _require_appointment(db, business.id, appointment_id)
    grid = reschedule_service.load_reschedule_grid(
        db, business.id, appt, now=business_now(), offset=offset, days=days
    )
    return RescheduleGridResponse(
        appointment_id=grid.appointment_id,
        offset=grid.offset,
        previous_offset=reschedule_service.previous_offset(grid.offset, days),
        next_offset=reschedule_service.next_offset(grid.offset, days),
        can_page_back=grid.can_page_back,
        days=[
            RescheduleDayRead(
                day=column.day,
                open_count=column.open_count,
                open_level=column.open_level,
                cells=[
                    RescheduleCellRead(time=cell.time, start=cell.start, state=cell.state)
                    for cell in column.cells
                ],
            )
            for column in grid.days
        ],
    )


@router.post("/appointments/{appointment_id}/reschedule", response_model=AppointmentRead)
def reschedule_appointment(
    appointment_id: UUID,
    data: AppointmentReschedule,
    business: Business = Depends(get_business),
    db: Session = Depends(get_db),
):
    """Move an appointment to a selectable quick-reschedule slot."""
    appt = reschedule_service.apply_reschedule(
        db, business.id, appointment_id, data.day, data.time, now=business_now()
    )
    return _appointment_to_read(appt)


# =============================================================================
# Availability
# =============================================================================

@router.get("/slots", response_model=SlotGridResponse)
def get_slots(
    day: date,
    duration: int = Query(settings.DEFAULT_DURATION_MINUTES, ge=1, le=24 * 60),
    slot_minutes: int = Query(settings.SLOT_INTERVAL_MINUTES, ge=5, le=60),
    exclude_appointment_id: UUID | None = None,
    business: Business = Depends(get_business),
    db: Session = Depends(get_db),
):
    """Availability of every slot of the working window for a candidate duration."""
    grid = slot_service.load_day_grid(
        db,
        business.id,
        day,
        duration,
        start_hour=settings.SLOT_START_HOUR,
        end_hour=settings.SLOT_END_HOUR,
        slot_minutes=slot_minutes,
        exclude_appointment_id=exclude_appointment_id,
    )
    return SlotGridResponse(
        day=grid.day,
        duration_minutes=grid.duration_minutes,
        slots=[
            SlotRead(
                time=slot.time,
                start=slot.start,
                end=slot.end,
                status=slot.status,
                requires_confirmation=slot.requires_confirmation,
                conflicts=[conflict_to_read(c) for c in slot.conflicts],
            )
            for slot in grid.slots
        ],
    )


@router.get("/day-load", response_model=DayLoadResponse)
def get_day_load(
    day: date,
    business: Business = Depends(get_business),
    db: Session = Depends(get_db),
):
    """Booked time of a day: total, per-hour minutes and timeline bars."""
    day_start, day_end = day_bounds(day)
    appointments = appointment_store.query_active_appointments(db, business.id, day_start, day_end)
    summary = slot_service.day_load(day, appointments)
    return DayLoadResponse(
        day=summary.day,
        appointment_count=summary.appointment_count,
        total_minutes=summary.total_minutes,
        level=summary.level,
        busy_minutes_by_hour={
            hour: slot_service.busy_minutes_in_hour(day, hour, appointments)
            for hour in range(settings.SLOT_START_HOUR, settings.SLOT_END_HOUR)
        },
        bars=[
            BusyBarRead(
                appointment_id=bar.appointment_id,
                left=bar.left,
                width=bar.width,
                start=bar.start,
                end=bar.end,
                status=bar.status,
            )
            for bar in slot_service.busy_bars(
                day, appointments, settings.SLOT_START_HOUR, settings.SLOT_END_HOUR
            )
        ],
    )
