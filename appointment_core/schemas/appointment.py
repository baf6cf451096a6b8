"""Appointment schemas - Pydantic models for the scheduling API."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from appointment_core.core.config import settings
from appointment_core.core.constants import (
    DEFAULT_TEMPLATE_COLOR,
    MAX_DURATION_MINUTES,
    NOTES_MAX_LENGTH,
    SERVICE_TYPE_MAX_LENGTH,
    TEMPLATE_NAME_MAX_LENGTH,
)
from appointment_core.db.enums import (
    AppointmentStatus,
    BatchAction,
    DayLoad,
    RecurrencePattern,
    RescheduleSlotState,
    SlotStatus,
)

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


def to_business_local(value: datetime | None) -> datetime | None:
    """Offset-aware input is converted to naive business-local wall clock."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(settings.business_tz).replace(tzinfo=None)


# =============================================================================
# Appointments
# =============================================================================

class AppointmentCreate(BaseModel):
    """Schema for booking an appointment (single or recurring)."""
    scheduled_at: datetime
    duration_minutes: int | None = Field(None, ge=1, le=MAX_DURATION_MINUTES)
    contact_id: UUID | None = None
    new_contact_phone: str | None = Field(None, min_length=5, max_length=32)
    new_contact_name: str | None = Field(None, max_length=255)
    service_type: str | None = Field(None, max_length=SERVICE_TYPE_MAX_LENGTH)
    notes: str | None = Field(None, max_length=NOTES_MAX_LENGTH)
    template_id: UUID | None = None
    recurrence_pattern: RecurrencePattern | None = None
    recurrence_end_date: date | None = None
    acknowledge_conflicts: bool = False

    normalize_scheduled_at = field_validator("scheduled_at")(to_business_local)


class AppointmentUpdate(BaseModel):
    """Schema for editing an appointment; omitted fields stay unchanged."""
    scheduled_at: datetime | None = None
    duration_minutes: int | None = Field(None, ge=1, le=MAX_DURATION_MINUTES)
    service_type: str | None = Field(None, max_length=SERVICE_TYPE_MAX_LENGTH)
    notes: str | None = Field(None, max_length=NOTES_MAX_LENGTH)
    status: AppointmentStatus | None = None
    acknowledge_conflicts: bool = False

    normalize_scheduled_at = field_validator("scheduled_at")(to_business_local)


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus


class AppointmentDuplicate(BaseModel):
    """Target of a duplicate; defaults to tomorrow at the original time."""
    day: date | None = None
    time: str | None = Field(None, pattern=HHMM_PATTERN, description="HH:MM format")
    acknowledge_conflicts: bool = False


class AppointmentMove(BaseModel):
    """Drag-to-day move; the time of day is kept."""
    day: date
    acknowledge_conflicts: bool = False


class AppointmentReschedule(BaseModel):
    """Quick reschedule pick."""
    day: date
    time: str = Field(..., pattern=HHMM_PATTERN, description="HH:MM format")


class ContactSummary(BaseModel):
    id: UUID
    name: str | None
    phone_number: str


class AppointmentRead(BaseModel):
    """Schema for reading an appointment."""
    id: UUID
    business_id: UUID
    contact_id: UUID | None
    contact: ContactSummary | None = None
    template_id: UUID | None
    scheduled_at: datetime
    scheduled_end: datetime
    duration_minutes: int
    service_type: str | None
    notes: str | None
    status: AppointmentStatus
    recurrence_pattern: RecurrencePattern
    recurrence_end_date: date | None
    recurrence_parent_id: UUID | None
    created_at: datetime
    updated_at: datetime


class AppointmentListResponse(BaseModel):
    """Schema for appointment list response."""
    items: list[AppointmentRead]
    total: int
    page: int
    per_page: int
    pages: int


class StatusCountsRead(BaseModel):
    pending: int = 0
    confirmed: int = 0
    completed: int = 0
    cancelled: int = 0


# =============================================================================
# Conflicts
# =============================================================================

class ConflictCheckRequest(BaseModel):
    """Advisory conflict check for a candidate interval."""
    scheduled_at: datetime
    duration_minutes: int = Field(60, ge=1, le=MAX_DURATION_MINUTES)
    exclude_appointment_id: UUID | None = None

    normalize_scheduled_at = field_validator("scheduled_at")(to_business_local)


class ConflictRead(BaseModel):
    """An existing appointment overlapping the candidate."""
    id: UUID
    scheduled_at: datetime
    end: datetime
    duration_minutes: int
    service_type: str | None
    contact_name: str | None
    contact_phone: str | None


class ConflictCheckResponse(BaseModel):
    has_conflicts: bool
    conflicts: list[ConflictRead]


class BookingResponse(BaseModel):
    """Result of a create or duplicate action."""
    appointments: list[AppointmentRead]
    count: int
    truncated: bool = False
    conflicts: list[ConflictRead] = []


class AppointmentUpdateResponse(BaseModel):
    appointment: AppointmentRead
    conflicts: list[ConflictRead] = []


# =============================================================================
# Batch
# =============================================================================

class BatchActionRequest(BaseModel):
    """Toolbar action over selected appointments."""
    ids: list[UUID] = Field(default_factory=list, max_length=1000)
    action: BatchAction


class BatchActionResponse(BaseModel):
    action: BatchAction
    requested: int
    affected: int


# =============================================================================
# Slots / reschedule grid / day load
# =============================================================================

class SlotRead(BaseModel):
    time: str
    start: datetime
    end: datetime
    status: SlotStatus
    requires_confirmation: bool
    conflicts: list[ConflictRead] = []


class SlotGridResponse(BaseModel):
    day: date
    duration_minutes: int
    slots: list[SlotRead]


class RescheduleCellRead(BaseModel):
    time: str
    start: datetime
    state: RescheduleSlotState


class RescheduleDayRead(BaseModel):
    day: date
    open_count: int
    open_level: str
    cells: list[RescheduleCellRead]


class RescheduleGridResponse(BaseModel):
    appointment_id: UUID
    offset: int
    previous_offset: int
    next_offset: int
    can_page_back: bool
    days: list[RescheduleDayRead]


class BusyBarRead(BaseModel):
    appointment_id: UUID
    left: float
    width: float
    start: datetime
    end: datetime
    status: str


class DayLoadResponse(BaseModel):
    day: date
    appointment_count: int
    total_minutes: int
    level: DayLoad
    busy_minutes_by_hour: dict[int, int]
    bars: list[BusyBarRead]


# =============================================================================
# Templates
# =============================================================================

class TemplateCreate(BaseModel):
    """Schema for creating an appointment template."""
    name: str = Field(..., min_length=1, max_length=TEMPLATE_NAME_MAX_LENGTH)
    service_type: str | None = Field(None, max_length=SERVICE_TYPE_MAX_LENGTH)
    duration_minutes: int = Field(60, ge=1, le=MAX_DURATION_MINUTES)
    notes: str | None = Field(None, max_length=NOTES_MAX_LENGTH)
    default_recurrence_pattern: RecurrencePattern = RecurrencePattern.NONE
    color: str = Field(DEFAULT_TEMPLATE_COLOR, pattern=r"^#[0-9a-fA-F]{6}$")
    is_active: bool = True
    auto_confirm: bool = False


class TemplateUpdate(BaseModel):
    """Schema for updating an appointment template."""
    name: str | None = Field(None, min_length=1, max_length=TEMPLATE_NAME_MAX_LENGTH)
    service_type: str | None = Field(None, max_length=SERVICE_TYPE_MAX_LENGTH)
    duration_minutes: int | None = Field(None, ge=1, le=MAX_DURATION_MINUTES)
    notes: str | None = Field(None, max_length=NOTES_MAX_LENGTH)
    default_recurrence_pattern: RecurrencePattern | None = None
    color: str | None = Field(None, pattern=r"^#[0-9a-fA-F]{6}$")
    is_active: bool | None = None
    auto_confirm: bool | None = None


class TemplateRead(BaseModel):
    """Schema for reading an appointment template."""
    id: UUID
    business_id: UUID
    name: str
    service_type: str | None
    duration_minutes: int
    notes: str | None
    default_recurrence_pattern: RecurrencePattern
    color: str
    is_active: bool
    auto_confirm: bool
    created_at: datetime
    updated_at: datetime
