"""Pydantic schemas for API request/response models."""

from appointment_core.schemas.appointment import (
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentRead,
    AppointmentUpdate,
    BatchActionRequest,
    BatchActionResponse,
    ConflictRead,
    SlotGridResponse,
    TemplateCreate,
    TemplateRead,
    TemplateUpdate,
)

__all__ = [
    # Appointments
    "AppointmentCreate",
    "AppointmentUpdate",
    "AppointmentRead",
    "AppointmentListResponse",
    "ConflictRead",
    # Batch
    "BatchActionRequest",
    "BatchActionResponse",
    # Slots
    "SlotGridResponse",
    # Templates
    "TemplateCreate",
    "TemplateUpdate",
    "TemplateRead",
]
