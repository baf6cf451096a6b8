"""Service layer modules."""

from appointment_core.services.exceptions import (
    AppointmentNotFoundError,
    AppointmentServiceError,
    AppointmentStoreError,
    AppointmentValidationError,
    ConflictNotAcknowledgedError,
    ContactNotFoundError,
    PartialSeriesError,
    SlotUnavailableError,
    TemplateNotFoundError,
)

# Import service modules (not individual functions) for cleaner access
from appointment_core.services import appointment_store
from appointment_core.services import conflict_service
from appointment_core.services import recurrence_service
from appointment_core.services import slot_service
from appointment_core.services import reschedule_service
from appointment_core.services import batch_service
from appointment_core.services import template_service
from appointment_core.services import calendar_sync
from appointment_core.services import appointment_service

__all__ = [
    # Exceptions
    "AppointmentServiceError",
    "AppointmentValidationError",
    "AppointmentNotFoundError",
    "TemplateNotFoundError",
    "ContactNotFoundError",
    "SlotUnavailableError",
    "ConflictNotAcknowledgedError",
    "AppointmentStoreError",
    "PartialSeriesError",
    # Service modules
    "appointment_store",
    "conflict_service",
    "recurrence_service",
    "slot_service",
    "reschedule_service",
    "batch_service",
    "template_service",
    "calendar_sync",
    "appointment_service",
]
