"""Scheduling service exceptions.

Routers translate these to HTTP errors; nothing here is raised for
advisory conflicts unless the caller asked for acknowledgment.
"""

from uuid import UUID


class AppointmentServiceError(Exception):
    """Base exception for appointment scheduling errors."""

    pass


class AppointmentValidationError(AppointmentServiceError, ValueError):
    """Input rejected before any store call."""

    pass


class AppointmentNotFoundError(AppointmentServiceError):
    """Appointment not found in the business."""

    pass


class TemplateNotFoundError(AppointmentServiceError):
    """Template not found or inactive."""

    pass


class ContactNotFoundError(AppointmentServiceError):
    """Contact not found in the business."""

    pass


class SlotUnavailableError(AppointmentServiceError, ValueError):
    """Selected slot cannot be booked (busy, past, or outside the window)."""

    pass


class ConflictNotAcknowledgedError(AppointmentServiceError):
    """Candidate overlaps existing appointments and the user has not confirmed."""

    def __init__(self, conflicts: list, message: str = "This time overlaps existing appointments"):
        super().__init__(message)
        self.conflicts = conflicts


class AppointmentStoreError(AppointmentServiceError):
    """Record store read/write failed."""

    pass


class PartialSeriesError(AppointmentStoreError):
    """Recurring parent was stored but its children were not."""

    def __init__(self, parent_id: UUID, created_count: int, expected_count: int, parent_removed: bool):
        super().__init__(
            f"Created {created_count} of {expected_count} recurring appointments"
        )
        self.parent_id = parent_id
        self.created_count = created_count
        self.expected_count = expected_count
        self.parent_removed = parent_removed
