"""Appointment templates - reusable booking defaults per business."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from appointment_core.core.constants import (
    DEFAULT_DURATION_MINUTES,
    DEFAULT_TEMPLATE_COLOR,
    NOTES_MAX_LENGTH,
    SERVICE_TYPE_MAX_LENGTH,
    TEMPLATE_NAME_MAX_LENGTH,
)
from appointment_core.core.structured_logging import build_log_context
from appointment_core.db.enums import RecurrencePattern
from appointment_core.db.models import AppointmentTemplate
from appointment_core.services.exceptions import (
    AppointmentValidationError,
    TemplateNotFoundError,
)

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = {
    "name",
    "service_type",
    "duration_minutes",
    "notes",
    "default_recurrence_pattern",
    "color",
    "is_active",
    "auto_confirm",
}


def _validate(
    name: str | None,
    service_type: str | None,
    duration_minutes: int | None,
    notes: str | None,
) -> None:
    if name is not None:
        if not name.strip():
            raise AppointmentValidationError("Template name is required")
        if len(name) > TEMPLATE_NAME_MAX_LENGTH:
            raise AppointmentValidationError(
                f"Template name must be {TEMPLATE_NAME_MAX_LENGTH} characters or less"
            )
    if service_type and len(service_type) > SERVICE_TYPE_MAX_LENGTH:
        raise AppointmentValidationError(
            f"Service type must be {SERVICE_TYPE_MAX_LENGTH} characters or less"
        )
    if notes and len(notes) > NOTES_MAX_LENGTH:
        raise AppointmentValidationError(f"Notes must be {NOTES_MAX_LENGTH} characters or less")
    if duration_minutes is not None and duration_minutes <= 0:
        raise AppointmentValidationError("Duration must be positive")


def create_template(
    db: Session,
    business_id: UUID,
    name: str,
    service_type: str | None = None,
    duration_minutes: int = DEFAULT_DURATION_MINUTES,
    notes: str | None = None,
    default_recurrence_pattern: RecurrencePattern | str = RecurrencePattern.NONE,
    color: str = DEFAULT_TEMPLATE_COLOR,
    is_active: bool = True,
    auto_confirm: bool = False,
) -> AppointmentTemplate:
    """Create a template for a business."""
    _validate(name, service_type, duration_minutes, notes)
    template = AppointmentTemplate(
        business_id=business_id,
        name=name.strip(),
        service_type=service_type,
        duration_minutes=duration_minutes,
        notes=notes,
        default_recurrence_pattern=RecurrencePattern(default_recurrence_pattern).value,
        color=color,
        is_active=is_active,
        auto_confirm=auto_confirm,
    )
    db.add(template)
    db.commit()
    db.refresh(template)
    logger.info(
        "template_created",
        extra=build_log_context(business_id=business_id, action="template_create"),
    )
    return template


def get_template(db: Session, business_id: UUID, template_id: UUID) -> AppointmentTemplate | None:
    """Get template by ID within a business."""
    return db.query(AppointmentTemplate).filter(
        AppointmentTemplate.id == template_id,
        AppointmentTemplate.business_id == business_id,
    ).first()


def get_active_template(db: Session, business_id: UUID, template_id: UUID) -> AppointmentTemplate:
    """Template usable for booking; inactive or missing templates raise."""
    template = get_template(db, business_id, template_id)
    if not template or not template.is_active:
        raise TemplateNotFoundError("Template not found or inactive")
    return template


def list_templates(
    db: Session,
    business_id: UUID,
    active_only: bool = False,
) -> list[AppointmentTemplate]:
    """List templates of a business by name."""
    query = db.query(AppointmentTemplate).filter(
        AppointmentTemplate.business_id == business_id,
    )
    if active_only:
        query = query.filter(AppointmentTemplate.is_active.is_(True))
    return query.order_by(AppointmentTemplate.name.asc()).all()


def update_template(
    db: Session,
    business_id: UUID,
    template_id: UUID,
    **fields,
) -> AppointmentTemplate:
    """Update the given fields of a template."""
    template = get_template(db, business_id, template_id)
    if not template:
        raise TemplateNotFoundError("Template not found")

    unknown = set(fields) - _UPDATABLE_FIELDS
    if unknown:
        raise AppointmentValidationError(f"Unknown template fields: {', '.join(sorted(unknown))}")
    _validate(
        fields.get("name"),
        fields.get("service_type"),
        fields.get("duration_minutes"),
        fields.get("notes"),
    )

    for key, value in fields.items():
        if key == "name":
            value = value.strip()
        setattr(template, key, value)
    db.commit()
    db.refresh(template)
    return template


def toggle_active(db: Session, business_id: UUID, template_id: UUID) -> AppointmentTemplate:
    """Flip is_active; inactive templates are hidden from booking."""
    template = get_template(db, business_id, template_id)
    if not template:
        raise TemplateNotFoundError("Template not found")
    template.is_active = not template.is_active
    db.commit()
    db.refresh(template)
    return template


def delete_template(db: Session, business_id: UUID, template_id: UUID) -> None:
    """Delete a template; appointments booked from it keep their values."""
    template = get_template(db, business_id, template_id)
    if not template:
        raise TemplateNotFoundError("Template not found")
    db.delete(template)
    db.commit()
    logger.info(
        "template_deleted",
        extra=build_log_context(business_id=business_id, action="template_delete"),
    )
