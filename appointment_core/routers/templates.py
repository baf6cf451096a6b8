"""Templates router - reusable booking defaults for a business."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from appointment_core.core.deps import get_business, get_db
from appointment_core.db.models import AppointmentTemplate, Business
from appointment_core.schemas.appointment import TemplateCreate, TemplateRead, TemplateUpdate
from appointment_core.services import template_service

router = APIRouter()


def _template_to_read(template: AppointmentTemplate) -> TemplateRead:
    """Convert AppointmentTemplate model to read schema."""
    return TemplateRead(
        id=template.id,
        business_id=template.business_id,
        name=template.name,
        service_type=template.service_type,
        duration_minutes=template.duration_minutes,
        notes=template.notes,
        default_recurrence_pattern=template.default_recurrence_pattern,
        color=template.color,
        is_active=template.is_active,
        auto_confirm=template.auto_confirm,
        created_at=template.created_at,
        updated_at=template.updated_at,
    )


@router.get("/templates", response_model=list[TemplateRead])
def list_templates(
    active_only: bool = False,
    business: Business = Depends(get_business),
    db: Session = Depends(get_db),
):
    """List templates of the business."""
    templates = template_service.list_templates(db, business.id, active_only=active_only)
    return [_template_to_read(t) for t in templates]


@router.post("/templates", response_model=TemplateRead, status_code=201)
def create_template(
    data: TemplateCreate,
    business: Business = Depends(get_business),
    db: Session = Depends(get_db),
):
    """Create a template."""
    template = template_service.create_template(db, business.id, **data.model_dump())
    return _template_to_read(template)


@router.get("/templates/{template_id}", response_model=TemplateRead)
def get_template(
    template_id: UUID,
    business: Business = Depends(get_business),
    db: Session = Depends(get_db),
):
    """Get template details."""
    template = template_service.get_template(db, business.id, template_id)
    if not template:
        raise HTTPException(status_code=404, detail="Template not found")
    return _template_to_read(template)


@router.patch("/templates/{template_id}", response_model=TemplateRead)
def update_template(
    template_id: UUID,
    data: TemplateUpdate,
    business: Business = Depends(get_business),
    db: Session = Depends(get_db),
):
    """Update a template. Only fields present in the body change."""
    fields = data.model_dump(exclude_unset=True, exclude_none=True)
    template = template_service.update_template(db, business.id, template_id, **fields)
    return _template_to_read(template)


@router.post("/templates/{template_id}/toggle-active", response_model=TemplateRead)
def toggle_template_active(
    template_id: UUID,
    business: Business = Depends(get_business),
    db: Session = Depends(get_db),
):
    """Enable or disable a template for booking."""
    return _template_to_read(template_service.toggle_active(db, business.id, template_id))


@router.delete("/templates/{template_id}", status_code=204)
def delete_template(
    template_id: UUID,
    business: Business = Depends(get_business),
    db: Session = Depends(get_db),
):
    """Delete a template."""
    template_service.delete_template(db, business.id, template_id)
