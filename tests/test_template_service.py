"""
Tests for appointment templates.

Coverage:
- Create / list / update / toggle / delete
- Validation of names, durations and unknown fields
- Business scoping
"""

import pytest

from appointment_core.db.enums import RecurrencePattern
from appointment_core.services import template_service
from appointment_core.services.exceptions import (
    AppointmentValidationError,
    TemplateNotFoundError,
)


class TestTemplateService:
    """CRUD for booking templates."""

    def test_create_with_defaults(self, db, business):
        template = template_service.create_template(db, business.id, "  Haircut ")

        assert template.name == "Haircut"
        assert template.duration_minutes == 60
        assert template.default_recurrence_pattern == RecurrencePattern.NONE.value
        assert template.is_active
        assert not template.auto_confirm

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"name": "   "},
            {"name": "x" * 101},
            {"name": "Cut", "duration_minutes": 0},
            {"name": "Cut", "notes": "x" * 1001},
        ],
    )
    def test_create_rejects_invalid(self, db, business, kwargs):
        with pytest.raises(AppointmentValidationError):
            template_service.create_template(db, business.id, **kwargs)

    def test_list_sorted_and_filtered(self, db, business):
        template_service.create_template(db, business.id, "Color")
        template_service.create_template(db, business.id, "Beard", is_active=False)
        template_service.create_template(db, business.id, "Cut")

        assert [t.name for t in template_service.list_templates(db, business.id)] == ["Beard", "Color", "Cut"]
        assert [t.name for t in template_service.list_templates(db, business.id, active_only=True)] == [
            "Color", "Cut"
        ]

    def test_update_fields(self, db, business):
        template = template_service.create_template(db, business.id, "Cut")

        updated = template_service.update_template(
            db, business.id, template.id, duration_minutes=45, default_recurrence_pattern="weekly"
        )

        assert updated.duration_minutes == 45
        assert updated.default_recurrence_pattern == "weekly"

    def test_update_rejects_unknown_field(self, db, business):
        template = template_service.create_template(db, business.id, "Cut")
        with pytest.raises(AppointmentValidationError, match="color_code"):
            template_service.update_template(db, business.id, template.id, color_code="#ff0000")

    def test_toggle_active_hides_from_booking(self, db, business):
        template = template_service.create_template(db, business.id, "Cut")

        assert template_service.toggle_active(db, business.id, template.id).is_active is False
        with pytest.raises(TemplateNotFoundError):
            template_service.get_active_template(db, business.id, template.id)

        assert template_service.toggle_active(db, business.id, template.id).is_active is True
        assert template_service.get_active_template(db, business.id, template.id).id == template.id

    def test_delete(self, db, business):
        template = template_service.create_template(db, business.id, "Cut")
        template_service.delete_template(db, business.id, template.id)
        assert template_service.get_template(db, business.id, template.id) is None

    def test_scoped_to_business(self, db, business, other_business):
        template = template_service.create_template(db, business.id, "Cut")
        assert template_service.get_template(db, other_business.id, template.id) is None
        with pytest.raises(TemplateNotFoundError):
            template_service.delete_template(db, other_business.id, template.id)
