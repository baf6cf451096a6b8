"""
Tests for batch toolbar actions.

Coverage:
- SelectionSet membership and toolbar visibility
- Bulk status changes and deletes
- Empty selections never reach the store
- Selection cleared after success and failure
"""

import uuid
from datetime import datetime
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from appointment_core.db.enums import AppointmentStatus, BatchAction
from appointment_core.db.models import Appointment
from appointment_core.services import batch_service
from appointment_core.services.batch_service import SelectionSet
from appointment_core.services.exceptions import AppointmentStoreError


class TestSelectionSet:
    """Client-side selection state."""

    def test_toggle_adds_and_removes(self):
        selection = SelectionSet()
        appointment_id = uuid.uuid4()

        assert selection.toggle(appointment_id) is True
        assert appointment_id in selection
        assert selection.toolbar_visible

        assert selection.toggle(appointment_id) is False
        assert appointment_id not in selection
        assert selection.is_empty
        assert not selection.toolbar_visible

    def test_select_all_and_clear(self):
        ids = [uuid.uuid4() for _ in range(3)]
        selection = SelectionSet()
        selection.select_all(ids)
        assert len(selection) == 3
        assert selection.all_selected(3)
        assert not selection.all_selected(4)

        selection.clear()
        assert selection.is_empty

    def test_all_selected_false_for_empty_list(self):
        assert not SelectionSet().all_selected(0)

    def test_select_is_idempotent(self):
        appointment_id = uuid.uuid4()
        selection = SelectionSet([appointment_id])
        selection.select(appointment_id)
        assert len(selection) == 1
        selection.deselect(appointment_id)
        selection.deselect(appointment_id)
        assert selection.is_empty


class TestBatchActions:
    """Bulk writes through the record store."""

    def test_confirm_updates_every_selected_row(self, db, make_appointment):
        first = make_appointment(datetime(2030, 3, 4, 9))
        second = make_appointment(datetime(2030, 3, 4, 11))
        untouched = make_appointment(datetime(2030, 3, 4, 13))
        selection = SelectionSet([first.id, second.id])

        updated = batch_service.run_batch_action(db, selection, BatchAction.CONFIRM)

        assert updated == 2
        assert selection.is_empty
        statuses = {
            a.id: a.status for a in db.query(Appointment).filter(
                Appointment.id.in_([first.id, second.id, untouched.id])
            )
        }
        assert statuses[first.id] == AppointmentStatus.CONFIRMED.value
        assert statuses[second.id] == AppointmentStatus.CONFIRMED.value
        assert statuses[untouched.id] == AppointmentStatus.PENDING.value

    def test_count_reflects_missing_rows(self, db, make_appointment):
        existing = make_appointment(datetime(2030, 3, 4, 9))
        assert batch_service.apply_status(db, [existing.id, uuid.uuid4()], "cancelled") == 1

    def test_delete_removes_rows(self, db, make_appointment):
        first = make_appointment(datetime(2030, 3, 4, 9))
        second = make_appointment(datetime(2030, 3, 4, 11))

        deleted = batch_service.run_batch_action(db, SelectionSet([first.id, second.id]), "delete")

        assert deleted == 2
        assert db.query(Appointment).filter(Appointment.id.in_([first.id, second.id])).count() == 0

    def test_deleting_parent_detaches_children(self, db, make_appointment):
        parent = make_appointment(datetime(2030, 3, 1, 9), recurrence_pattern="daily")
        child = make_appointment(datetime(2030, 3, 2, 9), recurrence_parent_id=parent.id)

        batch_service.delete_many(db, [parent.id])

        db.refresh(child)
        assert child.recurrence_parent_id is None

    def test_empty_selection_skips_store(self, db):
        with patch.object(batch_service.appointment_store, "update_appointments") as update, \
                patch.object(batch_service.appointment_store, "delete_appointments") as delete:
            assert batch_service.run_batch_action(db, SelectionSet(), BatchAction.COMPLETE) == 0
            assert batch_service.run_batch_action(db, SelectionSet(), BatchAction.DELETE) == 0
        update.assert_not_called()
        delete.assert_not_called()

    def test_unknown_status_rejected(self, db):
        with pytest.raises(ValueError):
            batch_service.apply_status(db, [uuid.uuid4()], "archived")

    def test_store_failure_raises_and_clears_selection(self, db, make_appointment, caplog):
        appt = make_appointment(datetime(2030, 3, 4, 9))
        selection = SelectionSet([appt.id])
        error = OperationalError("UPDATE", {}, Exception("db down"))

        with patch.object(batch_service.appointment_store, "update_appointments", side_effect=error):
            with pytest.raises(AppointmentStoreError):
                batch_service.run_batch_action(db, selection, BatchAction.CANCEL)

        assert selection.is_empty
        assert "batch_status_failed" in caplog.text
