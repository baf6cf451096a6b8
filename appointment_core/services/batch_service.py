"""Batch status changes and deletes over a selection of appointments."""

import logging
from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from appointment_core.core.structured_logging import build_log_context
from appointment_core.db.enums import AppointmentStatus, BatchAction
from appointment_core.services import appointment_store
from appointment_core.services.exceptions import AppointmentStoreError

logger = logging.getLogger(__name__)

ACTION_STATUSES: dict[BatchAction, AppointmentStatus] = {
    BatchAction.CONFIRM: AppointmentStatus.CONFIRMED,
    BatchAction.CANCEL: AppointmentStatus.CANCELLED,
    BatchAction.COMPLETE: AppointmentStatus.COMPLETED,
}


class SelectionSet:
    """Transient set of selected appointment ids behind the batch toolbar."""

    def __init__(self, ids: Iterable[UUID] = ()):
        self._ids: set[UUID] = set(ids)

    def __contains__(self, appointment_id: object) -> bool:
        return appointment_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    @property
    def ids(self) -> list[UUID]:
        return list(self._ids)

    @property
    def is_empty(self) -> bool:
        return not self._ids

    @property
    def toolbar_visible(self) -> bool:
        return bool(self._ids)

    def toggle(self, appointment_id: UUID) -> bool:
        """Flip membership; returns True when the id is now selected."""
        if appointment_id in self._ids:
            self._ids.discard(appointment_id)
            return False
        self._ids.add(appointment_id)
        return True

    def select(self, appointment_id: UUID) -> None:
        self._ids.add(appointment_id)

    def deselect(self, appointment_id: UUID) -> None:
        self._ids.discard(appointment_id)

    def select_all(self, ids: Iterable[UUID]) -> None:
        self._ids = set(ids)

    def clear(self) -> None:
        self._ids.clear()

    def all_selected(self, total: int) -> bool:
        return total > 0 and len(self._ids) == total


def apply_status(db: Session, ids: Sequence[UUID], new_status: AppointmentStatus | str) -> int:
    """
    Set one status on every selected appointment with a single bulk update.

    Returns the number of rows changed, which can be lower than len(ids)
    when some were deleted concurrently. Empty selections never reach the store.
    """
    status = AppointmentStatus(new_status)
    if not ids:
        return 0
    try:
        updated = appointment_store.update_appointments(db, ids, {"status": status.value})
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "batch_status_failed",
            extra=build_log_context(action=f"status:{status.value}", count=len(ids)),
        )
        raise AppointmentStoreError("Failed to update appointments") from exc

    logger.info(
        "batch_status_applied",
        extra=build_log_context(action=f"status:{status.value}", count=updated),
    )
    return updated


def delete_many(db: Session, ids: Sequence[UUID]) -> int:
    """Hard-delete every selected appointment with a single bulk delete."""
    if not ids:
        return 0
    try:
        deleted = appointment_store.delete_appointments(db, ids)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "batch_delete_failed",
            extra=build_log_context(action="delete", count=len(ids)),
        )
        raise AppointmentStoreError("Failed to delete appointments") from exc

    logger.info("batch_delete_applied", extra=build_log_context(action="delete", count=deleted))
    return deleted


def run_batch_action(db: Session, selection: SelectionSet, action: BatchAction | str) -> int:
    """Run a toolbar action over the selection, then clear it (also on failure)."""
    action = BatchAction(action)
    try:
        if action == BatchAction.DELETE:
            return delete_many(db, selection.ids)
        return apply_status(db, selection.ids, ACTION_STATUSES[action])
    finally:
        selection.clear()
