"""Appointment list query: status tab, date window, contact and page."""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from uuid import UUID

from fastapi import Query
from sqlalchemy.orm import Query as SQLAlchemyQuery

from appointment_core.db.enums import AppointmentStatus
from appointment_core.db.models import Appointment


DEFAULT_PER_PAGE = 50
MAX_PER_PAGE = 200


@dataclass
class AppointmentListQuery:
    """Filters and page window for one read of the appointment list."""
    page: int = 1
    per_page: int = DEFAULT_PER_PAGE
    status: AppointmentStatus | str | None = None
    date_start: date | None = None
    date_end: date | None = None  # inclusive
    contact_id: UUID | None = None

    @property
    def window(self) -> tuple[datetime | None, datetime | None]:
        """[00:00 of date_start, 00:00 after date_end); an unset side stays None."""
        start = datetime.combine(self.date_start, time.min) if self.date_start else None
        end = datetime.combine(self.date_end + timedelta(days=1), time.min) if self.date_end else None
        return start, end

    @property
    def inverted(self) -> bool:
        return bool(self.date_start and self.date_end and self.date_end < self.date_start)

    def page_count(self, total: int) -> int:
        return -(-total // self.per_page)

    def apply(self, query: SQLAlchemyQuery) -> SQLAlchemyQuery:
        """Narrow an Appointment query to these filters, earliest start first."""
        start, end = self.window
        if self.status:
            query = query.filter(Appointment.status == AppointmentStatus(self.status).value)
        if start:
            query = query.filter(Appointment.scheduled_at >= start)
        if end:
            query = query.filter(Appointment.scheduled_at < end)
        if self.contact_id:
            query = query.filter(Appointment.contact_id == self.contact_id)
        return query.order_by(Appointment.scheduled_at.asc(), Appointment.created_at.asc())

    def fetch(self, query: SQLAlchemyQuery) -> tuple[list[Appointment], int]:
        """Rows of the requested page plus the filtered total."""
        query = self.apply(query)
        total = query.count()
        items = query.offset((self.page - 1) * self.per_page).limit(self.per_page).all()
        return items, total


def get_list_query(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    per_page: int = Query(DEFAULT_PER_PAGE, ge=1, le=MAX_PER_PAGE, description=f"Items per page (max {MAX_PER_PAGE})"),
    status: AppointmentStatus | None = None,
    date_start: date | None = Query(None, description="First day shown"),
    date_end: date | None = Query(None, description="Last day shown (inclusive)"),
    contact_id: UUID | None = None,
) -> AppointmentListQuery:
    """
    List filters dependency.

    Usage:
        @router.get("/appointments")
        def list_appointments(list_query: AppointmentListQuery = Depends(get_list_query)):
            ...
    """
    return AppointmentListQuery(
        page=page,
        per_page=per_page,
        status=status,
        date_start=date_start,
        date_end=date_end,
        contact_id=contact_id,
    )
