"""SQLAlchemy ORM models for businesses, contacts, appointments, and templates."""

import uuid
from datetime import date, datetime, timedelta

from sqlalchemy import (
    Boolean, CheckConstraint, Date, ForeignKey, Index, Integer, String, Text, Uuid, func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from appointment_core.core.constants import DEFAULT_DURATION_MINUTES, DEFAULT_TEMPLATE_COLOR
from appointment_core.db.base import Base
from appointment_core.db.enums import (
    DEFAULT_APPOINTMENT_STATUS, DEFAULT_RECURRENCE_PATTERN,
    AppointmentStatus, RecurrencePattern,
)


# =============================================================================
# Tenant
# =============================================================================

class Business(Base):
    """
    A business using the receptionist.

    All appointments, contacts and templates belong to a business
    and must be scoped by business_id in all queries.
    """
    __tablename__ = "businesses"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    contacts: Mapped[list["Contact"]] = relationship(
        back_populates="business", cascade="all, delete-orphan"
    )


class Contact(Base):
    """A customer of the business, reachable by phone."""
    __tablename__ = "contacts"
    __table_args__ = (
        Index("idx_contacts_business", "business_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone_number: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    business: Mapped[Business] = relationship(back_populates="contacts")


# =============================================================================
# Scheduling
# =============================================================================

class AppointmentTemplate(Base):
    """
    Reusable booking defaults (service, duration, notes, repeat rule).

    auto_confirm=True books appointments straight into `confirmed`.
    """
    __tablename__ = "appointment_templates"
    __table_args__ = (
        Index("idx_appointment_templates_business", "business_id"),
        CheckConstraint("duration_minutes > 0", name="ck_template_duration_positive"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    service_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    duration_minutes: Mapped[int] = mapped_column(
        Integer, default=DEFAULT_DURATION_MINUTES, nullable=False
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    default_recurrence_pattern: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_RECURRENCE_PATTERN.value, nullable=False
    )
    color: Mapped[str] = mapped_column(String(9), default=DEFAULT_TEMPLATE_COLOR, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    auto_confirm: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    @validates("default_recurrence_pattern")
    def _validate_pattern(self, key: str, value: str | RecurrencePattern) -> str:
        return RecurrencePattern(value).value


class Appointment(Base):
    """
    One scheduled occurrence.

    Lifecycle: pending → confirmed → completed, or cancelled at any point.
    Recurring series: the parent carries the pattern and end date,
    generated children point back through recurrence_parent_id.
    """
    __tablename__ = "appointments"
    __table_args__ = (
        Index("idx_appointments_business_date", "business_id", "scheduled_at"),
        Index("idx_appointments_business_status", "business_id", "status"),
        Index("idx_appointments_contact", "contact_id"),
        Index("idx_appointments_parent", "recurrence_parent_id"),
        CheckConstraint("duration_minutes > 0", name="ck_appointment_duration_positive"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False
    )
    contact_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True
    )
    template_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("appointment_templates.id", ondelete="SET NULL"), nullable=True
    )

    # Scheduling (business-local wall clock)
    scheduled_at: Mapped[datetime] = mapped_column(nullable=False)
    duration_minutes: Mapped[int] = mapped_column(
        Integer, default=DEFAULT_DURATION_MINUTES, nullable=False
    )
    service_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_APPOINTMENT_STATUS.value, nullable=False
    )

    # Recurrence
    recurrence_pattern: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_RECURRENCE_PATTERN.value, nullable=False
    )
    recurrence_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    recurrence_parent_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("appointments.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    contact: Mapped[Contact | None] = relationship(lazy="joined")
    template: Mapped[AppointmentTemplate | None] = relationship()

    @validates("status")
    def _validate_status(self, key: str, value: str | AppointmentStatus) -> str:
        return AppointmentStatus(value).value

    @validates("recurrence_pattern")
    def _validate_pattern(self, key: str, value: str | RecurrencePattern) -> str:
        return RecurrencePattern(value).value

    @validates("duration_minutes")
    def _validate_duration(self, key: str, value: int) -> int:
        if value is None or value <= 0:
            raise ValueError("duration_minutes must be positive")
        return value

    @property
    def scheduled_end(self) -> datetime:
        return self.scheduled_at + timedelta(minutes=self.duration_minutes)

    @property
    def is_cancelled(self) -> bool:
        return self.status == AppointmentStatus.CANCELLED.value
