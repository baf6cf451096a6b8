"""Scheduling core - businesses, contacts, templates, appointments

Revision ID: 0001_scheduling_core
Revises:
Create Date: 2026-10-19

Creates the tenant, contact and scheduling tables. scheduled_at is stored
as naive business-local wall-clock time.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_scheduling_core'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create scheduling tables."""

    # ==========================================================================
    # Businesses
    # ==========================================================================
    op.create_table(
        'businesses',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )

    # ==========================================================================
    # Contacts
    # ==========================================================================
    op.create_table(
        'contacts',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'business_id', sa.Uuid(),
            sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('phone_number', sa.String(32), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('idx_contacts_business', 'contacts', ['business_id'])

    # ==========================================================================
    # Appointment templates
    # ==========================================================================
    op.create_table(
        'appointment_templates',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'business_id', sa.Uuid(),
            sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('service_type', sa.String(100), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column(
            'default_recurrence_pattern', sa.String(20), nullable=False, server_default='none'
        ),
        sa.Column('color', sa.String(9), nullable=False, server_default='#8b5cf6'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('auto_confirm', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint('duration_minutes > 0', name='ck_template_duration_positive'),
    )
    op.create_index('idx_appointment_templates_business', 'appointment_templates', ['business_id'])

    # ==========================================================================
    # Appointments
    # ==========================================================================
    op.create_table(
        'appointments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'business_id', sa.Uuid(),
            sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column(
            'contact_id', sa.Uuid(),
            sa.ForeignKey('contacts.id', ondelete='SET NULL'), nullable=True,
        ),
        sa.Column(
            'template_id', sa.Uuid(),
            sa.ForeignKey('appointment_templates.id', ondelete='SET NULL'), nullable=True,
        ),
        sa.Column('scheduled_at', sa.DateTime(), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('service_type', sa.String(100), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('recurrence_pattern', sa.String(20), nullable=False, server_default='none'),
        sa.Column('recurrence_end_date', sa.Date(), nullable=True),
        sa.Column(
            'recurrence_parent_id', sa.Uuid(),
            sa.ForeignKey('appointments.id', ondelete='SET NULL'), nullable=True,
        ),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint('duration_minutes > 0', name='ck_appointment_duration_positive'),
    )
    op.create_index(
        'idx_appointments_business_date', 'appointments', ['business_id', 'scheduled_at']
    )
    op.create_index(
        'idx_appointments_business_status', 'appointments', ['business_id', 'status']
    )
    op.create_index('idx_appointments_contact', 'appointments', ['contact_id'])
    op.create_index('idx_appointments_parent', 'appointments', ['recurrence_parent_id'])


def downgrade() -> None:
    """Drop scheduling tables."""
    op.drop_table('appointments')
    op.drop_table('appointment_templates')
    op.drop_table('contacts')
    op.drop_table('businesses')
