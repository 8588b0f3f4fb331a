"""initial scheduling schema

Revision ID: 0001_initial_schedule
Revises:
Create Date: 2025-03-01 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schedule'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PK = sa.BigInteger().with_variant(sa.Integer, "sqlite")


def upgrade() -> None:
    op.create_table(
        'psychologists',
        sa.Column('id', PK, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_confirmed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'businesses',
        sa.Column('id', PK, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(160), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('consultations_per_user', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'contracts',
        sa.Column('id', PK, primary_key=True, autoincrement=True),
        sa.Column('business_id', sa.BigInteger(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('value', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_contracts_business_id', 'contracts', ['business_id'])

    op.create_table(
        'users',
        sa.Column('id', PK, primary_key=True, autoincrement=True),
        sa.Column('business_id', sa.BigInteger(), sa.ForeignKey('businesses.id', ondelete='SET NULL'), nullable=True),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('external_name', sa.String(120), nullable=True),
        sa.Column('birthdate', sa.Date(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('psychologist_id', sa.BigInteger(), sa.ForeignKey('psychologists.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_users_business_id', 'users', ['business_id'])

    op.create_table(
        'availability_days',
        sa.Column('id', PK, primary_key=True, autoincrement=True),
        sa.Column('psychologist_id', sa.BigInteger(), sa.ForeignKey('psychologists.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('psychologist_id', 'day', name='uq_availability_days_psychologist_id_day'),
    )
    op.create_index('ix_availability_days_day', 'availability_days', ['day'])

    op.create_table(
        'availability_slots',
        sa.Column('id', PK, primary_key=True, autoincrement=True),
        sa.Column('slot_id', sa.String(32), nullable=False),
        sa.Column('availability_day_id', sa.BigInteger(), sa.ForeignKey('availability_days.id', ondelete='CASCADE'), nullable=False),
        sa.Column('start', sa.Integer(), nullable=False),
        sa.Column('end', sa.Integer(), nullable=False),
        sa.Column('recurring', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('recurring_end', sa.Date(), nullable=True),
        sa.Column('recurring_origin_slot', sa.String(32), nullable=True),
        sa.CheckConstraint('start >= 0 AND start < "end" AND "end" <= 1440', name='ck_availability_slots_range'),
    )
    op.create_index('ix_availability_slots_recurring_origin_slot', 'availability_slots', ['recurring_origin_slot'])
    op.create_index('ix_availability_slots_slot_id', 'availability_slots', ['slot_id'])

    op.create_table(
        'treatments',
        sa.Column('id', PK, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('diagnostics', sa.JSON(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('medication', sa.Boolean(), nullable=True),
        sa.Column('medication_description', sa.Text(), nullable=True),
        sa.Column('goals', sa.Text(), nullable=True),
        sa.Column('anamnesis', sa.Text(), nullable=True),
        sa.Column('clinical_discharge', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_treatments_user_id', 'treatments', ['user_id'])

    op.create_table(
        'appointments',
        sa.Column('id', PK, primary_key=True, autoincrement=True),
        sa.Column('number', sa.String(12), nullable=False),
        sa.Column('user_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('psychologist_id', sa.BigInteger(), sa.ForeignKey('psychologists.id'), nullable=False),
        sa.Column('business_id', sa.BigInteger(), sa.ForeignKey('businesses.id'), nullable=False),
        sa.Column('treatment_id', sa.BigInteger(), sa.ForeignKey('treatments.id', ondelete='SET NULL'), nullable=True),
        sa.Column('starts_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ends_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False, server_default='45'),
        sa.Column('cancelled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('cancelled_by', sa.String(16), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_paid', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('finished', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('next_appointment_id', sa.BigInteger(), sa.ForeignKey('appointments.id', ondelete='SET NULL'), nullable=True),
        sa.Column('diagnostics', sa.JSON(), nullable=True),
        sa.Column('clinical_intervention', sa.Text(), nullable=True),
        sa.Column('clinical_record', sa.Text(), nullable=True),
        sa.Column('goals_next_appointment', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('number', name='uq_appointments_number'),
    )
    op.create_index('ix_appointments_user_id', 'appointments', ['user_id'])
    op.create_index('ix_appointments_business_id', 'appointments', ['business_id'])
    op.create_index('ix_appointments_starts_at', 'appointments', ['starts_at'])
    # One live appointment per psychologist per start instant
    op.create_index(
        'uq_appointments_psychologist_id_starts_at_active',
        'appointments',
        ['psychologist_id', 'starts_at'],
        unique=True,
        postgresql_where=sa.text('NOT cancelled'),
        sqlite_where=sa.text('NOT cancelled'),
    )


def downgrade() -> None:
    op.drop_index('uq_appointments_psychologist_id_starts_at_active', table_name='appointments')
    op.drop_index('ix_appointments_starts_at', table_name='appointments')
    op.drop_index('ix_appointments_business_id', table_name='appointments')
    op.drop_index('ix_appointments_user_id', table_name='appointments')
    op.drop_table('appointments')
    op.drop_index('ix_treatments_user_id', table_name='treatments')
    op.drop_table('treatments')
    op.drop_index('ix_availability_slots_slot_id', table_name='availability_slots')
    op.drop_index('ix_availability_slots_recurring_origin_slot', table_name='availability_slots')
    op.drop_table('availability_slots')
    op.drop_index('ix_availability_days_day', table_name='availability_days')
    op.drop_table('availability_days')
    op.drop_index('ix_users_business_id', table_name='users')
    op.drop_table('users')
    op.drop_index('ix_contracts_business_id', table_name='contracts')
    op.drop_table('contracts')
    op.drop_table('businesses')
    op.drop_table('psychologists')
