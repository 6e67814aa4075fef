"""Biometric attendance schema

Revision ID: 001_biometric_attendance
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_biometric_attendance'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    # CURRENT_TIMESTAMP works on SQLite and Postgres
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    existing = set(sa.inspect(bind).get_table_names())
    if 'attendances' in existing:
        return

    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('emp_code', sa.String(), nullable=True),
        sa.Column('last_name', sa.String(), nullable=False),
        sa.Column('first_name', sa.String(), nullable=False),
        sa.Column('middle_name', sa.String(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_employees_id'), 'employees', ['id'], unique=False)
    op.create_index(op.f('ix_employees_emp_code'), 'employees', ['emp_code'], unique=True)
    op.create_index(op.f('ix_employees_last_name'), 'employees', ['last_name'], unique=False)

    op.create_table(
        'employee_schedules',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('site_id', sa.Integer(), nullable=True),
        sa.Column('shift_type', sa.String(), nullable=True),
        sa.Column('scheduled_time_in', sa.Time(), nullable=False),
        sa.Column('scheduled_time_out', sa.Time(), nullable=False),
        sa.Column('work_days', sa.JSON(), nullable=False),
        sa.Column('grace_period_minutes', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('effective_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_employee_schedules_id'), 'employee_schedules', ['id'], unique=False)
    op.create_index(op.f('ix_employee_schedules_employee_id'), 'employee_schedules', ['employee_id'], unique=False)

    op.create_table(
        'leave_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('leave_type', sa.String(), nullable=False),
        sa.Column('status', sa.Enum('PENDING', 'APPROVED', 'REJECTED', 'CANCELLED', name='leavestatus'), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('start_date <= end_date', name='check_start_date_le_end_date'),
    )
    op.create_index(op.f('ix_leave_requests_id'), 'leave_requests', ['id'], unique=False)
    op.create_index(op.f('ix_leave_requests_employee_id'), 'leave_requests', ['employee_id'], unique=False)
    op.create_index('ix_leave_requests_employee_dates', 'leave_requests', ['employee_id', 'start_date', 'end_date'], unique=False)

    # Non-native enums are stored as the member name in a VARCHAR
    op.create_table(
        'attendances',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('employee_schedule_id', sa.Integer(), nullable=True),
        sa.Column('leave_request_id', sa.Integer(), nullable=True),
        sa.Column('shift_date', sa.Date(), nullable=False),
        sa.Column('scheduled_time_in', sa.DateTime(), nullable=True),
        sa.Column('scheduled_time_out', sa.DateTime(), nullable=True),
        sa.Column('actual_time_in', sa.DateTime(), nullable=True),
        sa.Column('actual_time_out', sa.DateTime(), nullable=True),
        sa.Column('bio_in_site_id', sa.Integer(), nullable=True),
        sa.Column('bio_out_site_id', sa.Integer(), nullable=True),
        sa.Column('is_cross_site_bio', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('status', sa.String(length=24), nullable=False),
        sa.Column('secondary_status', sa.String(length=24), nullable=True),
        sa.Column('tardy_minutes', sa.Integer(), nullable=True),
        sa.Column('undertime_minutes', sa.Integer(), nullable=True),
        sa.Column('overtime_minutes', sa.Integer(), nullable=True),
        sa.Column('total_minutes_worked', sa.Integer(), nullable=True),
        sa.Column('is_advised', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('overtime_approved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('lunch_used', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_set_home', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('state', sa.String(length=15), nullable=False, server_default='DRAFT'),
        sa.Column('verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('verification_notes', sa.Text(), nullable=True),
        sa.Column('warnings', sa.JSON(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.ForeignKeyConstraint(['employee_schedule_id'], ['employee_schedules.id'], ),
        sa.ForeignKeyConstraint(['leave_request_id'], ['leave_requests.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('employee_id', 'shift_date', name='uq_attendance_employee_shift_date'),
    )
    op.create_index(op.f('ix_attendances_id'), 'attendances', ['id'], unique=False)
    op.create_index(op.f('ix_attendances_employee_id'), 'attendances', ['employee_id'], unique=False)
    op.create_index(op.f('ix_attendances_shift_date'), 'attendances', ['shift_date'], unique=False)

    op.create_table(
        'attendance_points',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('attendance_id', sa.Integer(), nullable=False),
        sa.Column('shift_date', sa.Date(), nullable=False),
        sa.Column('point_type', sa.String(length=24), nullable=False),
        sa.Column('points', sa.Numeric(4, 2), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('is_advised', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_excused', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('excused_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('excuse_reason', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('expires_at', sa.Date(), nullable=False),
        sa.Column('expiration_type', sa.String(length=4), nullable=False),
        sa.Column('is_expired', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('expired_at', sa.Date(), nullable=True),
        sa.Column('eligible_for_gbro', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('gbro_expires_at', sa.Date(), nullable=True),
        sa.Column('gbro_applied_at', sa.Date(), nullable=True),
        sa.Column('violation_details', sa.Text(), nullable=True),
        sa.Column('tardy_minutes', sa.Integer(), nullable=True),
        sa.Column('undertime_minutes', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.ForeignKeyConstraint(['attendance_id'], ['attendances.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('employee_id', 'shift_date', 'point_type', name='uq_point_employee_shift_type'),
    )
    op.create_index(op.f('ix_attendance_points_id'), 'attendance_points', ['id'], unique=False)
    op.create_index(op.f('ix_attendance_points_employee_id'), 'attendance_points', ['employee_id'], unique=False)
    op.create_index(op.f('ix_attendance_points_shift_date'), 'attendance_points', ['shift_date'], unique=False)
    op.create_index('ix_attendance_points_attendance', 'attendance_points', ['attendance_id'], unique=False)

    op.create_table(
        'attendance_uploads',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('original_filename', sa.String(), nullable=True),
        sa.Column('shift_date', sa.Date(), nullable=False),
        sa.Column('date_from', sa.Date(), nullable=True),
        sa.Column('date_to', sa.Date(), nullable=True),
        sa.Column('biometric_site_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=10), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('total_records', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('processed_records', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('matched_employees', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('unmatched_names_list', sa.JSON(), nullable=False),
        sa.Column('date_warnings', sa.JSON(), nullable=False),
        sa.Column('dates_found', sa.JSON(), nullable=False),
        sa.Column('stats', sa.JSON(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_attendance_uploads_id'), 'attendance_uploads', ['id'], unique=False)

    op.create_table(
        'biometric_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('attendance_upload_id', sa.Integer(), nullable=False),
        sa.Column('site_id', sa.Integer(), nullable=True),
        sa.Column('employee_name', sa.String(), nullable=False),
        sa.Column('scanned_at', sa.DateTime(), nullable=False),
        sa.Column('record_date', sa.Date(), nullable=False),
        sa.Column('record_time', sa.Time(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.ForeignKeyConstraint(['attendance_upload_id'], ['attendance_uploads.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_biometric_records_id'), 'biometric_records', ['id'], unique=False)
    op.create_index(op.f('ix_biometric_records_employee_id'), 'biometric_records', ['employee_id'], unique=False)
    op.create_index(op.f('ix_biometric_records_attendance_upload_id'), 'biometric_records', ['attendance_upload_id'], unique=False)
    op.create_index('ix_biometric_records_employee_scanned', 'biometric_records', ['employee_id', 'scanned_at'], unique=False)

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_notifications_id'), 'notifications', ['id'], unique=False)
    op.create_index(op.f('ix_notifications_kind'), 'notifications', ['kind'], unique=False)


def downgrade() -> None:
    op.drop_table('notifications')
    op.drop_table('biometric_records')
    op.drop_table('attendance_uploads')
    op.drop_table('attendance_points')
    op.drop_table('attendances')
    op.drop_table('leave_requests')
    op.drop_table('employee_schedules')
    op.drop_table('employees')
