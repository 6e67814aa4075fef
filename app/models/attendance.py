"""
Attendance record model: one row per (employee_id, shift_date).
"""
from sqlalchemy import (
    Column,
    Integer,
    Date,
    DateTime,
    ForeignKey,
    String,
    Text,
    Boolean,
    JSON,
    Enum as SQLEnum,
    UniqueConstraint,
)
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class AttendanceStatus(str, enum.Enum):
    ON_TIME = "on_time"
    TARDY = "tardy"
    HALF_DAY_ABSENCE = "half_day_absence"
    UNDERTIME = "undertime"
    UNDERTIME_MORE_THAN_HOUR = "undertime_more_than_hour"
    OVERTIME = "overtime"
    NCNS = "ncns"
    ADVISED_ABSENCE = "advised_absence"
    FAILED_BIO_IN = "failed_bio_in"
    FAILED_BIO_OUT = "failed_bio_out"
    NEEDS_MANUAL_REVIEW = "needs_manual_review"
    ON_LEAVE = "on_leave"
    NON_WORK_DAY = "non_work_day"


# Statuses that carry no usable time signal; anomaly review may replace them.
AMBIGUOUS_STATUSES = (
    AttendanceStatus.NCNS,
    AttendanceStatus.FAILED_BIO_IN,
    AttendanceStatus.FAILED_BIO_OUT,
)

UNDERTIME_STATUSES = (
    AttendanceStatus.UNDERTIME,
    AttendanceStatus.UNDERTIME_MORE_THAN_HOUR,
)


class RecordState(str, enum.Enum):
    DRAFT = "draft"
    AUTO_RECONCILED = "auto_reconciled"
    PENDING_REVIEW = "pending_review"
    VERIFIED = "verified"


class Attendance(Base):
    __tablename__ = "attendances"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    employee_schedule_id = Column(Integer, ForeignKey("employee_schedules.id"), nullable=True)
    leave_request_id = Column(Integer, ForeignKey("leave_requests.id"), nullable=True)
    shift_date = Column(Date, nullable=False, index=True)

    # Denormalized from the schedule when the record is reconciled (full datetimes)
    scheduled_time_in = Column(DateTime, nullable=True)
    scheduled_time_out = Column(DateTime, nullable=True)
    actual_time_in = Column(DateTime, nullable=True)
    actual_time_out = Column(DateTime, nullable=True)
    bio_in_site_id = Column(Integer, nullable=True)
    bio_out_site_id = Column(Integer, nullable=True)
    is_cross_site_bio = Column(Boolean, nullable=False, default=False)

    status = Column(SQLEnum(AttendanceStatus, native_enum=False), nullable=False, default=AttendanceStatus.NCNS)
    secondary_status = Column(SQLEnum(AttendanceStatus, native_enum=False), nullable=True)
    tardy_minutes = Column(Integer, nullable=True)
    undertime_minutes = Column(Integer, nullable=True)
    overtime_minutes = Column(Integer, nullable=True)
    total_minutes_worked = Column(Integer, nullable=True)

    is_advised = Column(Boolean, nullable=False, default=False)
    overtime_approved = Column(Boolean, nullable=False, default=False)
    lunch_used = Column(Boolean, nullable=False, default=False)  # worked through lunch: no deduction
    is_set_home = Column(Boolean, nullable=False, default=False)  # sent home early: no undertime point

    state = Column(SQLEnum(RecordState, native_enum=False), nullable=False, default=RecordState.DRAFT)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    verification_notes = Column(Text, nullable=True)
    warnings = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint("employee_id", "shift_date", name="uq_attendance_employee_shift_date"),
    )

    employee = relationship("Employee")
    schedule = relationship("EmployeeSchedule")
    leave_request = relationship("LeaveRequest")
    points = relationship("AttendancePoint", back_populates="attendance")

    @hybrid_property
    def admin_verified(self):
        """Verified records are frozen against automated reconciliation."""
        return self.state == RecordState.VERIFIED

    def add_warning(self, message: str) -> None:
        # Reassign so SQLAlchemy sees the JSON column change
        self.warnings = list(self.warnings or []) + [message]

    def append_note(self, message: str) -> None:
        self.notes = f"{self.notes} | {message}" if self.notes else message
