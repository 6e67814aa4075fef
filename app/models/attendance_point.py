"""
Attendance point (disciplinary violation) model
"""
from decimal import Decimal

from sqlalchemy import (
    Column,
    Integer,
    Date,
    DateTime,
    ForeignKey,
    String,
    Text,
    Boolean,
    Numeric,
    Enum as SQLEnum,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class PointType(str, enum.Enum):
    WHOLE_DAY_ABSENCE = "whole_day_absence"
    HALF_DAY_ABSENCE = "half_day_absence"
    UNDERTIME = "undertime"
    UNDERTIME_MORE_THAN_HOUR = "undertime_more_than_hour"
    TARDY = "tardy"


class ExpirationType(str, enum.Enum):
    SRO = "sro"    # standard roll-off after 6 months
    GBRO = "gbro"  # good behavior reset
    NONE = "none"  # NCNS: fixed 1 year, no GBRO


POINT_VALUES = {
    PointType.WHOLE_DAY_ABSENCE: Decimal("1.00"),
    PointType.HALF_DAY_ABSENCE: Decimal("0.50"),
    PointType.UNDERTIME_MORE_THAN_HOUR: Decimal("0.50"),
    PointType.UNDERTIME: Decimal("0.25"),
    PointType.TARDY: Decimal("0.25"),
}


class AttendancePoint(Base):
    __tablename__ = "attendance_points"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    attendance_id = Column(Integer, ForeignKey("attendances.id"), nullable=False)
    shift_date = Column(Date, nullable=False, index=True)
    point_type = Column(SQLEnum(PointType, native_enum=False), nullable=False)
    points = Column(Numeric(4, 2), nullable=False)
    status = Column(String, nullable=False)  # attendance status the point was derived from
    is_advised = Column(Boolean, nullable=False, default=False)
    is_excused = Column(Boolean, nullable=False, default=False)
    excused_at = Column(DateTime(timezone=True), nullable=True)
    excuse_reason = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    expires_at = Column(Date, nullable=False)
    expiration_type = Column(SQLEnum(ExpirationType, native_enum=False), nullable=False)
    is_expired = Column(Boolean, nullable=False, default=False)
    expired_at = Column(Date, nullable=True)
    eligible_for_gbro = Column(Boolean, nullable=False, default=True)
    gbro_expires_at = Column(Date, nullable=True)  # scheduled good-behavior roll-off
    gbro_applied_at = Column(Date, nullable=True)
    violation_details = Column(Text, nullable=True)
    tardy_minutes = Column(Integer, nullable=True)
    undertime_minutes = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint("employee_id", "shift_date", "point_type", name="uq_point_employee_shift_type"),
        Index("ix_attendance_points_attendance", "attendance_id"),
    )

    attendance = relationship("Attendance", back_populates="points")
    employee = relationship("Employee")
